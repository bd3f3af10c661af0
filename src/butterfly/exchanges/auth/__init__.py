from .clock import Clock, now_millis
from .time_sync import ExchangeTimeSyncer, TimeSyncCache, normalize_base_url
from .nonce import NonceGenerator, NonceRegistry, get_nonce_generator
from .signers import RequestSigner, HmacSha256Signer, KrakenSigner, KrakenSignPayload
from .safety import resolve_safety_mode

__all__ = [
    'Clock',
    'now_millis',
    'ExchangeTimeSyncer',
    'TimeSyncCache',
    'normalize_base_url',
    'NonceGenerator',
    'NonceRegistry',
    'get_nonce_generator',
    'RequestSigner',
    'HmacSha256Signer',
    'KrakenSigner',
    'KrakenSignPayload',
    'resolve_safety_mode',
]
