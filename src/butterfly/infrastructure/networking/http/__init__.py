from .structs import HTTPMethod, HttpResponse
from .transport import HttpTransport, AiohttpTransport, TransportError

__all__ = [
    'HTTPMethod',
    'HttpResponse',
    'HttpTransport',
    'AiohttpTransport',
    'TransportError',
]
