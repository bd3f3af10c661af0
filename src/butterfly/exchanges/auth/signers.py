"""
Request signers.

Both signers are pure: the same secret and canonical input always give the
same signature. A malformed secret or canonical input fails here, before the
request is sent, instead of coming back as an opaque auth error.
"""

import base64
import binascii
import hashlib
import hmac
from abc import ABC, abstractmethod
from urllib.parse import parse_qs

from msgspec import Struct

from butterfly.infrastructure.exceptions import InvalidCredential, SigningError


class RequestSigner(ABC):
    """Computes the signature for one canonical request string."""

    exchange: str = ""

    @abstractmethod
    def sign(self, secret: str, canonical_input) -> str:
        pass

    def _require_secret(self, secret: str) -> None:
        if not secret:
            raise InvalidCredential("API secret is empty", exchange=self.exchange, operation="sign")


class HmacSha256Signer(RequestSigner):
    """
    Hex HMAC-SHA256 over the literal query string (MEXC).

    The input must be exactly the string that is sent, field order included.
    """

    exchange = "mexc"

    def sign(self, secret: str, canonical_input: str) -> str:
        self._require_secret(secret)
        return hmac.new(
            secret.encode('utf-8'),
            canonical_input.encode('utf-8'),
            hashlib.sha256
        ).hexdigest()


class KrakenSignPayload(Struct, frozen=True):
    """URL path and the form-encoded body that will be posted to it."""
    url_path: str
    post_data: str


class KrakenSigner(RequestSigner):
    """
    Kraken API-Sign.

    ``base64(HMAC-SHA512(b64decode(secret), path + SHA256(nonce + post_data)))``
    where the SHA256 digest is raw bytes and the nonce is the ``nonce`` field
    of the same body.
    """

    exchange = "kraken"

    def sign(self, secret: str, canonical_input: KrakenSignPayload) -> str:
        decoded_secret = self._decode_secret(secret)
        nonce = self._extract_nonce(canonical_input.post_data)

        sha256_digest = hashlib.sha256((nonce + canonical_input.post_data).encode('utf-8')).digest()
        message = canonical_input.url_path.encode('utf-8') + sha256_digest

        mac = hmac.new(decoded_secret, message, hashlib.sha512)
        return base64.b64encode(mac.digest()).decode('ascii')

    def _decode_secret(self, secret: str) -> bytes:
        self._require_secret(secret)
        try:
            decoded = base64.b64decode(secret, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidCredential("API secret is not valid base64",
                                    exchange=self.exchange, operation="sign") from e
        if not decoded:
            raise InvalidCredential("API secret decodes to zero bytes",
                                    exchange=self.exchange, operation="sign")
        return decoded

    def _extract_nonce(self, post_data: str) -> str:
        values = parse_qs(post_data, keep_blank_values=True).get('nonce')
        if not values or not values[0]:
            raise SigningError("Post body has no nonce field", exchange=self.exchange, operation="sign")
        return values[0]
