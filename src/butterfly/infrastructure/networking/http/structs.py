from enum import Enum
import msgspec


class HTTPMethod(Enum):
    """HTTP methods used by the exchange adapters."""
    GET = "GET"
    POST = "POST"


class HttpResponse(msgspec.Struct, frozen=True):
    """Raw transport response; decoding is left to the adapter."""
    status: int
    text: str

    @property
    def ok(self) -> bool:
        return self.status < 400
