"""Exception types raised while talking to an EoC controller."""

from typing import List, Optional, Tuple


class EocError(Exception):
    """Base exception for controller communication failures."""


class TransportError(EocError):
    """Network failure or timeout before a response was received."""


class UnexpectedStatus(EocError):
    """The controller answered with a non-2xx status code."""

    def __init__(
        self,
        method: str,
        url: str,
        status: int,
        body: str = "",
        location: Optional[str] = None,
    ) -> None:
        super().__init__(f"unexpected status {status} for {method} {url}: {body}")
        self.method = method
        self.url = url
        self.status = status
        self.body = body
        self.location = location


class DecodeError(EocError):
    """Response body is not valid JSON for the expected shape."""


class AuthError(EocError):
    """The controller rejected the configured credentials."""


class ProtocolError(EocError):
    """A response does not look like the firmware version we expected."""


class ParseError(EocError):
    """A numeric-as-string field could not be parsed."""

    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"unable to parse {field} value {value!r}")
        self.field = field
        self.value = value


class NoBackendError(EocError):
    """None of the registered backends could log in."""

    def __init__(self, failures: List[Tuple[str, Exception]]) -> None:
        reasons = "; ".join(f"{name}: {exc}" for name, exc in failures)
        super().__init__(f"no usable backend found ({reasons or 'no backends registered'})")
        self.failures = list(failures)


class ConfigError(EocError):
    """Configuration file is missing or invalid."""
