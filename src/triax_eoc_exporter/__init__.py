"""Prometheus exporter for Triax EoC controllers."""

from .client import AuthState, Client, Credentials
from .collector import EocCollector, PrometheusSink
from .errors import (
    AuthError,
    ConfigError,
    DecodeError,
    EocError,
    NoBackendError,
    ParseError,
    ProtocolError,
    TransportError,
    UnexpectedStatus,
)
from .transport import Transport

__all__ = [
    "AuthError",
    "AuthState",
    "Client",
    "ConfigError",
    "Credentials",
    "DecodeError",
    "EocCollector",
    "EocError",
    "NoBackendError",
    "ParseError",
    "PrometheusSink",
    "ProtocolError",
    "Transport",
    "TransportError",
    "UnexpectedStatus",
]
