from .registry import Backend, BackendFactory, Negotiator, register, registered

# Registration order is negotiation order.
from . import v2, v3  # noqa: E402,F401  pylint: disable=wrong-import-position

__all__ = ["Backend", "BackendFactory", "Negotiator", "register", "registered"]
