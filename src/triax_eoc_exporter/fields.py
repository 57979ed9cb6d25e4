"""Parsing helpers shared by the firmware-specific JSON shapes."""

from typing import Any, List, Mapping, Optional, Sequence

from .errors import ParseError
from .metrics import UNKNOWN_PORT, InterfaceCounters, Snr


def quoted_int(value: Any, field: str = "value") -> Optional[int]:
    """Parse an integer the controller may or may not have wrapped in quotes.

    ``None`` stays ``None``. Anything else that is not an integer raises
    :class:`ParseError`.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ParseError(field, value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise ParseError(field, value) from None
    raise ParseError(field, value)


def quoted_float(value: Any, field: str = "value") -> Optional[float]:
    """Like :func:`quoted_int`, for fractional values such as load or SNR."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ParseError(field, value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            raise ParseError(field, value) from None
    raise ParseError(field, value)


def parse_timestamp(value: Any, field: str = "timestamp") -> Optional[int]:
    """Unix timestamp sent as a numeric string; empty means absent."""
    if value is None or value == "":
        return None
    return quoted_int(value, field)


def mac_list(value: Any) -> List[str]:
    """Normalize a port ordering list to lower-case MAC strings.

    Older firmware sends one space-separated string, newer ones a JSON array.
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [mac.lower() for mac in value.split()]
    return [str(mac).lower() for mac in value]


def port_number(ordering: Sequence[str], mac: str) -> int:
    """1-based position of ``mac`` in ``ordering``, ignoring case."""
    mac = mac.lower()
    for number, candidate in enumerate(ordering, start=1):
        if candidate.lower() == mac:
            return number
    return UNKNOWN_PORT


def interface_counters(interface: str, data: Optional[Mapping[str, Any]]) -> InterfaceCounters:
    data = data or {}

    def counter(key: str) -> int:
        return quoted_int(data.get(key), key) or 0

    return InterfaceCounters(
        interface=interface,
        rx_bytes=counter("rx_byte"),
        tx_bytes=counter("tx_byte"),
        rx_packets=counter("rx_packet"),
        tx_packets=counter("tx_packet"),
        rx_errors=counter("rx_err"),
        tx_errors=counter("tx_err"),
    )


def snr(data: Optional[Mapping[str, Any]]) -> Optional[Snr]:
    if not data:
        return None
    return Snr(
        min=quoted_float(data.get("min"), "snr.min") or 0.0,
        avg=quoted_float(data.get("avg"), "snr.avg") or 0.0,
        max=quoted_float(data.get("max"), "snr.max") or 0.0,
    )
