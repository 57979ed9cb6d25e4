from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

# Port number of a G.hn MAC missing from the controller's port ordering.
UNKNOWN_PORT = -1


@dataclass(frozen=True)
class ControllerInfo:
    serial: str = ""
    mac: str = ""
    version: str = ""


@dataclass(frozen=True)
class Memory:
    total: int
    free: int
    buffered: Optional[int] = None
    shared: Optional[int] = None


@dataclass(frozen=True)
class GhnPort:
    number: int
    registered: int
    online: int


@dataclass(frozen=True)
class InterfaceCounters:
    interface: str
    rx_bytes: int = 0
    tx_bytes: int = 0
    rx_packets: int = 0
    tx_packets: int = 0
    rx_errors: int = 0
    tx_errors: int = 0


@dataclass(frozen=True)
class WirelessClients:
    band: int
    clients: int


@dataclass(frozen=True)
class Snr:
    min: float
    avg: float
    max: float


@dataclass(frozen=True)
class GhnStats:
    rxbps: int
    txbps: int
    snr: Optional[Snr] = None


@dataclass(frozen=True)
class Endpoint:
    name: str
    mac: str
    status: int
    status_text: str = ""
    uptime: Optional[int] = None
    load: Optional[float] = None
    offline_since: Optional[int] = None
    ghn_port_mac: Optional[str] = None
    ghn_port_number: int = UNKNOWN_PORT
    serial: Optional[str] = None
    model: Optional[str] = None
    interfaces: Tuple[InterfaceCounters, ...] = ()
    wireless: Tuple[WirelessClients, ...] = ()
    ghn: Optional[GhnStats] = None


@dataclass(frozen=True)
class GhnLink:
    """Controller-side view of one G.hn link."""

    name: str
    wire_length: int
    snr: Snr


@dataclass(frozen=True)
class Metrics:
    """Everything one collection learned about a controller.

    Built fresh for every scrape and never modified afterwards.
    """

    info: ControllerInfo
    uptime: int
    memory: Memory
    load: Optional[float] = None
    ghn_ports: Dict[str, GhnPort] = field(default_factory=dict)
    endpoints: Tuple[Endpoint, ...] = ()
    ghn_links: Tuple[GhnLink, ...] = ()
