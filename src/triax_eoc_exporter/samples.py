"""Naming table and rendering of canonical metrics into flat samples."""

from typing import Dict, Iterator, NamedTuple, Protocol, Tuple

from .metrics import UNKNOWN_PORT, InterfaceCounters, Metrics

COUNTER = "counter"
GAUGE = "gauge"

SIDE_CONTROLLER = "controller"
SIDE_ENDPOINT = "endpoint"


class Sample(NamedTuple):
    name: str
    kind: str
    value: float
    labels: Dict[str, str]


class MetricSink(Protocol):
    def add(self, sample: Sample) -> None:
        ...


class Descriptor(NamedTuple):
    help: str
    labels: Tuple[str, ...]


def _ctrl(name: str) -> str:
    return f"triax_eoc_controller_{name}"


def _node(name: str) -> str:
    return f"triax_eoc_endpoint_{name}"


NODE_LABELS = ("name",)
COUNTER_LABELS = NODE_LABELS + ("interface", "direction")

CTRL_UP = _ctrl("up")
CTRL_INFO = _ctrl("info")
CTRL_UPTIME = _ctrl("uptime")
CTRL_LOAD = _ctrl("load")
CTRL_MEM_TOTAL = _ctrl("mem_total")
CTRL_MEM_FREE = _ctrl("mem_free")
CTRL_MEM_BUFFERED = _ctrl("mem_buffered")
CTRL_MEM_SHARED = _ctrl("mem_shared")
CTRL_GHN_ONLINE = _ctrl("ghn_endpoints_online")
CTRL_GHN_REGISTERED = _ctrl("ghn_endpoints_registered")

NODE_INFO = _node("info")
NODE_STATUS = _node("status")
NODE_UPTIME = _node("uptime")
NODE_OFFLINE = _node("offline_since")
NODE_LOAD = _node("load")
NODE_GHN_PORT = _node("ghn_port")
NODE_CLIENTS = _node("clients")
COUNTER_BYTES = _node("interface_bytes")
COUNTER_PACKETS = _node("interface_packets")
COUNTER_ERRORS = _node("interface_errors")
GHN_RXBPS = _node("ghn_rxbps")
GHN_TXBPS = _node("ghn_txbps")
GHN_SNR_MIN = _node("ghn_snr_min")
GHN_SNR_AVG = _node("ghn_snr_avg")
GHN_SNR_MAX = _node("ghn_snr_max")
GHN_WIRE_LENGTH = _node("ghn_wire_length")

DESCRIPTORS: Dict[str, Descriptor] = {
    CTRL_UP: Descriptor("indicator whether controller is reachable", ()),
    CTRL_INFO: Descriptor(
        "controller infos about the installed software", ("serial", "eth_mac", "version")
    ),
    CTRL_UPTIME: Descriptor("uptime of controller in seconds", ()),
    CTRL_LOAD: Descriptor("current system load of controller", ()),
    CTRL_MEM_TOTAL: Descriptor("total system memory of controller in bytes", ()),
    CTRL_MEM_FREE: Descriptor("free system memory of controller in bytes", ()),
    CTRL_MEM_BUFFERED: Descriptor("buffered system memory of controller in bytes", ()),
    CTRL_MEM_SHARED: Descriptor("shared system memory of controller in bytes", ()),
    CTRL_GHN_ONLINE: Descriptor("number of endpoints online for a G.hn port", ("port",)),
    CTRL_GHN_REGISTERED: Descriptor(
        "number of endpoints registered for a G.hn port", ("port",)
    ),
    NODE_INFO: Descriptor("endpoint hardware infos", NODE_LABELS + ("serial", "mac", "model")),
    NODE_STATUS: Descriptor("current endpoint status", NODE_LABELS),
    NODE_UPTIME: Descriptor("uptime of endpoint in seconds", NODE_LABELS),
    NODE_OFFLINE: Descriptor("offline since unix timestamp", NODE_LABELS),
    NODE_LOAD: Descriptor("current system load of endpoint", NODE_LABELS),
    NODE_GHN_PORT: Descriptor("G.hn port number", NODE_LABELS + ("ghn_mac",)),
    NODE_CLIENTS: Descriptor("number of connected WLAN clients", NODE_LABELS + ("band",)),
    COUNTER_BYTES: Descriptor("total bytes transmitted or received", COUNTER_LABELS),
    COUNTER_PACKETS: Descriptor("total packets transmitted or received", COUNTER_LABELS),
    COUNTER_ERRORS: Descriptor("total number of errors", COUNTER_LABELS),
    GHN_RXBPS: Descriptor("negotiated RX rate in bps", NODE_LABELS),
    GHN_TXBPS: Descriptor("negotiated TX rate in bps", NODE_LABELS),
    GHN_SNR_MIN: Descriptor("minimum G.hn signal to noise ratio", NODE_LABELS + ("side",)),
    GHN_SNR_AVG: Descriptor("average G.hn signal to noise ratio", NODE_LABELS + ("side",)),
    GHN_SNR_MAX: Descriptor("maximum G.hn signal to noise ratio", NODE_LABELS + ("side",)),
    GHN_WIRE_LENGTH: Descriptor("estimated G.hn wire length in meters", NODE_LABELS),
}


def port_label(number: int) -> str:
    return "unknown" if number == UNKNOWN_PORT else str(number)


def _counters(name: str, counters: InterfaceCounters) -> Iterator[Sample]:
    for metric, rx, tx in (
        (COUNTER_BYTES, counters.rx_bytes, counters.tx_bytes),
        (COUNTER_PACKETS, counters.rx_packets, counters.tx_packets),
        (COUNTER_ERRORS, counters.rx_errors, counters.tx_errors),
    ):
        for direction, value in (("rx", rx), ("tx", tx)):
            labels = {"name": name, "interface": counters.interface, "direction": direction}
            yield Sample(metric, COUNTER, value, labels)


def render(metrics: Metrics) -> Iterator[Sample]:
    """Flatten canonical metrics into samples, skipping absent values."""
    info = metrics.info
    yield Sample(
        CTRL_INFO, GAUGE, 1, {"serial": info.serial, "eth_mac": info.mac, "version": info.version}
    )
    yield Sample(CTRL_UPTIME, GAUGE, metrics.uptime, {})
    if metrics.load is not None:
        yield Sample(CTRL_LOAD, GAUGE, metrics.load, {})

    memory = metrics.memory
    yield Sample(CTRL_MEM_TOTAL, GAUGE, memory.total, {})
    yield Sample(CTRL_MEM_FREE, GAUGE, memory.free, {})
    if memory.buffered is not None:
        yield Sample(CTRL_MEM_BUFFERED, GAUGE, memory.buffered, {})
    if memory.shared is not None:
        yield Sample(CTRL_MEM_SHARED, GAUGE, memory.shared, {})

    for port in metrics.ghn_ports.values():
        labels = {"port": port_label(port.number)}
        yield Sample(CTRL_GHN_REGISTERED, GAUGE, port.registered, labels)
        yield Sample(CTRL_GHN_ONLINE, GAUGE, port.online, dict(labels))

    for node in metrics.endpoints:
        name = {"name": node.name}
        yield Sample(NODE_STATUS, GAUGE, node.status, name)
        if node.serial is not None:
            yield Sample(
                NODE_INFO,
                GAUGE,
                1,
                {"name": node.name, "serial": node.serial, "mac": node.mac, "model": node.model or ""},
            )
        if node.uptime is not None:
            yield Sample(NODE_UPTIME, GAUGE, node.uptime, dict(name))
        elif node.offline_since is not None:
            yield Sample(NODE_OFFLINE, GAUGE, node.offline_since, dict(name))
        if node.load is not None:
            yield Sample(NODE_LOAD, GAUGE, node.load, dict(name))
        if node.ghn_port_mac and node.ghn_port_number != UNKNOWN_PORT:
            yield Sample(
                NODE_GHN_PORT,
                GAUGE,
                node.ghn_port_number,
                {"name": node.name, "ghn_mac": node.ghn_port_mac},
            )

        for counters in node.interfaces:
            yield from _counters(node.name, counters)

        for wireless in node.wireless:
            yield Sample(
                NODE_CLIENTS, GAUGE, wireless.clients, {"name": node.name, "band": str(wireless.band)}
            )

        if node.ghn is not None:
            yield Sample(GHN_RXBPS, GAUGE, node.ghn.rxbps, dict(name))
            yield Sample(GHN_TXBPS, GAUGE, node.ghn.txbps, dict(name))
            if node.ghn.snr is not None:
                yield from _snr(node.name, SIDE_ENDPOINT, node.ghn.snr)

    for link in metrics.ghn_links:
        yield Sample(GHN_WIRE_LENGTH, GAUGE, link.wire_length, {"name": link.name})
        yield from _snr(link.name, SIDE_CONTROLLER, link.snr)


def _snr(name: str, side: str, snr) -> Iterator[Sample]:
    for metric, value in ((GHN_SNR_MIN, snr.min), (GHN_SNR_AVG, snr.avg), (GHN_SNR_MAX, snr.max)):
        yield Sample(metric, GAUGE, value, {"name": name, "side": side})


def publish(metrics: Metrics, sink: MetricSink) -> None:
    for sample in render(metrics):
        sink.add(sample)
