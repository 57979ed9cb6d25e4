"""Firmware 2.x controllers, serving their JSON API below ``/api/``."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import AuthError, ProtocolError, UnexpectedStatus
from ..fields import (
    interface_counters,
    mac_list,
    parse_timestamp,
    port_number,
    quoted_float,
    quoted_int,
)
from ..metrics import (
    UNKNOWN_PORT,
    ControllerInfo,
    Endpoint,
    GhnPort,
    GhnStats,
    InterfaceCounters,
    Memory,
    Metrics,
    WirelessClients,
)
from ..samples import MetricSink, publish
from .registry import register

SESSION_COOKIE = "sessionId"

LOGIN_PATH = "api/login/"
BOARD_PATH = "api/system/board"
SYSINFO_PATH = "api/system/info"
SYSEOC_PATH = "api/config/system/eoc"
GHN_STATUS_PATH = "api/ghn/status"
NODE_STATUS_PATH = "api/node/status/"


@dataclass
class LoginResponse:
    cookie: str = ""
    message: str = ""

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "LoginResponse":
        return cls(cookie=data.get("cookie") or "", message=data.get("message") or "")


@dataclass
class Board:
    serial: str = ""
    eth_mac: str = ""
    revision: str = ""

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Board":
        release = data.get("release") or {}
        return cls(
            serial=data.get("serial", ""),
            eth_mac=data.get("eth_mac", ""),
            revision=release.get("revision", ""),
        )


@dataclass
class SysInfo:
    uptime: int
    load: Optional[float]
    memory: Memory

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "SysInfo":
        memory = data["memory"]
        return cls(
            uptime=quoted_int(data["uptime"], "uptime"),
            load=quoted_float(data.get("load"), "load"),
            memory=Memory(
                total=quoted_int(memory["total"], "memory.total"),
                free=quoted_int(memory["free"], "memory.free"),
                buffered=quoted_int(memory.get("buffered"), "memory.buffered"),
                shared=quoted_int(memory.get("shared"), "memory.shared"),
            ),
        )


def port_ordering(data: Optional[Dict[str, Any]]) -> List[str]:
    """Port MACs from ``/api/config/system/eoc``, in port number order."""
    return mac_list((data or {}).get("macaddr"))


@dataclass
class GhnPortStatus:
    mac: str
    connected: int
    registered: int


def ghn_status(data: Optional[List[Dict[str, Any]]]) -> List[GhnPortStatus]:
    return [
        GhnPortStatus(
            mac=port["mac"],
            connected=quoted_int(port.get("connected", 0), "connected"),
            registered=quoted_int(port.get("registered", 0), "registered"),
        )
        for port in data or []
        if port.get("mac")
    ]


@dataclass
class Node:
    name: str
    mac: str
    status: str
    statusid: int
    uptime: Optional[int] = None
    load: Optional[float] = None
    regts: Optional[str] = None
    ghn_master: str = ""
    ghn_stats: Optional[GhnStats] = None
    interfaces: List[InterfaceCounters] = field(default_factory=list)
    wireless: List[WirelessClients] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Dict[str, Any], key: str = "") -> "Node":
        mac = data.get("mac") or _key_mac(key)
        node = cls(
            name=data.get("name") or mac,
            mac=mac,
            status=data.get("status", ""),
            statusid=quoted_int(data.get("statusid", 0), "statusid"),
            regts=data.get("regts"),
            ghn_master=data.get("ghn_master") or "",
        )

        sysinfo = data.get("sysinfo")
        if sysinfo:
            node.uptime = quoted_int(sysinfo.get("uptime"), "sysinfo.uptime")
            node.load = quoted_float(sysinfo.get("load"), "sysinfo.load")

        stats = data.get("ghn_stats")
        if stats:
            node.ghn_stats = GhnStats(
                rxbps=quoted_int(stats.get("rxbps", 0), "ghn_stats.rxbps"),
                txbps=quoted_int(stats.get("txbps", 0), "ghn_stats.txbps"),
            )

        statistics = data.get("statistics") or {}
        for eth in statistics.get("ethernet") or []:
            if eth.get("link") and eth.get("port") is not None:
                node.interfaces.append(interface_counters(f"eth{eth['port']}", eth.get("counters")))
        for wifi in statistics.get("wireless") or []:
            if wifi.get("band") is None:
                continue
            band = quoted_int(wifi["band"], "wireless.band")
            node.wireless.append(
                WirelessClients(band=band, clients=quoted_int(wifi.get("clients"), "clients") or 0)
            )
            node.interfaces.append(interface_counters(f"wifi{band}", wifi.get("counters")))
        return node


def _key_mac(key: str) -> str:
    """MAC from a node table key such as ``node_00_1e_c0_11_22_33``."""
    if key.startswith("node_"):
        return key[len("node_"):].replace("_", ":")
    return key


def node_status(data: Any) -> List[Node]:
    """Nodes from ``/api/node/status/``, keyed by a mangled MAC.

    The key stands in for the MAC when a node entry lacks one.

    An empty table is sent as ``null``, ``[]`` or ``{}`` depending on the
    firmware release.
    """
    if not data:
        return []
    return [Node.from_json(node, key) for key, node in sorted(data.items())]


def _message(body: str) -> str:
    try:
        payload = json.loads(body)
    except ValueError:
        return body
    if isinstance(payload, dict) and payload.get("message"):
        return payload["message"]
    return body


@register("v2")
class V2Backend:
    name = "v2"

    def __init__(self, client) -> None:
        self.client = client

    def login(self) -> None:
        try:
            res, _ = self.client.request_raw(
                "POST", LOGIN_PATH, self.client.credentials.as_json(), LoginResponse.from_json
            )
        except UnexpectedStatus as exc:
            if exc.status in (401, 403):
                raise AuthError(f"login failed: {_message(exc.body)}") from exc
            raise

        if not res.cookie:
            if res.message:
                raise AuthError(f"login failed: {res.message}")
            raise ProtocolError(f"login response from {self.client.endpoint} carries no cookie")
        if not res.cookie.startswith(SESSION_COOKIE + "="):
            raise ProtocolError(f"unexpected cookie from {self.client.endpoint}")

        self.client.cookies.set_raw(res.cookie)

    def fetch(self) -> Metrics:
        board = self.client.get(BOARD_PATH, Board.from_json)
        sysinfo = self.client.get(SYSINFO_PATH, SysInfo.from_json)
        ordering = self.client.get(SYSEOC_PATH, port_ordering)
        ports = self.client.get(GHN_STATUS_PATH, ghn_status)
        nodes = self.client.get(NODE_STATUS_PATH, node_status)

        ghn_ports = {}
        for port in ports:
            mac = port.mac.lower()
            ghn_ports[mac] = GhnPort(
                number=port_number(ordering, mac),
                registered=port.registered,
                online=port.connected,
            )

        endpoints = []
        for node in nodes:
            offline_since = parse_timestamp(node.regts, "regts")
            ghn_port = UNKNOWN_PORT
            if node.ghn_master:
                ghn_port = port_number(ordering, node.ghn_master)
            endpoints.append(
                Endpoint(
                    name=node.name,
                    mac=node.mac,
                    status=node.statusid,
                    status_text=node.status,
                    uptime=node.uptime,
                    load=node.load,
                    offline_since=offline_since,
                    ghn_port_mac=node.ghn_master or None,
                    ghn_port_number=ghn_port,
                    interfaces=tuple(node.interfaces),
                    wireless=tuple(node.wireless),
                    ghn=node.ghn_stats,
                )
            )

        return Metrics(
            info=ControllerInfo(serial=board.serial, mac=board.eth_mac, version=board.revision),
            uptime=sysinfo.uptime,
            load=sysinfo.load,
            memory=sysinfo.memory,
            ghn_ports=ghn_ports,
            endpoints=tuple(endpoints),
        )

    def collect(self, sink: MetricSink) -> None:
        publish(self.fetch(), sink)
