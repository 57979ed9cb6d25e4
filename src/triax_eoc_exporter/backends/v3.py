"""Firmware 3.x controllers, serving their JSON API below ``/cgi.lua/``.

Login hands the session cookie out as a ``Set-Cookie`` header, and all
status data comes from one combined status call.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import AuthError, ProtocolError
from ..fields import interface_counters, port_number, quoted_int, snr
from ..metrics import (
    UNKNOWN_PORT,
    ControllerInfo,
    Endpoint,
    GhnLink,
    GhnPort,
    GhnStats,
    InterfaceCounters,
    Memory,
    Metrics,
    Snr,
    WirelessClients,
)
from ..samples import MetricSink, publish
from .registry import register

LOGIN_PATH = "cgi.lua/login"
CAPABILITIES_PATH = "cgi.lua/capabilities"
STATUS_PATH = "cgi.lua/status?type=system,ghn,ethernet,remote"


@dataclass
class LoginResponse:
    status: bool
    message: str = ""
    level: int = 0
    error_code: int = 0

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "LoginResponse":
        return cls(
            status=bool(data.get("status")),
            message=data.get("message") or "",
            level=quoted_int(data.get("level", 0), "level"),
            error_code=quoted_int(data.get("errorCode", 0), "errorCode"),
        )


@dataclass
class Capabilities:
    serial: str = ""
    mac: str = ""
    model: str = ""

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Capabilities":
        product = data.get("product") or {}
        return cls(
            serial=product.get("serial", ""),
            mac=product.get("mac", ""),
            model=product.get("model", ""),
        )


@dataclass
class Modem:
    index: int
    mac: str
    registered: int
    online: int


@dataclass
class LinkNode:
    mac: str
    wire_length: int
    snr: Snr


@dataclass
class Remote:
    mac: str
    name: str
    serial: str
    model: str
    state: int
    status: str
    uptime: Optional[int] = None
    master: str = ""
    ghn: Optional[GhnStats] = None
    interfaces: List[InterfaceCounters] = field(default_factory=list)
    wireless: List[WirelessClients] = field(default_factory=list)

    @classmethod
    def from_json(cls, mac: str, data: Dict[str, Any]) -> "Remote":
        system = data.get("system") or {}
        remote = cls(
            mac=data.get("mac") or mac,
            name=system.get("name") or mac,
            serial=data.get("serial", ""),
            model=system.get("model", ""),
            state=quoted_int(data.get("state", 0), "state"),
            status=data.get("status", ""),
            uptime=quoted_int(system.get("uptime"), "system.uptime"),
        )

        for eth in data.get("ethernet") or []:
            if eth.get("link") and eth.get("port") is not None:
                remote.interfaces.append(interface_counters(f"eth{eth['port']}", eth.get("counters")))
        for wifi in data.get("wireless") or []:
            if wifi.get("band") is None:
                continue
            band = quoted_int(wifi["band"], "wireless.band")
            remote.wireless.append(
                WirelessClients(band=band, clients=quoted_int(wifi.get("clients"), "clients") or 0)
            )
            remote.interfaces.append(interface_counters(f"wifi{band}", wifi.get("counters")))

        ghn = data.get("ghn") or []
        if ghn:
            remote.master = ghn[0].get("master") or ""
            if ghn[0].get("status"):
                bitrate = ghn[0].get("bitrate") or {}
                remote.ghn = GhnStats(
                    rxbps=quoted_int(bitrate.get("rx", 0), "bitrate.rx"),
                    txbps=quoted_int(bitrate.get("tx", 0), "bitrate.tx"),
                    snr=snr(ghn[0].get("snr")),
                )
        return remote


@dataclass
class Status:
    uptime: int
    version: str
    memory: Memory
    modems: List[Modem]
    links: List[LinkNode]
    remotes: List[Remote]

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Status":
        system = data["system"]
        memory = system.get("memory") or {}
        total = quoted_int(memory.get("total", 0), "memory.total")
        if memory.get("used") is not None:
            free = total - quoted_int(memory["used"], "memory.used")
        else:
            free = quoted_int(memory.get("free", 0), "memory.free")

        ghn = data.get("ghn") or {}
        modems = [
            Modem(
                index=quoted_int(modem["index"], "modem.index"),
                mac=modem.get("mac", ""),
                registered=quoted_int(modem.get("endpointRegistered", 0), "endpointRegistered"),
                online=quoted_int(modem.get("endpointCount", 0), "endpointCount"),
            )
            for modem in (ghn.get("modems") or {}).values()
            if modem.get("index") is not None
        ]
        links = [
            LinkNode(
                mac=mac,
                wire_length=quoted_int(node.get("wireLength", 0), "wireLength"),
                snr=snr(node.get("snr")) or Snr(0, 0, 0),
            )
            for mac, node in sorted((ghn.get("nodes") or {}).items())
        ]
        remotes = [
            Remote.from_json(mac, remote)
            for mac, remote in sorted((data.get("remote") or {}).items())
        ]

        return cls(
            uptime=quoted_int(system.get("uptime", 0), "system.uptime"),
            version=system.get("version", ""),
            memory=Memory(total=total, free=free),
            modems=modems,
            links=links,
            remotes=remotes,
        )


def port_ordering(modems: List[Modem]) -> List[str]:
    """Modem MACs placed at their 0-based modem index."""
    if not modems:
        return []
    ordering = [""] * (max(modem.index for modem in modems) + 1)
    for modem in modems:
        ordering[modem.index] = modem.mac.lower()
    return ordering


@register("v3")
class V3Backend:
    name = "v3"

    def __init__(self, client) -> None:
        self.client = client

    def login(self) -> None:
        res, response = self.client.request_raw(
            "POST", LOGIN_PATH, self.client.credentials.as_json(), LoginResponse.from_json
        )
        if not res.status:
            raise AuthError(f"login failed: {res.message}")

        cookie = response.headers.get("Set-Cookie")
        if not cookie:
            raise ProtocolError(f"login response from {self.client.endpoint} carries no cookie")
        self.client.cookies.set_raw(cookie)

    def fetch(self) -> Metrics:
        capabilities = self.client.get(CAPABILITIES_PATH, Capabilities.from_json)
        status = self.client.get(STATUS_PATH, Status.from_json)

        ordering = port_ordering(status.modems)
        ghn_ports = {}
        for modem in status.modems:
            ghn_ports[modem.mac.lower()] = GhnPort(
                number=modem.index + 1,
                registered=modem.registered,
                online=modem.online,
            )

        names = {}
        endpoints = []
        for remote in status.remotes:
            names[remote.mac.lower()] = remote.name
            ghn_port = UNKNOWN_PORT
            if remote.master:
                ghn_port = port_number(ordering, remote.master)
            endpoints.append(
                Endpoint(
                    name=remote.name,
                    mac=remote.mac,
                    status=remote.state,
                    status_text=remote.status,
                    uptime=remote.uptime,
                    ghn_port_mac=remote.master or None,
                    ghn_port_number=ghn_port,
                    serial=remote.serial,
                    model=remote.model,
                    interfaces=tuple(remote.interfaces),
                    wireless=tuple(remote.wireless),
                    ghn=remote.ghn,
                )
            )

        links = tuple(
            GhnLink(name=names.get(link.mac.lower(), link.mac), wire_length=link.wire_length, snr=link.snr)
            for link in status.links
        )

        return Metrics(
            info=ControllerInfo(
                serial=capabilities.serial, mac=capabilities.mac, version=status.version
            ),
            uptime=status.uptime,
            memory=status.memory,
            ghn_ports=ghn_ports,
            endpoints=tuple(endpoints),
            ghn_links=links,
        )

    def collect(self, sink: MetricSink) -> None:
        publish(self.fetch(), sink)
