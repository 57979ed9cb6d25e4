import logging
import threading
import tomllib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .client import Client
from .errors import ConfigError
from .transport import Transport

DEFAULT_USERNAME = "admin"


@dataclass
class Controller:
    alias: str
    host: str
    password: str
    port: Optional[int] = None
    username: str = DEFAULT_USERNAME

    @classmethod
    def from_toml(cls, data: Dict[str, Any]) -> "Controller":
        for key in ("alias", "host", "password"):
            if not isinstance(data.get(key), str) or not data[key]:
                raise ConfigError(f"eoc-controller entry is missing {key!r}: {data.get('alias', data)!r}")
        port = data.get("port")
        if port is not None and (
            isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536
        ):
            raise ConfigError(f"invalid port {port!r} for controller {data['alias']!r}")
        return cls(
            alias=data["alias"],
            host=data["host"],
            password=data["password"],
            port=port or None,
            username=data.get("username") or DEFAULT_USERNAME,
        )


@dataclass
class Config:
    controllers: List[Controller]
    _clients: Dict[str, Client] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def load(cls, path: str) -> "Config":
        try:
            with open(path, "rb") as handle:
                data = tomllib.load(handle)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigError(f"loading config file {path!r} failed: {exc}") from exc

        entries = data.get("eoc-controller", [])
        if not isinstance(entries, list):
            raise ConfigError(f"'eoc-controller' in {path!r} must be an array of tables")
        controllers = [Controller.from_toml(entry) for entry in entries]

        aliases = [ctrl.alias for ctrl in controllers]
        duplicates = sorted({alias for alias in aliases if aliases.count(alias) > 1})
        if duplicates:
            raise ConfigError(f"duplicate controller aliases: {', '.join(duplicates)}")
        return cls(controllers=controllers)

    def find(self, target: str) -> Optional[Controller]:
        for ctrl in self.controllers:
            if target in (ctrl.alias, ctrl.host):
                return ctrl
        return None

    def client(
        self,
        target: str,
        transport: Optional[Transport] = None,
        renegotiate_after: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ) -> Optional[Client]:
        """Client for the controller matching ``target`` by alias or host.

        Clients are created once and reused, so the negotiated backend and
        session survive across scrapes.
        """
        ctrl = self.find(target)
        if ctrl is None:
            return None
        with self._lock:
            client = self._clients.get(ctrl.alias)
            if client is None:
                client = Client(
                    host=ctrl.host,
                    port=ctrl.port,
                    username=ctrl.username,
                    password=ctrl.password,
                    transport=transport,
                    renegotiate_after=renegotiate_after,
                    logger=logger,
                )
                self._clients[ctrl.alias] = client
            return client
