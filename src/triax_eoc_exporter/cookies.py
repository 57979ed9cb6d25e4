import logging
import threading
from typing import Optional

from .errors import ProtocolError


class CookieStore:
    """Session cookie of exactly one controller endpoint.

    ``generation`` is bumped on every :meth:`set`, so callers can tell whether
    a login happened since they last looked.
    """

    def __init__(self, host: str, logger: Optional[logging.Logger] = None) -> None:
        self.host = host
        self.logger = logger or logging.getLogger("triax_eoc_exporter")
        self.generation = 0
        self._name: Optional[str] = None
        self._value: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def name(self) -> Optional[str]:
        return self._name

    def is_set(self) -> bool:
        return self._name is not None

    def set(self, name: str, value: str) -> None:
        with self._lock:
            self._name = name
            self._value = value
            self.generation += 1
        self.logger.info("Set cookie %s for %s", name, self.host)

    def set_raw(self, name_and_value: str) -> None:
        """Install a ``name=value`` pair, dropping any cookie attributes."""
        pair = name_and_value.split(";", 1)[0].strip()
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise ProtocolError(f"cannot split cookie from {self.host}")
        self.set(name.strip(), value.strip())

    def clear(self) -> None:
        with self._lock:
            self._name = None
            self._value = None

    def header(self) -> Optional[str]:
        with self._lock:
            if self._name is None:
                return None
            return f"{self._name}={self._value}"
