import enum
import json
import logging
import threading
from typing import Any, Callable, Dict, NamedTuple, Optional, Tuple

import requests

from .backends import Backend, BackendFactory, Negotiator
from .cookies import CookieStore
from .errors import ConfigError, DecodeError, EocError, UnexpectedStatus
from .samples import MetricSink
from .transport import Transport

# Statuses that mean "your session cookie is no longer valid".
AUTH_FAILURE_STATUSES = frozenset({401})

Shape = Callable[[Any], Any]


class Credentials(NamedTuple):
    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"

    def as_json(self) -> Dict[str, str]:
        return {"username": self.username, "password": self.password}


class AuthState(enum.Enum):
    UNBOUND = "unbound"
    BOUND_UNAUTHENTICATED = "bound-unauthenticated"
    BOUND_AUTHENTICATED = "bound-authenticated"


class Client:
    """Authenticated JSON client for one EoC controller.

    The firmware protocol is negotiated on first use and stays bound for the
    lifetime of the client. Requests rejected with 401 trigger one re-login
    through the bound backend and exactly one retry.
    """

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        port: Optional[int] = None,
        scheme: str = "https",
        transport: Optional[Transport] = None,
        backends: Optional[Tuple[Tuple[str, BackendFactory], ...]] = None,
        renegotiate_after: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not username or not password:
            raise ConfigError(f"missing username/password for {host}")
        self.netloc = f"{host}:{port}" if port else host
        self.endpoint = f"{scheme}://{self.netloc}"
        self.credentials = Credentials(username, password)
        self.transport = transport or Transport()
        self.logger = logger or logging.getLogger("triax_eoc_exporter")
        self.cookies = CookieStore(self.netloc, logger=self.logger)
        self.negotiator = Negotiator(backends, logger=self.logger)
        self.renegotiate_after = renegotiate_after
        self.backend: Optional[Backend] = None
        self._login_failures = 0
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"Client({self.endpoint!r}, username={self.credentials.username!r})"

    @property
    def state(self) -> AuthState:
        if self.backend is None:
            return AuthState.UNBOUND
        if self.cookies.is_set():
            return AuthState.BOUND_AUTHENTICATED
        return AuthState.BOUND_UNAUTHENTICATED

    def url(self, path: str) -> str:
        return f"{self.endpoint}/{path.lstrip('/')}"

    def bind(self) -> Backend:
        """Return the bound backend, negotiating one if there is none yet."""
        with self._lock:
            if self.backend is None:
                self.backend = self.negotiator.negotiate(self)
                self._login_failures = 0
            return self.backend

    def collect(self, sink: MetricSink) -> None:
        self.bind().collect(sink)

    def get(self, path: str, shape: Optional[Shape] = None) -> Any:
        return self.request("GET", path, shape=shape)

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        shape: Optional[Shape] = None,
    ) -> Any:
        """Send an API request, logging in again once if the session expired."""
        backend = self.bind()
        generation = self.cookies.generation
        try:
            payload, _ = self.request_raw(method, path, body, shape)
            return payload
        except UnexpectedStatus as exc:
            if exc.status not in AUTH_FAILURE_STATUSES:
                raise
            self.logger.info(
                "Session for %s rejected with status %d, logging in again",
                self.endpoint,
                exc.status,
            )

        self._relogin(backend, generation)
        payload, _ = self.request_raw(method, path, body, shape)
        return payload

    def _relogin(self, backend: Backend, generation: int) -> None:
        with self._lock:
            if self.cookies.generation != generation:
                self.logger.debug("Session for %s already renewed", self.endpoint)
                return
            self.cookies.clear()
            try:
                backend.login()
            except EocError as exc:
                self._login_failures += 1
                self.logger.warning(
                    "Login to %s with backend %s failed: %s", self.endpoint, backend.name, exc
                )
                if self.renegotiate_after and self._login_failures >= self.renegotiate_after:
                    self.logger.warning(
                        "Unbinding backend %s from %s after %d failed logins",
                        backend.name,
                        self.endpoint,
                        self._login_failures,
                    )
                    self.backend = None
                    self._login_failures = 0
                raise
            self._login_failures = 0

    def request_raw(
        self,
        method: str,
        path: str,
        body: Any = None,
        shape: Optional[Shape] = None,
    ) -> Tuple[Any, requests.Response]:
        """Send one request without login handling.

        The body, if given, is JSON encoded. A non-empty response body is
        JSON decoded and passed through ``shape``.
        """
        url = self.url(path)
        self.logger.debug("HTTP request %s %s", method, url)

        headers = {"Accept": "application/json"}
        data = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(body)
        cookie = self.cookies.header()
        if cookie:
            headers["Cookie"] = cookie

        response = self.transport.send(method, url, headers=headers, data=data)
        if not 200 <= response.status_code < 300:
            raise UnexpectedStatus(
                method,
                url,
                response.status_code,
                response.text,
                response.headers.get("Location"),
            )

        if not response.content and shape is None:
            return None, response

        try:
            payload = response.json()
        except ValueError as exc:
            self.logger.error("Undecodable response from %s: %s", url, response.text)
            raise DecodeError(f"decoding response from {url} failed: {exc}") from exc

        if shape is not None:
            try:
                payload = shape(payload)
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                raise DecodeError(f"unexpected response shape from {url}: {exc!r}") from exc
        return payload, response
