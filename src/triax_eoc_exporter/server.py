import html
import json
import logging
import re
from socketserver import ThreadingMixIn
from typing import Iterable, List, Optional, Tuple
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from prometheus_client.core import CollectorRegistry

from .collector import EocCollector
from .config import Config
from .errors import EocError
from .transport import Transport

_TARGET_ROUTE = re.compile(r"^/controllers/(?P<target>[^/]+)/(?:(?P<metrics>metrics)|api/(?P<path>.*))$")

_INDEX = """<!doctype html>
<html>
<head>
\t<meta charset="UTF-8">
\t<title>Triax EoC Exporter (Version {version})</title>
</head>
<body>
\t<h1>Triax EoC Exporter</h1>
\t<p>Version: {version}</p>

\t<h2>Controllers</h2>
\t<p><a href="/controllers">List as JSON</a></p>
\t<dl>
{controllers}
\t</dl>
</body>
</html>
"""

_INDEX_ENTRY = """\t\t<dt>{alias}</dt>
\t\t<dd>
\t\t\t<a href="/controllers/{alias}/metrics">Metrics</a>,
\t\t\t<a href="/controllers/{alias}/api/api/node/status/">Status</a>
\t\t</dd>"""


class ExporterApp:
    """WSGI application exposing per-controller metrics."""

    def __init__(
        self,
        config: Config,
        transport: Optional[Transport] = None,
        renegotiate_after: Optional[int] = None,
        version: str = "dev",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.transport = transport or Transport()
        self.renegotiate_after = renegotiate_after
        self.version = version
        self.logger = logger or logging.getLogger("triax_eoc_exporter")

    def __call__(self, environ, start_response) -> Iterable[bytes]:
        status, headers, body = self.dispatch(
            environ.get("REQUEST_METHOD", "GET"), environ.get("PATH_INFO") or "/"
        )
        headers.append(("Content-Length", str(len(body))))
        start_response(status, headers)
        return [body]

    def dispatch(self, method: str, path: str) -> Tuple[str, List[Tuple[str, str]], bytes]:
        if method != "GET":
            return _text("405 Method Not Allowed", "method not allowed")
        if path == "/":
            return self.index()
        if path.rstrip("/") == "/controllers":
            aliases = [ctrl.alias for ctrl in self.config.controllers]
            return "200 OK", [("Content-Type", "application/json")], json.dumps(aliases).encode()

        match = _TARGET_ROUTE.match(path)
        if match is None:
            return _text("404 Not Found", "not found")

        client = self.config.client(
            match.group("target"),
            transport=self.transport,
            renegotiate_after=self.renegotiate_after,
            logger=self.logger,
        )
        if client is None:
            return _text("404 Not Found", "configuration not found")

        if match.group("metrics"):
            registry = CollectorRegistry()
            registry.register(EocCollector(client, self.logger))
            return "200 OK", [("Content-Type", CONTENT_TYPE_LATEST)], generate_latest(registry)

        try:
            payload = client.get(match.group("path"))
        except EocError as exc:
            self.logger.error("API request to %s failed: %s", client.endpoint, exc)
            return _text("502 Bad Gateway", str(exc))
        return "200 OK", [("Content-Type", "application/json")], json.dumps(payload).encode()

    def index(self) -> Tuple[str, List[Tuple[str, str]], bytes]:
        entries = "\n".join(
            _INDEX_ENTRY.format(alias=html.escape(ctrl.alias, quote=True))
            for ctrl in self.config.controllers
        )
        page = _INDEX.format(version=html.escape(self.version), controllers=entries)
        return "200 OK", [("Content-Type", "text/html; charset=utf-8")], page.encode()


def _text(status: str, message: str) -> Tuple[str, List[Tuple[str, str]], bytes]:
    return status, [("Content-Type", "text/plain; charset=utf-8")], (message + "\n").encode()


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """One thread per scrape, so slow controllers do not block others."""

    daemon_threads = True


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format, *args):  # pylint: disable=redefined-builtin
        logging.getLogger("triax_eoc_exporter").debug(format, *args)


def start_server(app: ExporterApp, address: str, port: int) -> WSGIServer:
    return make_server(address, port, app, ThreadingWSGIServer, handler_class=_QuietHandler)
