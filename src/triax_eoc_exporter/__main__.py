import argparse
import logging
import os
from importlib.metadata import PackageNotFoundError, version
from typing import Optional

from .config import Config
from .errors import ConfigError
from .server import ExporterApp, start_server
from .transport import Transport


def _build_logger(verbose: bool) -> logging.Logger:
    logger = logging.getLogger("triax_eoc_exporter")
    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    handler.setFormatter(formatter)
    if not logger.handlers:
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger


def _version() -> str:
    try:
        return version("triax-eoc-exporter")
    except PackageNotFoundError:
        return "dev"


def parse_args(argv=None) -> argparse.Namespace:
    def _optional_env_int(var_name: str) -> Optional[int]:
        value = os.environ.get(var_name)
        if value is None or value == "":
            return None
        try:
            return int(value)
        except ValueError as exc:  # pragma: no cover - validated via argparse when provided
            raise argparse.ArgumentTypeError(
                f"Environment variable {var_name} must be an integer"
            ) from exc

    parser = argparse.ArgumentParser(description="Prometheus exporter for Triax EoC controllers")
    parser.add_argument(
        "--config",
        default=os.environ.get("EOC_CONFIG", "./config.toml"),
        help="Path to the TOML configuration file (can also be set via EOC_CONFIG)",
    )
    parser.add_argument(
        "--listen-address",
        default=os.environ.get("LISTEN_ADDRESS", "0.0.0.0"),
        help="Address for the exporter to bind to",
    )
    parser.add_argument(
        "--listen-port",
        type=int,
        default=int(os.environ.get("LISTEN_PORT", "9809")),
        help="Port for the exporter to listen on",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=float(os.environ.get("EOC_TIMEOUT", "30")),
        help="Timeout in seconds for controller API requests",
    )
    parser.add_argument(
        "--renegotiate-after",
        type=int,
        default=_optional_env_int("EOC_RENEGOTIATE_AFTER"),
        help="Forget the negotiated firmware backend after this many failed logins "
        "(default: never)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_version()}",
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logger = _build_logger(args.verbose)

    try:
        config = Config.load(args.config)
    except ConfigError as exc:
        raise SystemExit(str(exc)) from exc

    transport = Transport(timeout=args.timeout, logger=logger)
    app = ExporterApp(
        config,
        transport=transport,
        renegotiate_after=args.renegotiate_after,
        version=_version(),
        logger=logger,
    )
    server = start_server(app, args.listen_address, args.listen_port)

    logger.info(
        "Starting Triax EoC exporter for %d controller(s) on http://%s:%s/",
        len(config.controllers),
        args.listen_address,
        args.listen_port,
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Exporter interrupted, shutting down")
    finally:
        server.server_close()
        transport.close()


if __name__ == "__main__":
    main()
