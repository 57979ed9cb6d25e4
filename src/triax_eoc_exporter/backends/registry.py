import logging
from typing import Any, Callable, List, Optional, Protocol, Sequence, Tuple

from ..errors import EocError, NoBackendError
from ..samples import MetricSink


class Backend(Protocol):
    """One firmware generation's login handshake and collection procedure."""

    name: str

    def login(self) -> None:
        ...

    def collect(self, sink: MetricSink) -> None:
        ...


BackendFactory = Callable[[Any], Backend]

_registry: List[Tuple[str, BackendFactory]] = []


def register(name: str) -> Callable[[BackendFactory], BackendFactory]:
    """Append a backend constructor; negotiation tries them in this order."""

    def decorator(factory: BackendFactory) -> BackendFactory:
        _registry.append((name, factory))
        return factory

    return decorator


def registered() -> Tuple[Tuple[str, BackendFactory], ...]:
    return tuple(_registry)


class Negotiator:
    def __init__(
        self,
        factories: Optional[Sequence[Tuple[str, BackendFactory]]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._factories = tuple(factories) if factories is not None else None
        self.logger = logger or logging.getLogger("triax_eoc_exporter")
        self.failures: List[Tuple[str, Exception]] = []

    @property
    def factories(self) -> Tuple[Tuple[str, BackendFactory], ...]:
        if self._factories is None:
            return registered()
        return self._factories

    def negotiate(self, client: Any) -> Backend:
        """Log in with each backend in turn and return the first that works.

        Every failed attempt is kept in ``failures``, also after a later
        backend succeeded.
        """
        self.failures = []
        for name, factory in self.factories:
            backend = factory(client)
            try:
                backend.login()
            except EocError as exc:
                self.logger.info("Backend %s not working for %s: %s", name, client.endpoint, exc)
                self.failures.append((name, exc))
                continue
            self.logger.info("Using backend %s for %s", name, client.endpoint)
            return backend
        raise NoBackendError(self.failures)
