"""Router populated by generated registration code."""

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, Protocol

from routes_to_openapi.runtime.validation import RequestValidator

Handler = Callable[[Any], Any]


class RouteHost(Protocol):
    """Routing framework capability the router installs itself into."""

    def register(
        self,
        method: str,
        path: str,
        handler: Handler,
        validator: RequestValidator | None,
    ) -> None: ...


@dataclass(frozen=True)
class RegisteredRoute:
    method: str
    path: str
    handler: Handler
    validator: RequestValidator | None = None

    def __call__(self, payload: Any) -> Any:
        """Validate the request payload, then pass it unchanged to the handler."""
        if self.validator is not None:
            self.validator(payload)
        return self.handler(payload)


class Router:
    """Ordered route registrations. Earlier registrations win on conflicts."""

    def __init__(self) -> None:
        self._routes: list[RegisteredRoute] = []

    def add(
        self,
        method: str,
        path: str,
        handler: Handler,
        validator: RequestValidator | None = None,
    ) -> RegisteredRoute:
        registered = RegisteredRoute(method.upper(), path, handler, validator)
        self._routes.append(registered)
        return registered

    def __iter__(self) -> Iterator[RegisteredRoute]:
        return iter(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def find(self, method: str, path: str) -> RegisteredRoute | None:
        """First route registered for exactly this method and path template."""
        method = method.upper()
        for registered in self._routes:
            if registered.method == method and registered.path == path:
                return registered
        return None

    def install(self, host: RouteHost) -> None:
        """Register every route, in order, on a host framework.

        The host receives the bare handler and its validator and must run the
        validator before the handler. Hosts without a validation hook can
        register the ``RegisteredRoute`` itself, which does both.
        """
        for registered in self._routes:
            host.register(registered.method, registered.path, registered.handler, registered.validator)
