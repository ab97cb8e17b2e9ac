"""
=============================================================================
ROUTE TABLE
=============================================================================

An ordered list of routes scanned top to bottom. The first route whose verb
and path both match wins; nothing after it is consulted.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /files/report.txt                                              │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌──────┬──────────────┬───────┬─────────────────────────┐          │
    │   │ verb │ path         │ exact │ target                  │          │
    │   ├──────┼──────────────┼───────┼─────────────────────────┤          │
    │   │ GET  │ /            │  yes  │ static 200              │          │
    │   │ GET  │ /echo/       │  no   │ handle_echo             │          │
    │   │ GET  │ /user-agent  │  yes  │ handle_user_agent       │          │
    │   │ GET  │ /files/      │  no   │ handle_download_file ◄──┼── MATCH  │
    │   │ POST │ /files/      │  no   │ handle_upload_file      │          │
    │   │ ANY  │ ""           │  no   │ static 404              │          │
    │   └──────┴──────────────┴───────┴─────────────────────────┘          │
    │        │                                                             │
    │        ▼                                                             │
    │   strip 7 chars ("/files/")  →  request.path == "report.txt"         │
    │        │                                                             │
    │        ▼                                                             │
    │   handle_download_file(config, request)                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
MATCHING RULES
=============================================================================

    verb:  route verb is ANY, or equals the request verb
    path:  exact  → string equality
           prefix → request path starts with the route path
                    (no segment boundary: "/echo/" matches "/echo/abc/def",
                     "/files" would also match "/filesystem")

A prefix route with path "" matches every path, which is how the final
catch-all works. Without a catch-all, an unmatched request gets a bare
404 and no handler runs.

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List, Optional, Union

from .request import HTTPRequest, HttpVerb
from .response import HTTPResponse, from_status, not_found
from .status_codes import HTTPStatus

if TYPE_CHECKING:
    from ..config import ServerConfig


logger = logging.getLogger(__name__)


# Handler: takes the shared config and the prefix-stripped request.
Handler = Callable[["ServerConfig", HTTPRequest], HTTPResponse]


@dataclass(frozen=True)
class StaticTarget:
    """Route target that answers with a bare status line."""

    status: HTTPStatus


@dataclass(frozen=True)
class DynamicTarget:
    """Route target that calls a handler function."""

    handler: Handler


Target = Union[StaticTarget, DynamicTarget]


@dataclass(frozen=True)
class Route:
    """
    A single entry of the route table.

        Route(HttpVerb.GET, "/files/", exact=False,
              target=DynamicTarget(handle_download_file))
    """

    verb: HttpVerb
    path: str
    exact: bool
    target: Target

    def matches(self, request: HTTPRequest) -> bool:
        """True if both the verb and the path of `request` fit this route."""
        if self.verb is not HttpVerb.ANY and self.verb is not request.verb:
            return False
        if self.exact:
            return request.path == self.path
        return request.path.startswith(self.path)


@dataclass(frozen=True)
class RouteMatch:
    """
    Result of a successful match.

    Attributes:
        route: The first route that matched.
        matched_length: Characters of the request path covered by the
                        route path. These are removed before dispatch.
    """

    route: Route
    matched_length: int


class Router:
    """
    Ordered route table with decorator-style registration.

    Example:
        router = Router()

        @router.get("/echo/", exact=False)
        def echo(config, request):
            return ok(request.path)

        router.any("", target=StaticTarget(HTTPStatus.NOT_FOUND))

    The table is built once before the server starts and only read after
    that, so lookups need no locking.
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        verb: HttpVerb,
        path: str,
        target: Union[Target, Handler],
        exact: bool = True,
    ) -> Route:
        """
        Append a route to the end of the table.

        Args:
            verb: Verb to match, or HttpVerb.ANY.
            path: Exact path or literal prefix.
            target: A StaticTarget, a DynamicTarget, or a bare handler
                    function (wrapped in DynamicTarget).
            exact: Match the whole path rather than a prefix.

        Returns:
            The new Route.
        """
        if verb is HttpVerb.UNKNOWN:
            raise ValueError("Routes cannot be declared for HttpVerb.UNKNOWN")
        if not isinstance(target, (StaticTarget, DynamicTarget)):
            target = DynamicTarget(target)

        route = Route(verb=verb, path=path, exact=exact, target=target)
        self._routes.append(route)
        logger.debug(
            f"Registered {verb.value} {path!r} "
            f"({'exact' if exact else 'prefix'})"
        )
        return route

    def route(
        self,
        verb: HttpVerb,
        path: str,
        exact: bool = True,
    ) -> Callable[[Handler], Handler]:
        """
        Decorator form of add_route().

        Usage:
            @router.route(HttpVerb.POST, "/files/", exact=False)
            def upload(config, request):
                ...
        """
        def decorator(handler: Handler) -> Handler:
            self.add_route(verb, path, handler, exact)
            return handler
        return decorator

    def get(self, path: str, exact: bool = True) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.route(HttpVerb.GET, path, exact)

    def post(self, path: str, exact: bool = True) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.route(HttpVerb.POST, path, exact)

    def any(self, path: str, target: Target, exact: bool = False) -> Route:
        """Register a route for every verb. Used for the final catch-all."""
        return self.add_route(HttpVerb.ANY, path, target, exact)

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def match(self, request: HTTPRequest) -> Optional[RouteMatch]:
        """
        Find the first route matching `request`.

        Returns:
            RouteMatch with the route and its path length, or None.
        """
        for route in self._routes:
            if route.matches(request):
                return RouteMatch(route=route, matched_length=len(route.path))
        return None

    def dispatch(self, config: "ServerConfig", request: HTTPRequest) -> HTTPResponse:
        """
        Match, strip the matched prefix, and invoke the target.

        Exceptions raised by a handler propagate to the caller.
        """
        found = self.match(request)
        if found is None:
            logger.debug(f"No route for {request.verb.value} {request.path}")
            return not_found()
        return self.invoke(config, found, request)

    @staticmethod
    def invoke(config: "ServerConfig", found: RouteMatch, request: HTTPRequest) -> HTTPResponse:
        """
        Strip the matched prefix from `request.path` and run the target.

            "/files/a/b.txt" with "/files/" matched  →  "a/b.txt"
        """
        request.path = request.path[found.matched_length:]
        target = found.route.target
        if isinstance(target, StaticTarget):
            return from_status(target.status)
        return target.handler(config, request)

    def routes(self) -> List[Route]:
        """All routes in declaration order."""
        return list(self._routes)
