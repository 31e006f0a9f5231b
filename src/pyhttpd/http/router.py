"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) to a handler function, extracting path parameters.

Supports:
- Static paths: /, /user-agent
- Wildcard segments: /echo/{str}, /files/{filename}
- Per-method tables: GET and POST routes for the same pattern are
  independent

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Incoming Request                                                   │
    │   GET /echo/hello%20world                                            │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  ROUTER                                                      │   │
    │   │                                                              │   │
    │   │  1. Method known?  "GET" ∈ {GET, POST}    no → 405           │   │
    │   │                                                              │   │
    │   │  2. Scan GET table in registration order:                    │   │
    │   │     ┌────────────────────────────────────────────────────┐  │   │
    │   │     │ /                  → root                          │  │   │
    │   │     │ /echo/{str}        → echo          ← MATCH!        │  │   │
    │   │     │ /user-agent        → user_agent                    │  │   │
    │   │     │ /files/{filename}  → files.read                    │  │   │
    │   │     └────────────────────────────────────────────────────┘  │   │
    │   │                                        nothing → 404         │   │
    │   │                                                              │   │
    │   │  3. Decode and bind: path_params = {"str": "hello world"}    │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   echo(request)                                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PATTERN MATCHING
=============================================================================

Patterns are compiled segment by segment into an anchored regex:

    Pattern:  /files/{filename}
    Regex:    ^/files/([^/]*)$
                      ───────
                      one segment, possibly empty

Because a wildcard can never match "/", a request only matches a pattern
with the same number of segments:

    /echo/{str}   vs  /echo/abc      → {"str": "abc"}
                  vs  /echo/         → {"str": ""}
                  vs  /echo/a/b      → no match (3 segments vs 4)
                  vs  /echo          → no match

Matching runs against the RAW path; captured values are percent-decoded
afterwards, so an encoded slash (%2F) stays inside its segment.

First registered wins when two patterns overlap: register /files/latest
before /files/{filename} if both exist.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
from urllib.parse import unquote
import logging
import re

from .request import HTTPRequest
from .response import HTTPResponse, method_not_allowed, not_found


logger = logging.getLogger(__name__)


# Handler: takes a request, returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]

_WILDCARD = re.compile(r"^\{([^{}/]*)\}$")


@dataclass
class Route:
    """
    A registered route: one method, one pattern, one handler.

        Route(
            method="GET",
            pattern="/echo/{str}",
            handler=echo,
            _regex=re.compile(r"^/echo/([^/]*)$"),
            _param_names=["str"],
        )
    """

    method: str
    pattern: str
    handler: Handler
    _regex: Optional["re.Pattern[str]"] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    """
    Result of a successful route match.

    params holds the percent-decoded wildcard values.
    """
    route: Route
    params: Dict[str, str]


class Router:
    """
    Per-method route table with {name} wildcard segments.

    ==========================================================================
    USAGE
    ==========================================================================

        router = Router()

        @router.get("/echo/{str}")
        def echo(request):
            return ok(request.path_params["str"], "text/plain")

        router.add_route("POST", "/files/{filename}", files.write)

        router.freeze()                    # no more registrations
        response = router.dispatch(request)

    ==========================================================================
    RECOGNIZED METHODS
    ==========================================================================

    The methods the router "knows" are exactly the ones with at least one
    registered route. Anything else (PUT, DELETE, BREW, ...) gets 405 with
    an Allow header, before any pattern is looked at. A known method whose
    patterns do not match gets 404.

    ==========================================================================
    """

    def __init__(self):
        self._routes: Dict[str, List[Route]] = {}
        self._frozen = False

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(self, method: str, pattern: str, handler: Handler) -> Route:
        """
        Register a route.

        Args:
            method: HTTP method (compared case-insensitively)
            pattern: Path pattern, e.g. "/files/{filename}"
            handler: Function taking HTTPRequest, returning HTTPResponse

        Returns:
            The registered Route

        Raises:
            RuntimeError: If the table has been frozen
            ValueError: If the pattern does not start with "/"
        """
        if self._frozen:
            raise RuntimeError(
                f"Cannot add route {method} {pattern}: route table is frozen"
            )
        if not pattern.startswith("/"):
            raise ValueError(f"Route pattern must start with '/': {pattern!r}")

        regex, param_names = self._compile_pattern(pattern)
        route = Route(
            method=method.upper(),
            pattern=pattern,
            handler=handler,
            _regex=regex,
            _param_names=param_names,
        )
        self._routes.setdefault(route.method, []).append(route)
        logger.debug(f"Registered route {route.method} {pattern}")
        return route

    def _compile_pattern(self, pattern: str):
        """
        Compile a path pattern into an anchored regex.

            "/echo/{str}"
                │
                ▼  split on "/"
            ["", "echo", "{str}"]
                │
                ▼  literal → re.escape, {name} → ([^/]*)
            ^/echo/([^/]*)$   names = ["str"]

        Only a whole segment of the form {name} is a wildcard;
        "/v{n}" is the literal segment "v{n}".

        Returns:
            Tuple of (compiled regex, list of parameter names)
        """
        param_names: List[str] = []
        regex_parts = []

        for segment in pattern.split("/"):
            wildcard = _WILDCARD.match(segment)
            if wildcard:
                param_names.append(wildcard.group(1))
                regex_parts.append("([^/]*)")
            else:
                regex_parts.append(re.escape(segment))

        return re.compile("^" + "/".join(regex_parts) + "$"), param_names

    def freeze(self) -> "Router":
        """Make the table read-only. Called before the listener starts."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    @property
    def allowed_methods(self) -> List[str]:
        """Methods with at least one route, in first-registration order."""
        return list(self._routes)

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the first route for this method whose pattern matches path.

        Args:
            method: HTTP method (any casing)
            path: Raw request path, without query string

        Returns:
            RouteMatch with decoded params, or None
        """
        for route in self._routes.get(method.upper(), []):
            found = route._regex.match(path)
            if found:
                params = {
                    name: unquote(value)
                    for name, value in zip(route._param_names, found.groups())
                }
                return RouteMatch(route=route, params=params)
        return None

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request to its handler.

        1. Unknown method         → 405 with Allow
        2. Find matching route    → none: 404
        3. Bind path parameters
        4. Call handler and return its response

        Exceptions raised by the handler propagate to the caller.
        """
        method = request.method.upper()
        if method not in self._routes:
            logger.debug(f"Method not allowed: {request.method}")
            return method_not_allowed(self.allowed_methods)

        match = self.match(method, request.route_path)
        if match is None:
            logger.debug(f"No route for {method} {request.path}")
            return not_found()

        request.bind_path_params(match.params)
        return match.route.handler(request)

    # =========================================================================
    # DECORATOR-STYLE ROUTE REGISTRATION
    # =========================================================================

    def route(self, pattern: str, method: str = "GET") -> Callable[[Handler], Handler]:
        """
        Decorator for registering routes.

        Usage:
            @router.route("/files/{filename}", method="POST")
            def upload(request):
                ...
        """
        def decorator(handler: Handler) -> Handler:
            self.add_route(method, pattern, handler)
            return handler
        return decorator

    def get(self, pattern: str) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.route(pattern, "GET")

    def post(self, pattern: str) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.route(pattern, "POST")

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def routes(self) -> List[Route]:
        """All registered routes, grouped by method, in registration order."""
        return [route for table in self._routes.values() for route in table]

    def describe(self) -> List[str]:
        """
        One line per route, for startup logging.

            ["GET      /", "GET      /echo/{str}", "POST     /files/{filename}"]
        """
        return [f"{route.method:8} {route.pattern}" for route in self.routes()]
