"""
Unit tests for the route table.
"""

import pytest

from streamhttp.config import ServerConfig
from streamhttp.http.request import HTTPRequest, HttpVerb
from streamhttp.http.response import HTTPResponse, ok
from streamhttp.http.router import DynamicTarget, Router, StaticTarget
from streamhttp.http.status_codes import HTTPStatus
from streamhttp.server import default_router


def make_request(verb: HttpVerb, path: str) -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(verb=verb, path=path)


def path_handler(config: ServerConfig, request: HTTPRequest) -> HTTPResponse:
    """Handler that answers with the path it received."""
    return ok(request.path)


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        """Test adding routes."""
        router = Router()
        router.add_route(HttpVerb.GET, "/users", path_handler)

        routes = router.routes()
        assert len(routes) == 1
        assert routes[0].path == "/users"
        assert routes[0].verb is HttpVerb.GET
        assert routes[0].exact is True
        assert routes[0].target == DynamicTarget(path_handler)

    def test_unknown_verb_rejected(self):
        """Test routes cannot be declared for UNKNOWN."""
        with pytest.raises(ValueError):
            Router().add_route(HttpVerb.UNKNOWN, "/", path_handler)

    def test_exact_match(self):
        """Test exact routes need string equality."""
        router = Router()
        router.add_route(HttpVerb.GET, "/user-agent", path_handler, exact=True)

        assert router.match(make_request(HttpVerb.GET, "/user-agent")) is not None
        assert router.match(make_request(HttpVerb.GET, "/user-agent/x")) is None
        assert router.match(make_request(HttpVerb.GET, "/user")) is None

    def test_prefix_match(self):
        """Test prefix routes ignore segment boundaries."""
        router = Router()
        router.add_route(HttpVerb.GET, "/files", path_handler, exact=False)

        assert router.match(make_request(HttpVerb.GET, "/files/a")) is not None
        assert router.match(make_request(HttpVerb.GET, "/filesystem")) is not None
        assert router.match(make_request(HttpVerb.GET, "/file")) is None

    def test_verb_filter(self):
        """Test a route only matches its own verb."""
        router = Router()
        router.add_route(HttpVerb.POST, "/files/", path_handler, exact=False)

        assert router.match(make_request(HttpVerb.GET, "/files/a")) is None
        assert router.match(make_request(HttpVerb.POST, "/files/a")) is not None

    def test_any_matches_every_verb(self):
        """Test ANY accepts GET, POST and UNKNOWN."""
        router = Router()
        router.any("", StaticTarget(HTTPStatus.NOT_FOUND))

        for verb in (HttpVerb.GET, HttpVerb.POST, HttpVerb.UNKNOWN):
            assert router.match(make_request(verb, "/anything")) is not None

    def test_first_match_wins(self):
        """Test declaration order decides between overlapping routes."""
        router = Router()
        first = router.add_route(HttpVerb.GET, "/a", StaticTarget(HTTPStatus.OK), exact=False)
        router.add_route(HttpVerb.GET, "/a/b", StaticTarget(HTTPStatus.CREATED), exact=False)

        found = router.match(make_request(HttpVerb.GET, "/a/b/c"))
        assert found.route is first
        assert found.matched_length == 2

    def test_dispatch_strips_prefix(self, config: ServerConfig):
        """Test the handler sees the path without the route prefix."""
        router = Router()
        router.add_route(HttpVerb.GET, "/echo/", path_handler, exact=False)

        response = router.dispatch(config, make_request(HttpVerb.GET, "/echo/abc/def"))

        assert response.payload.blocks == [b"abc/def"]

    def test_dispatch_static_target(self, config: ServerConfig):
        """Test static targets answer with a bare status line."""
        router = Router()
        router.add_route(HttpVerb.GET, "/", StaticTarget(HTTPStatus.OK))

        response = router.dispatch(config, make_request(HttpVerb.GET, "/"))

        assert response.status == HTTPStatus.OK
        assert response.headers == []
        assert response.payload is None

    def test_no_match_is_404(self, config: ServerConfig):
        """Test an empty table answers 404 without calling anything."""
        response = Router().dispatch(config, make_request(HttpVerb.GET, "/x"))

        assert response.status == HTTPStatus.NOT_FOUND

    def test_decorators(self):
        """Test get/post decorators register routes."""
        router = Router()

        @router.get("/a")
        def a(config, request):
            return ok()

        @router.post("/b/", exact=False)
        def b(config, request):
            return ok()

        routes = router.routes()
        assert [(r.verb, r.path, r.exact) for r in routes] == [
            (HttpVerb.GET, "/a", True),
            (HttpVerb.POST, "/b/", False),
        ]


class TestDefaultRoutes:
    """Tests for the built-in route table."""

    def match_path(self, verb: HttpVerb, path: str):
        found = default_router().match(make_request(verb, path))
        return found.route

    def test_root(self):
        """Test GET / is a static 200."""
        route = self.match_path(HttpVerb.GET, "/")
        assert route.target == StaticTarget(HTTPStatus.OK)

    def test_root_is_exact(self):
        """Test GET /other falls through to the catch-all."""
        route = self.match_path(HttpVerb.GET, "/other")
        assert route.target == StaticTarget(HTTPStatus.NOT_FOUND)

    def test_post_files_goes_to_upload(self):
        """Test POST /files/ reaches the upload route, not download."""
        route = self.match_path(HttpVerb.POST, "/files/a.bin")
        assert route.verb is HttpVerb.POST
        assert route.target.handler.__name__ == "handle_upload_file"

    def test_unknown_verb_hits_catch_all(self):
        """Test UNKNOWN verbs land on the catch-all 404."""
        route = self.match_path(HttpVerb.UNKNOWN, "/files/a")
        assert route.verb is HttpVerb.ANY
        assert route.target == StaticTarget(HTTPStatus.NOT_FOUND)

    def test_declaration_order(self):
        """Test the catch-all is declared last."""
        routes = default_router().routes()

        assert [r.path for r in routes] == [
            "/", "/echo/", "/user-agent", "/files/", "/files/", "",
        ]
        assert routes[-1].verb is HttpVerb.ANY
