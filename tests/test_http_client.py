"""Tests for the HTTP transport"""

from __future__ import annotations

import pytest

from pagewright.infrastructure.http_client import (
    JSON_RPC_API,
    ApiRequest,
    ConfluenceTransport,
    MultipartFile,
)


class TestApiRequest:
    """Tests for ApiRequest values"""

    def test_is_immutable(self):
        request = ApiRequest("get", "content/1", params={"expand": "version"})

        assert request.method == "GET"
        with pytest.raises(TypeError):
            request.params["expand"] = "ancestors"  # type: ignore[index]
        with pytest.raises(AttributeError):
            request.path = "content/2"  # type: ignore[misc]

    def test_defaults_are_empty_read_only_mappings(self):
        """Test a request built without mappings gets empty read-only ones"""
        request = ApiRequest("GET", "user/current")

        assert request.params == {}
        assert request.form == {}
        assert request.headers == {}
        assert request.files == ()
        assert not request.is_multipart
        with pytest.raises(TypeError):
            request.headers["X-Test"] = "1"  # type: ignore[index]

    def test_equal_requests_compare_equal(self):
        """Test two requests built from the same values are equal"""
        first = ApiRequest("GET", "content/", params={"spaceKey": "KEY"})
        second = ApiRequest("get", "content/", params={"spaceKey": "KEY"})

        assert first == second

    def test_params_are_copied(self):
        params = {"spaceKey": "KEY"}
        request = ApiRequest("GET", "content/", params=params)
        params["spaceKey"] = "OTHER"
        assert request.params["spaceKey"] == "KEY"

    def test_unknown_api_root(self):
        with pytest.raises(ValueError, match="Unknown API root"):
            ApiRequest("GET", "x", api="graphql")


class TestConfluenceTransport:
    """Tests for ConfluenceTransport"""

    def test_requires_base_url(self):
        with pytest.raises(ValueError, match="base URL is required"):
            ConfluenceTransport("")

    def test_basic_auth(self, session, make_response):
        session.queue(make_response(200, {}))
        transport = ConfluenceTransport("https://wiki.test/", "jane", "secret", session=session)

        transport.send(ApiRequest("GET", "content/1", params={"expand": "version"}))

        call = session.calls[0]
        assert transport.uses_basic_auth
        assert call.method == "GET"
        assert call.url == "https://wiki.test/rest/api/content/1"
        assert call.auth == ("jane", "secret")
        assert "Authorization" not in call.headers
        assert call.params == {"expand": "version"}

    def test_bearer_token_without_username(self, session, make_response):
        session.queue(make_response(200, {}))
        transport = ConfluenceTransport("https://wiki.test", "", "pat-123", session=session)

        transport.send(ApiRequest("GET", "user/current"))

        call = session.calls[0]
        assert not transport.uses_basic_auth
        assert call.auth is None
        assert call.headers["Authorization"] == "Bearer pat-123"
        assert call.params is None

    def test_json_body(self, session, make_response):
        session.queue(make_response(200, {}))
        transport = ConfluenceTransport("https://wiki.test", "u", "p", session=session)

        transport.send(ApiRequest("POST", "content/", json={"title": "T"}))

        assert session.calls[0].json == {"title": "T"}

    def test_rpc_root(self, session, make_response):
        session.queue(make_response(200, True))
        transport = ConfluenceTransport("https://wiki.test", "u", "p", session=session)

        transport.send(ApiRequest("POST", "setContentPermissions", api=JSON_RPC_API, json=["1"]))

        assert session.calls[0].url == "https://wiki.test/rpc/json-rpc/confluenceservice-v2/setContentPermissions"

    def test_multipart_upload(self, session, make_response):
        session.queue(make_response(200, {}))
        transport = ConfluenceTransport("https://wiki.test", None, "pat", session=session)
        request = ApiRequest(
            "POST",
            "content/1/child/attachment",
            files=(MultipartFile("file", "a.txt", b"hello"),),
            form={"comment": "first"},
            headers={"X-Atlassian-Token": "no-check"},
        )

        transport.send(request)

        call = session.calls[0]
        assert call.files == [("file", ("a.txt", b"hello", "application/octet-stream"))]
        assert call.data == {"comment": "first"}
        assert call.headers["X-Atlassian-Token"] == "no-check"
        assert call.headers["Authorization"] == "Bearer pat"
        assert not hasattr(call, "json")

    def test_host(self):
        transport = ConfluenceTransport("https://acme.atlassian.net/wiki", "u", "p")
        assert transport.host == "acme.atlassian.net"
