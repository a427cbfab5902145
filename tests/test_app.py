"""
Test the ASGI adapter for request handlers.
"""

import pytest

import sarv
from sarv._app import normalize_response

from common import make_server


async def handler_str(request):
    return "hi!"


async def handler_bytes(request):
    return {"xx-foo": "x"}, b"\x00\x01"


async def handler_tuple(request):
    return 201, {"content-type": "text/html"}, f"<html>{request.path}</html>"


async def handler_error(request):
    raise RuntimeError("oops")


async def handler_bad_body(request):
    return 200, {}, 42


async def handler_accept_and_return(request):
    await request.accept(200, {})
    return "also a body"


async def handler_unfinished(request):
    await request.accept(200, {"content-type": "text/plain"})
    await request.send("part1 ")
    await request.send("part2")


def test_to_asgi_fails():

    def sync_handler(request):
        return "hi"

    with pytest.raises(TypeError):
        sarv.to_asgi(sync_handler)
    with pytest.raises(TypeError):
        sarv.to_asgi("not a handler")


def test_to_asgi_names():
    app = sarv.to_asgi(handler_str)
    assert app.__name__ == "handler_str"
    assert app.sarv_handler is handler_str


def test_handler_responses():

    with make_server(handler_str) as p:
        r = p.get("/")
    assert r.status == 200
    assert r.body == b"hi!"
    assert r.headers["content-type"] == "text/plain"
    assert r.headers["content-length"] == "3"

    with make_server(handler_bytes) as p:
        r = p.get("/")
    assert r.status == 200
    assert r.body == b"\x00\x01"
    assert r.headers["content-type"] == "application/octet-stream"
    assert r.headers["xx-foo"] == "x"

    with make_server(handler_tuple) as p:
        r = p.get("/foo")
    assert r.status == 201
    assert r.body == b"<html>/foo</html>"
    assert r.headers["content-type"] == "text/html"

    with make_server(sarv.to_asgi(handler_tuple)) as p:
        r = p.get("/bar")
    assert r.body == b"<html>/bar</html>"


def test_handler_errors():

    with make_server(handler_error) as p:
        r = p.get("/")
    assert r.status == 500
    assert "RuntimeError in request handler: oops" in r.body.decode()
    assert "ERROR RuntimeError in request handler" in p.out

    with make_server(handler_bad_body) as p:
        r = p.get("/")
    assert r.status == 500
    assert "Body cannot be" in r.body.decode()

    with make_server(handler_accept_and_return) as p:
        r = p.get("/")
    assert r.status == 200
    assert r.body == b""
    assert not r.complete  # connection dropped
    assert "should return None" in p.out


def test_handler_unfinished_response():

    with make_server(handler_unfinished) as p:
        r = p.get("/")
    assert r.status == 200
    assert r.body == b"part1 part2"
    assert r.complete
    assert "ERROR" not in p.out


def test_lifespan():

    with make_server(handler_str) as p:
        pass
    assert "INFO Server is starting up" in p.out
    assert "INFO Server is shutting down" in p.out


def test_normalize_response():

    assert normalize_response("x") == (200, {}, "x")
    assert normalize_response(("x",)) == (200, {}, "x")
    assert normalize_response(({"a": "b"}, "x")) == (200, {"a": "b"}, "x")
    assert normalize_response((404, {}, "x")) == (404, {}, "x")

    with pytest.raises(ValueError):
        normalize_response((200, {}, "x", "y"))
    with pytest.raises(ValueError):
        normalize_response(("200", {}, "x"))
    with pytest.raises(ValueError):
        normalize_response((200, [], "x"))
