"""
Test some specifics of the ASGI adapter.
"""

import logging
import asyncio

import spagate
from spagate._app import normalize_response, guess_content_type_from_body

from pytest import raises

from common import make_server


class LogCapturer(logging.Handler):
    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())

    def __enter__(self):
        logger = logging.getLogger("spagate")
        logger.addHandler(self)
        return self

    def __exit__(self, *args, **kwargs):
        logger = logging.getLogger("spagate")
        logger.removeHandler(self)


async def handler(request):
    return ""


def test_to_asgi_fails():
    def sync_handler(request):
        return ""

    with raises(TypeError):
        spagate.to_asgi(sync_handler)


def test_invalid_scope_types():
    app = spagate.to_asgi(handler)

    scope = {"type": "notaknownscope"}
    with LogCapturer() as cap:
        asyncio.run(app(scope, None, None))

    assert len(cap.messages) == 1
    assert "unknown" in cap.messages[0].lower() and "notaknownscope" in cap.messages[0]


def test_websocket_is_refused():
    app = spagate.to_asgi(handler)

    sent = []

    async def send(m):
        sent.append(m)

    scope = {"type": "websocket", "path": "/ws"}
    with LogCapturer() as cap:
        asyncio.run(app(scope, None, send))

    assert sent == [{"type": "websocket.close", "code": 1000}]
    assert len(cap.messages) == 1 and "/ws" in cap.messages[0]


def test_lifespan():
    app = spagate.to_asgi(handler)

    scope = {"type": "lifespan"}

    lifespan_messages = [
        {"type": "lifespan.startup"},
        {"type": "lifespan.bullshit"},
        {"type": "lifespan.shutdown"},
    ]
    sent = []

    async def receive():
        return lifespan_messages.pop(0)

    async def send(m):
        sent.append(m["type"])

    with LogCapturer() as cap:
        asyncio.run(app(scope, receive, send))

    assert sent == ["lifespan.startup.complete", "lifespan.shutdown.complete"]

    assert len(cap.messages) == 3
    assert cap.messages[0].lower().count("starting up")
    assert "bullshit" in cap.messages[1] and "unknown" in cap.messages[1].lower()
    assert cap.messages[2].lower().count("shutting down")


def test_response_normalization():
    async def handler1(request):
        return 201, {"xx-foo": "x"}, "hi!"

    async def handler2(request):
        return {"xx-foo": "x"}, b"ho!"

    async def handler3(request):
        return ("<html>ho</html>",)

    async def handler4(request):
        return {"answer": 42}

    with make_server(handler1) as p:
        r1 = p.get("/")
    with make_server(handler2) as p:
        r2 = p.get("/")
    with make_server(handler3) as p:
        r3 = p.get("/")
    with make_server(handler4) as p:
        r4 = p.get("/")

    assert r1.status == 201
    assert r1.body == b"hi!"
    assert r1.headers["xx-foo"] == "x"
    assert r1.headers["content-type"] == "text/plain"
    assert r1.headers["content-length"] == "3"

    assert r2.status == 200
    assert r2.headers["content-type"] == "application/octet-stream"

    assert r3.status == 200
    assert r3.headers["content-type"] == "text/html"

    assert r4.status == 200
    assert r4.body == b'{"answer": 42}'
    assert r4.headers["content-type"] == "application/json"


def test_normalize_response():
    assert normalize_response("x") == (200, {}, "x")
    assert normalize_response(("x",)) == (200, {}, "x")
    assert normalize_response(({"a": "b"}, "x")) == (200, {"a": "b"}, "x")
    assert normalize_response((404, {}, "x")) == (404, {}, "x")

    with raises(ValueError):
        normalize_response((1, 2, 3, 4))
    with raises(ValueError):
        normalize_response(("200", {}, "x"))
    with raises(ValueError):
        normalize_response((200, [], "x"))


def test_guess_content_type_from_body():
    assert guess_content_type_from_body("<!DOCTYPE html><p>") == "text/html"
    assert guess_content_type_from_body("  <html lang='en'>") == "text/html"
    assert guess_content_type_from_body("hello") == "text/plain"
    assert guess_content_type_from_body({}) == "application/json"
    assert guess_content_type_from_body(b"xx") == "application/octet-stream"


def test_bodyless_statuses():
    async def handler(request):
        return 304, {"etag": '"x"'}, "should not be sent"

    with make_server(handler) as p:
        r = p.get("/")

    assert r.status == 304
    assert r.body == b""
    assert "content-type" not in r.headers
    assert "content-length" not in r.headers
    assert r.headers["etag"] == '"x"'


def test_handler_errors_give_500():
    async def handler1(request):
        raise ValueError("wrong thing")

    async def handler2(request):
        return 200, {}, 3.0  # invalid body

    async def handler3(request):
        return "oops", {}, "x"  # invalid status

    for h in (handler1, handler2, handler3):
        with LogCapturer() as cap:
            with make_server(h) as p:
                r1 = p.get("/")
                r2 = p.get("/")

        # Each request fails on its own; the server keeps serving
        for r in (r1, r2):
            assert r.status == 500
            assert r.body == b"internal server error"
        errors = [m for m in cap.messages if "Error" in m]
        assert len(errors) == 2
        assert errors[0].startswith("ValueError in ")


if __name__ == "__main__":
    test_to_asgi_fails()
    test_invalid_scope_types()
    test_websocket_is_refused()
    test_lifespan()
    test_response_normalization()
    test_normalize_response()
    test_guess_content_type_from_body()
    test_bodyless_statuses()
    test_handler_errors_give_500()
