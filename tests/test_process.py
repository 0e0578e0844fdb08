"""
Test the spagate command end-to-end, running a real ASGI server in a
subprocess. Only runs when a server is selected, e.g. ASGI_SERVER=uvicorn.
"""

import os

from pytest import skip

from common import get_backend, make_process_server, set_backend_from_argv


BACKEND = "http://localhost:9080"


def test_serve_bundled_client():
    if get_backend() == "mock":
        skip("Needs a real ASGI server")

    with make_process_server(["--addr", BACKEND]) as p:
        r1 = p.get("/")
        r2 = p.get("/index.html")
        r3 = p.get("/cdn/static/js/main.js")
        r4 = p.get("/nope.js")
        r5 = p.get("/", headers={"if-modified-since": r1.headers["last-modified"]})
        r6 = p.get("/index.html", headers={"range": "bytes=0-14"})

    assert r1.status == 200
    assert r1.body == r2.body
    assert f'window.SERVER_ADDR = "{BACKEND}";'.encode() in r1.body
    assert r1.headers["content-type"] == "text/html; charset=utf-8"

    assert r3.status == 200
    assert "javascript" in r3.headers["content-type"]

    assert r4.status == 404
    assert r4.body == b"resource not found"

    assert r5.status == 304
    assert r5.body == b""

    assert r6.status == 206
    assert r6.body == b"<!DOCTYPE html>"


def test_serve_dev_mode(tmp_path):
    if get_backend() == "mock":
        skip("Needs a real ASGI server")

    (tmp_path / "main.js").write_text("console.log('dev');")

    with make_process_server(["--dev", "--static-dir", str(tmp_path)]) as p:
        r1 = p.get("/cdn/static/main.js")
        r2 = p.get("/cdn/static/js/main.js")
        r3 = p.get("/")

    assert r1.status == 200 and r1.body == b"console.log('dev');"
    assert r2.status == 404
    assert r3.status == 200


def test_chatty_server_keeps_serving():
    if get_backend() == "mock":
        skip("Needs a real ASGI server")

    # Debug logging writes a line per request, more than a pipe buffer holds
    with make_process_server(["--log-level", "debug"]) as p:
        for i in range(1000):
            r = p.head(f"/nope-{i}-" + "x" * 100)
            assert r.status == 404
        r = p.get("/")

    assert r.status == 200


if __name__ == "__main__":
    import tempfile
    import pathlib

    set_backend_from_argv()
    os.environ.setdefault("ASGI_SERVER", "uvicorn")
    test_serve_bundled_client()
    with tempfile.TemporaryDirectory() as d:
        test_serve_dev_mode(pathlib.Path(d))
    test_chatty_server_keeps_serving()
