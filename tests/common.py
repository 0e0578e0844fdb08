"""
Common utilities used in our test scripts.
"""

import os
import sys
import datetime

from spagate import DictAssetSource
from spagate.testutils import ProcessTestServer, MockTestServer


# A fixed bundle build time, as it would be baked into the binary
BUILD_TIME = datetime.datetime(2024, 3, 1, 12, 30, 15, tzinfo=datetime.timezone.utc)

INDEX_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<script>window.SERVER_ADDR = "{{ backend_addr }}";</script>
</head>
<body><div id="root"></div></body>
</html>
"""


def make_assets(**extra):
    """ Get an in-memory asset source with an index template and a few assets.
    """
    assets = {
        "index.html": INDEX_TEMPLATE,
        "favicon.ico": b"\x00\x00\x01\x00" + bytes(range(60)),
        "manifest.json": '{"short_name": "App"}',
        "cdn/static/js/main.js": "console.log('hi');\n",
        "cdn/static/css/main.css": "body { margin: 0; }\n",
        "README": "plain text without extension",
    }
    assets.update(extra)
    return DictAssetSource(assets, mtime=BUILD_TIME)


def get_backend():
    return os.environ.get("ASGI_SERVER", "mock").lower()


def set_backend_from_argv():
    for arg in sys.argv:
        if arg.upper().startswith("--ASGI_SERVER="):
            os.environ["ASGI_SERVER"] = arg.split("=")[1].strip().lower()


def run_tests(scope):
    for func in list(scope.values()):
        if callable(func) and func.__name__.startswith("test_"):
            print(f"Running {func.__name__} ...")
            func()
    print("Done")


def filter_lines(lines):
    # Overloadable line filter
    skip = ("INFO:", "[INFO ", "Running on http")
    return [line for line in lines if line and not line.startswith(skip)]


def make_server(app):
    server = MockTestServer(app)
    server.filter_lines = filter_lines
    return server


def make_process_server(args):
    server = ProcessTestServer(get_backend(), args)
    server.filter_lines = filter_lines
    return server
