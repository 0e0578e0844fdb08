"""
Spagate test utilities.
"""

import os
import sys
import time
import asyncio
import tempfile
import subprocess
from collections import namedtuple
from wsgiref.handlers import format_date_time
from urllib.parse import unquote, urlsplit

from ._app import to_asgi


Response = namedtuple("Response", ["status", "headers", "body"])

PORT = 49152 + os.getpid() % 16383  # hash pid to ephimeral port number
URL = f"http://127.0.0.1:{PORT}"


class BaseTestServer:
    """ Base class for test servers. Objects of this class represent a
    running spagate instance that can be used to test against.

    The server can be started/stopped by using it as a context manager.
    The ``url`` attribute represents the url that can be used to make
    requests to the server. When the server has stopped, The ``out``
    attribute contains the server output (stdout and stderr).
    """

    def __init__(self, server_description, *, loop=None):
        self._server = server_description
        self._own_loop = loop is None
        self._loop = asyncio.new_event_loop() if loop is None else loop
        self._out = ""

    @property
    def url(self):
        """ The url at which the server is listening.
        """
        return URL

    @property
    def out(self):
        """ The stdout / stderr of the server. This gets set when the
        with-statement using this object exits.
        """
        return self._out

    def __enter__(self):
        self._out = ""
        self._start_server()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        out = self._stop_server()
        self._out = "\n".join(self.filter_lines(out.splitlines()))
        if self._own_loop:
            self._loop.close()

    def get(self, path, headers=None):
        """ Send a GET request to the server. See request() for details.
        """
        return self.request("GET", path, headers=headers)

    def head(self, path, headers=None):
        """ Send a HEAD request to the server. See request() for details.
        """
        return self.request("HEAD", path, headers=headers)

    def request(self, method, path, headers=None):
        """ Send a request to the server. Returns a named tuple
        ``(status, headers, body)``. The header keys are lowercase.

        Arguments:
            method (str): the HTTP method (e.g. "GET")
            path (str): path (possibly with query string) or full url.
            headers: headers to send (optional).
        """
        assert isinstance(method, str)
        assert isinstance(path, str)
        if path.startswith("http"):
            url = path
        elif path.startswith("/"):
            url = self.url + path
        else:
            url = self.url + "/" + path

        co = self._co_request(method, url, headers or {})
        status, headers, body = self._loop.run_until_complete(co)
        headers = dict((key.lower(), val) for key, val in headers.items())
        return Response(status, headers, body)

    def filter_lines(self, lines):
        """ Overloadable line filter.
        """
        return lines


class MockTestServer(BaseTestServer):
    """ Subclass of BaseTestServer that mocks an ASGI server and
    operates in-process. This is fast and allows tracking test coverage,
    so it's suited for unit tests.

    The ``app`` can be an ASGI application or a spagate handler. Paths
    are passed to the application verbatim, i.e. dot segments and double
    slashes are not normalized away like an HTTP client would.
    """

    def __init__(self, app, **kwargs):
        super().__init__("mock", **kwargs)

        if app.__code__.co_argcount == 3:
            self._asgi_app = app
        else:
            self._asgi_app = to_asgi(app)

        self._out_writes = []

    @property
    def app(self):
        """ The ASGI application being served.
        """
        return self._asgi_app

    def _write(self, msg):
        self._out_writes.append(msg)

    def _start_server(self):
        self._out_writes = []
        self._ori_streams = sys.stdout.write, sys.stderr.write
        sys.stdout.write = sys.stderr.write = self._write
        try:
            self._run_lifespan("startup")
        except Exception as err:
            self._restore_streams()
            raise err

    def _restore_streams(self):
        sys.stdout.write, sys.stderr.write = self._ori_streams

    def _stop_server(self):
        try:
            self._run_lifespan("shutdown")
        finally:
            self._restore_streams()
        return "".join(self._out_writes)

    def _run_lifespan(self, what):
        messages = [{"type": f"lifespan.{what}"}]
        if what == "startup":
            self._lifespan_completes = []

        async def receive():
            if messages:
                return messages.pop(0)
            # Mimic a server that keeps the lifespan task open
            await asyncio.sleep(9999)

        async def send(m):
            self._lifespan_completes.append(m["type"])

        async def runner():
            task = asyncio.ensure_future(
                self._asgi_app({"type": "lifespan"}, receive, send)
            )
            etime = time.time() + 5
            while f"lifespan.{what}.complete" not in self._lifespan_completes:
                if task.done():
                    task.result()
                    raise RuntimeError(f"Lifespan task finished without {what}")
                if time.time() > etime:
                    raise RuntimeError(f"Timeout for lifespan {what}")
                await asyncio.sleep(0.001)
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._loop.run_until_complete(runner())

    def _make_scope(self, method, url, headers):
        scheme, netloc, path, query, _ = urlsplit(url)
        if ":" in netloc:
            host, port = netloc.split(":", 1)
            port = int(port)
        else:
            host, port = netloc, {"http": 80, "https": 443}[scheme]

        rawheaders = [[b"host", netloc.encode()]]
        rawheaders += [
            [key.lower().encode(), value.encode("latin-1")]
            for key, value in headers.items()
        ]
        rawheaders.append([b"user-agent", b"spagate_mock_server"])
        return {
            "type": "http",
            "http_version": "1.1",
            "method": method.upper(),
            "scheme": scheme,
            "path": unquote(path),
            "raw_path": path.encode(),
            "root_path": "",
            "query_string": query.encode(),
            "headers": rawheaders,
            "client": ["testclient", 50000],
            "server": [host, port],
        }

    async def _co_request(self, method, url, headers):
        scope = self._make_scope(method, url, headers)

        async def receive():
            return {"type": "http.request", "body": b"", "more_body": False}

        response = []
        chunks = []

        async def send(m):
            if m["type"] == "http.response.start":
                headers = dict((h[0].decode(), h[1].decode()) for h in m["headers"])
                headers.setdefault("date", format_date_time(time.time()))
                headers.setdefault("server", "spagate_mock_server")
                response.extend([m["status"], headers])
            elif m["type"] == "http.response.body":
                chunks.append(m["body"])

        await self._asgi_app(scope, receive, send)
        if not response:
            response.extend([9999, {}])
        response.append(b"".join(chunks))
        return tuple(response)


class ProcessTestServer(BaseTestServer):
    """ Subclass of BaseTestServer that runs the ``spagate`` command in a
    subprocess, with the given ASGI server (e.g. "uvicorn" or "hypercorn")
    and extra command line arguments.

    This provides a realistic approach to test the gateway, though the
    overhead of starting and stopping the server costs about a second.
    Requests can be done via the methods of this object, or using any
    other request library.
    """

    def __init__(self, server, args=(), **kwargs):
        super().__init__(server, **kwargs)
        self._args = list(args)

    def _start_server(self):
        import requests

        # Don't use stdin; it breaks multiprocessing somehow!
        cmd = [sys.executable, "-m", "spagate", "--server", self._server]
        cmd += ["--listen-addr", "127.0.0.1", "-p", str(PORT)] + self._args
        # Output goes to a file, so a chatty server cannot block on a full pipe
        self._outfile = tempfile.TemporaryFile()
        self._p = subprocess.Popen(cmd, stdout=self._outfile, stderr=subprocess.STDOUT)
        # Wait for process to start, and make sure it is not dead
        etime = time.time() + 10
        while self._p.poll() is None and time.time() < etime:
            time.sleep(0.02)
            try:
                requests.get(URL + "/", timeout=0.1)
                break
            except (requests.ConnectionError, requests.Timeout):
                pass
        if self._p.poll() is not None:
            raise RuntimeError("Process failed to start!\n" + self._read_output())

    def _stop_server(self):
        for i in range(5):
            self._p.terminate()
            etime = time.time() + 5
            while self._p.poll() is None and time.time() < etime:
                time.sleep(0.01)
            if self._p.poll() is not None:
                break
        else:
            self._p.kill()
            self._p.wait()
        return self._read_output()

    def _read_output(self):
        self._outfile.seek(0)
        output = self._outfile.read().decode(errors="ignore")
        self._outfile.close()
        return output

    async def _co_request(self, method, url, headers):
        import requests

        r = requests.request(method, url, headers=headers)
        return r.status_code, r.headers, r.content
