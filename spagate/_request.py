"""
This module implements the HttpRequest class that is passed as an argument
into the request handlers. The gateway never reads request bodies, so the
request object only exposes the request metadata.
"""

from urllib.parse import parse_qsl


class HttpRequest:
    """ An HTTP request, wrapping the ASGI scope. An object of this class
    is passed to the request handler.
    """

    __slots__ = ("_scope", "_headers", "_querylist")

    def __init__(self, scope):
        self._scope = scope
        self._headers = None
        self._querylist = None

    @property
    def scope(self):
        """ A dict representing the raw ASGI scope. See the
        `ASGI reference <https://asgi.readthedocs.io/en/latest/specs/www.html#connection-scope>`_
        for details.
        """
        return self._scope

    @property
    def method(self):
        """ The HTTP method (string). E.g. 'HEAD', 'GET', 'PUT', 'POST', 'DELETE'.
        """
        return self._scope["method"]

    @property
    def headers(self):
        """ A dictionary representing the headers. Keys are lowercase strings.
        """
        if self._headers is None:
            self._headers = dict(
                (key.decode().lower(), val.decode("latin-1"))
                for key, val in self._scope["headers"]
            )
        return self._headers

    @property
    def url(self):
        """ The full (unquoted) url, composed of scheme, host, port,
        path, and query parameters (string).
        """
        url = f"{self.scheme}://{self.host}:{self.port}{self.path}"
        if self.querylist:
            url += "?" + "&".join(f"{key}={val}" for key, val in self.querylist)
        return url

    @property
    def scheme(self):
        """ The URL scheme (string). E.g. 'http' or 'https'.
        """
        return self._scope["scheme"]

    @property
    def host(self):
        """ The requested host name, taken from the Host header,
        or ``scope['server'][0]`` if there is no Host header.
        """
        return self.headers.get("host", self._scope["server"][0]).split(":")[0]

    @property
    def port(self):
        """ The server's port (integer).
        """
        return self._scope["server"][1]

    @property
    def path(self):
        """ The path part of the URL (a string, with percent escapes decoded).
        Does not include the query string.
        """
        return self._scope.get("root_path", "") + self._scope["path"]

    @property
    def querylist(self):
        """ A list with ``(key, value)`` tuples, representing the URL query parameters.
        """
        if self._querylist is None:
            q = self._scope.get("query_string", b"")
            self._querylist = parse_qsl(q.decode())
        return self._querylist

    @property
    def querydict(self):
        """ A dictionary representing the URL query parameters.
        """
        return dict(self.querylist)
