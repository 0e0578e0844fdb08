"""
This module defines the server configuration and the validation of the
backend address that gets injected into the entry document.
"""

from collections import namedtuple
from urllib.parse import urlsplit


DEFAULT_PORT = 8081
DEFAULT_LISTEN_ADDR = ""
DEFAULT_SERVER = "uvicorn"
DEFAULT_STATIC_DIR = "./client/build/static"

ServerConfig = namedtuple(
    "ServerConfig",
    [
        "listen_addr",
        "listen_port",
        "dev_mode",
        "backend_addr",
        "server",
        "assets_dir",
        "static_dir",
        "log_level",
    ],
)
ServerConfig.__new__.__defaults__ = (
    DEFAULT_LISTEN_ADDR,
    DEFAULT_PORT,
    False,
    "",
    DEFAULT_SERVER,
    None,
    DEFAULT_STATIC_DIR,
    "info",
)


class ConfigError(ValueError):
    """ Raised for invalid configuration. Fatal at startup.
    """


def validate_addr(addr):
    """ Validate the backend address and return it in normalized form.

    An empty address is allowed (the client then asks the user for one).
    An address without a scheme, like "localhost:9080", gets "http://".
    The scheme must be http or https, there must be a host, and the port
    (if given) must be valid. The address may not contain a path (other
    than "/"), query or fragment. A trailing slash is removed.
    """
    addr = addr.strip()
    if not addr:
        return ""

    if "://" not in addr:
        addr = "http://" + addr

    try:
        parts = urlsplit(addr)
        port = parts.port
    except ValueError as err:
        raise ConfigError(f"invalid address {addr!r}: {err}") from None

    if parts.scheme not in ("http", "https"):
        raise ConfigError(f"unsupported scheme {parts.scheme!r} in {addr!r}")
    if not parts.hostname:
        raise ConfigError(f"missing host in {addr!r}")
    if port == 0:
        raise ConfigError(f"invalid port in {addr!r}")
    if parts.path not in ("", "/") or parts.query or parts.fragment:
        raise ConfigError(f"address {addr!r} should not have a path or query")

    return f"{parts.scheme}://{parts.netloc}"


def validate_port(port):
    """ Check that the given listen port is a valid port number.
    """
    if not isinstance(port, int) or not (0 < port < 65536):
        raise ConfigError(f"invalid listen port: {port!r}")
    return port
