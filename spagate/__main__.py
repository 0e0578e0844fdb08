"""
The spagate command line interface. Parses the flags, renders the entry
document and starts the server::

    spagate --addr http://localhost:9080 -p 8081

"""

import sys
import logging
import argparse

from . import __version__
from ._app import logger
from ._run import SERVERS, run
from ._index import IndexRenderError
from ._gateway import create_app
from ._config import (
    DEFAULT_LISTEN_ADDR,
    DEFAULT_PORT,
    DEFAULT_SERVER,
    DEFAULT_STATIC_DIR,
    ConfigError,
    ServerConfig,
    validate_addr,
    validate_port,
)


def make_parser():
    parser = argparse.ArgumentParser(
        prog="spagate",
        description="Serve the bundled client, with the backend address injected.",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help="Port on which the server will run.",
    )
    parser.add_argument(
        "--listen-addr",
        default=DEFAULT_LISTEN_ADDR,
        help="Address to listen on (default all interfaces).",
    )
    parser.add_argument(
        "--addr", default="", help="Address of the backend server to inject."
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Run in dev mode, serving /cdn/static/ from --static-dir.",
    )
    parser.add_argument(
        "--static-dir",
        default=DEFAULT_STATIC_DIR,
        help="Directory with the client's static build output (dev mode only).",
    )
    parser.add_argument(
        "--assets", default=None, help="Directory to load the asset bundle from."
    )
    parser.add_argument(
        "--server",
        default=DEFAULT_SERVER,
        choices=sorted(SERVERS),
        help="The ASGI server to use.",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="The logging level.",
    )
    parser.add_argument(
        "--version", action="store_true", help="Print the version and exit."
    )
    return parser


def parse_args(argv):
    """ Parse the command line arguments into a ``ServerConfig``. Raises
    ``ConfigError`` if the backend address or port is invalid.
    """
    args = make_parser().parse_args(argv)
    if args.version:
        print(f"spagate version: {__version__}")
        sys.exit(0)

    try:
        backend_addr = validate_addr(args.addr)
    except ConfigError as err:
        raise ConfigError(f"Error parsing backend server address: {err}") from None

    return ServerConfig(
        listen_addr=args.listen_addr,
        listen_port=validate_port(args.port),
        dev_mode=args.dev,
        backend_addr=backend_addr,
        server=args.server,
        assets_dir=args.assets,
        static_dir=args.static_dir,
        log_level=args.log_level,
    )


def main(argv=None):
    """ Entry point of the ``spagate`` command.
    """
    if argv is None:
        argv = sys.argv[1:]

    try:
        config = parse_args(argv)
        logger.setLevel(getattr(logging, config.log_level.upper()))
        app = create_app(config)
    except (ValueError, IndexRenderError) as err:
        # ConfigError is a ValueError
        logger.error(str(err))
        sys.exit(1)

    host = config.listen_addr or "0.0.0.0"
    logger.info(f"Listening on port {config.listen_port}...")
    run(
        app,
        config.server,
        f"{host}:{config.listen_port}",
        log_level="warning" if config.log_level == "info" else config.log_level,
    )


if __name__ == "__main__":
    main()
