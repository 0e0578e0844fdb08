"""
This module implements a ``run()`` function to start the gateway on an
ASGI server of choice.
"""


def run(app, server="uvicorn", bind="0.0.0.0:8081", log_level="info", **kwargs):
    """ Run the given ASGI app object with the given ASGI server. Blocks
    until the server stops.

    Arguments:

    * ``app`` (required): The ASGI application object (e.g. from ``create_app()``).
    * ``server``: The name of the server to use: uvicorn, hypercorn or daphne.
    * ``bind``: The address to listen on, as "host:port".
    * ``log_level``: The log level for the server, e.g. "warning" or "info".
    * ``kwargs``: additional arguments to pass to the underlying server.
    """

    assert isinstance(server, str), "spagate.run() server arg must be a string."
    assert isinstance(bind, str), "spagate.run() bind arg must be a string."
    assert ":" in bind, "spagate.run() bind arg must be 'host:port'"
    host, _, port = bind.rpartition(":")
    host = host or "0.0.0.0"
    port = int(port)

    # Select server function
    try:
        func = SERVERS[server.lower()]
    except KeyError:
        raise ValueError(f"Invalid server specified: {server!r}")

    # Delegate
    return func(app, host, port, log_level, **kwargs)


def _run_hypercorn(app, host, port, log_level, **kwargs):
    import asyncio
    from hypercorn.config import Config
    from hypercorn.asyncio import serve

    config = Config()
    config.bind = [f"{host}:{port}"]
    config.loglevel = log_level.upper()
    for key, val in kwargs.items():
        setattr(config, key, val)
    return asyncio.run(serve(app, config))


def _run_uvicorn(app, host, port, log_level, **kwargs):
    import uvicorn

    return uvicorn.run(app, host=host, port=port, log_level=log_level, **kwargs)


def _run_daphne(app, host, port, log_level, **kwargs):
    from daphne.server import Server
    from daphne.endpoints import build_endpoint_description_strings

    levelmap = {"error": 0, "warn": 0, "warning": 0, "info": 1, "debug": 2}
    kwargs.setdefault("verbosity", levelmap.get(log_level.lower(), 1))

    endpoints = build_endpoint_description_strings(host=host, port=port)
    return Server(application=app, endpoints=endpoints, **kwargs).run()


SERVERS = {"hypercorn": _run_hypercorn, "uvicorn": _run_uvicorn, "daphne": _run_daphne}
