"""
This module implements the adapter between a request handler (a coroutine
function that returns a response tuple) and the ASGI server.
"""

import sys
import json
import logging
import inspect

from ._request import HttpRequest

# Initialize the logger
logger = logging.getLogger("spagate")
logger.propagate = False
logger.setLevel(logging.INFO)
_handler = logging.StreamHandler(sys.stderr)
_handler.setFormatter(
    logging.Formatter(
        fmt="[%(levelname)s %(asctime)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )
)
logger.addHandler(_handler)

# Responses with these status codes must not carry content
BODYLESS_STATUSES = 204, 304


def normalize_response(response):
    """ Normalize the given response, by always returning a 3-element tuple
    (status, headers, body). It is safe to call this function multiple
    times on the same response.
    """
    if isinstance(response, tuple):
        if len(response) == 3:
            status, headers, body = response
        elif len(response) == 2:
            status = 200
            headers, body = response
        elif len(response) == 1:
            status, headers, body = 200, {}, response[0]
        else:
            raise ValueError(f"Handler returned {len(response)}-tuple.")
    else:
        status, headers, body = 200, {}, response

    if not isinstance(status, int):
        raise ValueError(f"Status code must be an int, not {type(status)}")
    if not isinstance(headers, dict):
        raise ValueError(f"Headers must be a dict, not {type(headers)}")

    return status, headers, body


def guess_content_type_from_body(body):
    """ Guess the content-type based of the body.

    * "text/html" for str bodies starting with ``<!DOCTYPE html>`` or ``<html>``.
    * "text/plain" for other str bodies.
    * "application/json" for dict bodies.
    * "application/octet-stream" otherwise.
    """
    if isinstance(body, str):
        if body.lstrip().startswith(("<!DOCTYPE html>", "<!doctype html>", "<html")):
            return "text/html"
        else:
            return "text/plain"
    elif isinstance(body, dict):
        return "application/json"
    else:
        return "application/octet-stream"


def encode_body(body):
    """ Convert a response body (bytes, str or dict) to bytes.
    """
    if isinstance(body, bytes):
        return body
    elif isinstance(body, str):
        return body.encode()
    elif isinstance(body, dict):
        try:
            return json.dumps(body).encode()
        except Exception as err:
            raise ValueError(f"Could not JSON encode body: {err}")
    elif inspect.iscoroutine(body):
        raise ValueError("Body cannot be a coroutine, forgot await?")
    else:
        raise ValueError(f"Body cannot be {type(body)}.")


def to_asgi(handler):
    """ Convert a request handler (a coroutine function) to an ASGI
    application, which can be served with an ASGI server, such as
    Uvicorn, Hypercorn, Daphne, etc.
    """

    if not inspect.iscoroutinefunction(handler):
        raise TypeError(
            "spagate.to_asgi() handler function must be a coroutine function."
        )

    async def application_wrapper(scope, receive, send):
        return await spagate_application(handler, scope, receive, send)

    application_wrapper.__module__ = handler.__module__
    application_wrapper.__name__ = handler.__name__
    application_wrapper.__doc__ = handler.__doc__
    application_wrapper.spagate_handler = handler
    return application_wrapper


async def spagate_application(handler, scope, receive, send):
    if scope["type"] == "http":
        await _handle_http(handler, HttpRequest(scope), send)
    elif scope["type"] == "websocket":
        logger.warning(f"Refusing websocket connection to {scope['path']}")
        await send({"type": "websocket.close", "code": 1000})
    elif scope["type"] == "lifespan":
        await _handle_lifespan(receive, send)
    else:
        logger.warning(f"Unknown ASGI type {scope['type']}")


async def _handle_lifespan(receive, send):
    while True:
        message = await receive()
        if message["type"] == "lifespan.startup":
            # The index has been rendered before the server was created
            logger.info("Server is starting up")
            await send({"type": "lifespan.startup.complete"})
        elif message["type"] == "lifespan.shutdown":
            logger.info("Server is shutting down")
            await send({"type": "lifespan.shutdown.complete"})
            return
        else:
            logger.warning(f"Unknown lifespan message {message['type']}")


async def _handle_http(handler, request, send):
    started = False
    try:
        where = "request handler"
        result = await handler(request)

        where = "processing handler output"
        status, headers, body = normalize_response(result)
        if status in BODYLESS_STATUSES:
            body = b""
        else:
            if "content-type" not in headers:
                headers["content-type"] = guess_content_type_from_body(body)
            body = encode_body(body)
            headers.setdefault("content-length", str(len(body)))

        where = "sending response"
        rawheaders = [(k.lower().encode(), str(v).encode()) for k, v in headers.items()]
        started = True
        await send(
            {"type": "http.response.start", "status": status, "headers": rawheaders}
        )
        await send({"type": "http.response.body", "body": body, "more_body": False})

    except Exception as err:
        # Log the error, and if possible send a 500
        error_text = f"{type(err).__name__} in {where}: {str(err)}"
        logger.error(error_text, exc_info=err)
        if not started:
            body = b"internal server error"
            rawheaders = [
                (b"content-type", b"text/plain"),
                (b"content-length", str(len(body)).encode()),
            ]
            await send(
                {"type": "http.response.start", "status": 500, "headers": rawheaders}
            )
            await send({"type": "http.response.body", "body": body, "more_body": False})
