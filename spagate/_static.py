"""
This module implements the development-mode overlay: requests under
``/cdn/static/`` are served straight from a local directory (e.g. the
output of the client's build), so that the client can be rebuilt without
restarting the server. Other requests fall through to the wrapped handler.
"""

import os
import asyncio
import datetime

from ._content import not_found, serve_content


STATIC_PREFIX = "/cdn/static/"


def _read_file(filename):
    """ Read a file from disk, returning ``(body, mtime)``, or None if
    it is not a regular file.
    """
    if not os.path.isfile(filename):
        return None
    with open(filename, "rb") as f:
        body = f.read()
    mtime = datetime.datetime.fromtimestamp(
        os.stat(filename).st_mtime, datetime.timezone.utc
    )
    return body, mtime


def make_static_overlay(directory, prefix=STATIC_PREFIX):
    """ Get a function that wraps a request handler, such that requests
    for paths starting with ``prefix`` are served from files in
    ``directory``. Files are read on each request. Paths that resolve to
    outside the directory, and missing files, produce a 404.
    """
    directory = os.path.realpath(directory)
    if not prefix.endswith("/"):
        prefix += "/"

    def overlay(handler):
        async def static_handler(request):
            path = request.path
            if not path.startswith(prefix):
                return await handler(request)

            relpath = path[len(prefix) :]
            try:
                filename = os.path.realpath(
                    os.path.join(directory, *relpath.split("/"))
                )
                if os.path.commonpath([directory, filename]) != directory:
                    return not_found()
            except ValueError:
                # E.g. a NUL byte in the path
                return not_found()

            loop = asyncio.get_running_loop()
            found = await loop.run_in_executor(None, _read_file, filename)
            if found is None:
                return not_found()
            body, mtime = found
            return serve_content(request, os.path.basename(filename), mtime, body)

        static_handler.__name__ = handler.__name__
        static_handler.__doc__ = handler.__doc__
        return static_handler

    return overlay
