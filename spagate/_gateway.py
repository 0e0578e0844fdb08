"""
This module implements the gateway: the request handler that serves the
rendered entry document and the bundled assets, and ``create_app()`` which
performs the startup sequence and produces the ASGI application.
"""

from ._app import logger, to_asgi
from ._assets import AssetNotFound, DictAssetSource, bundled_assets
from ._index import INDEX_PATH, render_index
from ._content import not_found, serve_content
from ._static import make_static_overlay
from ._config import ServerConfig


def make_gateway_handler(assets, index, index_path=INDEX_PATH):
    """ Get a request handler (a coroutine function) that serves from the
    given asset source, using the given ``RenderedIndex`` for the entry
    document. Usage:

    .. code-block:: python

        assets = DictAssetSource({"index.html": "...", "app.js": "..."})
        index = render_index(assets, "http://localhost:9080")
        handler = make_gateway_handler(assets, index)

    Handler behavior:

    * One leading slash is stripped from the request path; the result is
      used as the asset key as-is (no further normalization).
    * An empty path, or the path of the entry document, is served from the
      rendered index, never from the bundled template.
    * Paths that are not in the asset source produce a 404 with the body
      "resource not found".
    * All content is served via ``serve_content()``, which takes care of
      content-type, conditional requests and ranges.
    """
    name, mtime, body = index

    async def gateway_handler(request):
        path = request.path
        if path.startswith("/"):
            path = path[1:]

        if path == "" or path == index_path:
            return serve_content(request, name, mtime, body)

        try:
            asset = assets.lookup(path)
        except AssetNotFound:
            return not_found()

        return serve_content(request, asset.name, asset.mtime, asset.body)

    return gateway_handler


def create_app(config=None, assets=None):
    """ Create the ASGI application for the given ``ServerConfig``.

    The entry document is rendered here, before any server exists, so a
    missing or broken ``index.html`` (``IndexRenderError``) prevents the
    server from starting. If ``assets`` is not given, the asset source is
    loaded from ``config.assets_dir``, or the bundled client is used.
    """
    if config is None:
        config = ServerConfig()

    if assets is None:
        if config.assets_dir:
            assets = DictAssetSource.from_directory(config.assets_dir)
        else:
            assets = bundled_assets()

    index = render_index(assets, config.backend_addr)
    logger.info(f"Rendered {index.name} with backend address {config.backend_addr!r}")

    handler = make_gateway_handler(assets, index)
    if config.dev_mode:
        logger.info(f"Dev mode: serving /cdn/static/ from {config.static_dir}")
        handler = make_static_overlay(config.static_dir)(handler)

    return to_asgi(handler)
