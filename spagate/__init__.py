"""
Spagate - serve a bundled single-page application over ASGI

Spagate serves the static assets of a client application from a closed,
read-only bundle, and injects the address of a backend server into the
entry document (``index.html``) once at startup.
"""

from ._assets import AssetRecord, AssetSource, DictAssetSource, AssetNotFound
from ._assets import bundled_assets
from ._index import RenderedIndex, IndexRenderError, render_index
from ._content import serve_content
from ._gateway import make_gateway_handler, create_app
from ._static import make_static_overlay
from ._config import ServerConfig, ConfigError, validate_addr
from ._app import to_asgi
from ._run import run


__all__ = [
    "AssetRecord",
    "AssetSource",
    "DictAssetSource",
    "AssetNotFound",
    "bundled_assets",
    "RenderedIndex",
    "IndexRenderError",
    "render_index",
    "serve_content",
    "make_gateway_handler",
    "create_app",
    "make_static_overlay",
    "ServerConfig",
    "ConfigError",
    "validate_addr",
    "to_asgi",
    "run",
]


__version__ = "0.1.0"
