"""
This module implements the rendering of the entry document. The bundled
``index.html`` is a Jinja2 template with a single substitution point,
``{{ backend_addr }}``. It is rendered once at startup; the result is what
gets served for ``/`` and ``/index.html``.
"""

from collections import namedtuple

import jinja2

from ._assets import AssetNotFound


INDEX_PATH = "index.html"

RenderedIndex = namedtuple("RenderedIndex", ["name", "mtime", "body"])


class IndexRenderError(RuntimeError):
    """ Raised when the entry document cannot be rendered. This is fatal
    at startup; there is no sensible way to serve the app without it.
    """


_env = jinja2.Environment(
    autoescape=True,
    undefined=jinja2.StrictUndefined,
    keep_trailing_newline=True,
)


def render_index(assets, backend_addr, index_path=INDEX_PATH):
    """ Render the entry document from the given asset source, injecting
    ``backend_addr``. Returns a ``RenderedIndex`` that inherits the name
    and modification time of the bundled asset, so that HTTP caching
    keeps following the bundle.

    Raises ``IndexRenderError`` if the asset is missing, is not a valid
    template, or cannot be rendered.
    """
    try:
        asset = assets.lookup(index_path)
    except AssetNotFound:
        raise IndexRenderError(f'error retrieving "{index_path}" asset') from None

    try:
        source = asset.body.decode()
        template = _env.from_string(source)
    except (UnicodeDecodeError, jinja2.TemplateSyntaxError) as err:
        raise IndexRenderError(f'error parsing "{index_path}" contents: {err}')

    try:
        text = template.render(backend_addr=backend_addr)
    except jinja2.TemplateError as err:
        raise IndexRenderError(f'error executing "{index_path}" template: {err}')

    body = text.encode()
    if not body:
        raise IndexRenderError(f'rendering "{index_path}" produced no content')

    return RenderedIndex(asset.name, asset.mtime, body)
