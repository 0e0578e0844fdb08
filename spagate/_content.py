"""
This module implements the serving of a single piece of content, applying
the usual HTTP content negotiation: content-type, conditional requests
(etag and modification time) and byte ranges.
"""

import re
import hashlib
import datetime
import mimetypes
from email.utils import format_datetime, parsedate_to_datetime

from ._app import guess_content_type_from_body


_EPOCH = datetime.datetime.fromtimestamp(0, datetime.timezone.utc)

_RANGE_RE = re.compile(r"^\s*bytes\s*=\s*([0-9]*)\s*-\s*([0-9]*)\s*$", re.IGNORECASE)


class RangeNotSatisfiable(ValueError):
    """ Raised by ``parse_range()`` for a valid range that lies outside
    the content.
    """


def http_date(dt):
    """ Format an aware datetime as an HTTP date (RFC 7231).
    """
    return format_datetime(dt.astimezone(datetime.timezone.utc), usegmt=True)


def parse_http_date(value):
    """ Parse an HTTP date into an aware datetime. Returns None if the
    value cannot be parsed.
    """
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt


def parse_range(value, size):
    """ Parse the value of a Range header for content of the given size.

    Returns a ``(first, last)`` tuple of inclusive byte offsets, or None
    when the header is malformed or asks for multiple ranges (in which
    case the full content should be served). Raises RangeNotSatisfiable
    if the range is well-formed but does not overlap the content.
    """
    m = _RANGE_RE.match(value)
    if m is None:
        return None
    try:
        # Digit runs too long for int() count as malformed
        first = int(m.group(1)) if m.group(1) else None
        last = int(m.group(2)) if m.group(2) else None
    except ValueError:
        return None

    if first is None:
        # Suffix range: the last n bytes
        if last is None:
            return None
        length = last
        if length == 0 or size == 0:
            raise RangeNotSatisfiable(value)
        return max(size - length, 0), size - 1

    if last is None:
        last = size - 1
    if last < first:
        return None
    if first >= size:
        raise RangeNotSatisfiable(value)
    return first, min(last, size - 1)


def not_found():
    return 404, {"content-type": "text/plain"}, "resource not found"


def make_etag(body):
    return '"' + hashlib.sha256(body).hexdigest() + '"'


def _etags(value):
    return [tag.strip() for tag in value.split(",") if tag.strip()]


def _strong_match(value, etag):
    return any(tag == "*" or tag == etag for tag in _etags(value))


def _weak_match(value, etag):
    for tag in _etags(value):
        if tag.startswith("W/"):
            tag = tag[2:]
        if tag == "*" or tag == etag:
            return True
    return False


def guess_content_type(name, body):
    """ Get the content-type from the extension of the name, or from the
    body if the extension is unknown.
    """
    ctype, _ = mimetypes.guess_type(name)
    if ctype:
        if ctype.startswith("text/") or ctype == "application/javascript":
            ctype += "; charset=utf-8"
        return ctype
    try:
        return guess_content_type_from_body(body.decode())
    except UnicodeDecodeError:
        return "application/octet-stream"


def serve_content(request, name, mtime, body):
    """ Produce the response for serving ``body`` (bytes) that has the given
    name and modification time, taking the request headers into account.
    Returns a ``(status, headers, body)`` tuple.

    * Only GET and HEAD are allowed; other methods get a 405.
    * The ``content-type`` is derived from the name, or sniffed from the body.
    * The ``etag`` header is a (sha256) hash of the body, ``last-modified``
      is set from ``mtime`` (unless it is the epoch, i.e. unknown).
    * ``if-match`` and ``if-unmodified-since`` can produce a 412.
    * ``if-none-match`` and ``if-modified-since`` can produce a 304.
    * A single ``range`` produces a 206, or a 416 if it is not satisfiable.
      Malformed ranges and multiple ranges are ignored.
    * Responses to HEAD requests have the same headers, but no body.
    """
    method = request.method
    if method not in ("GET", "HEAD"):
        headers = {"allow": "GET, HEAD", "content-type": "text/plain"}
        return 405, headers, "method not allowed"

    req_headers = request.headers
    size = len(body)
    etag = make_etag(body)

    mtime = mtime.replace(microsecond=0)
    has_mtime = mtime > _EPOCH

    headers = {"etag": etag}
    if has_mtime:
        headers["last-modified"] = http_date(mtime)

    # Preconditions
    if "if-match" in req_headers:
        if not _strong_match(req_headers["if-match"], etag):
            return 412, {"content-type": "text/plain"}, "precondition failed"
    elif "if-unmodified-since" in req_headers and has_mtime:
        since = parse_http_date(req_headers["if-unmodified-since"])
        if since is not None and mtime > since:
            return 412, {"content-type": "text/plain"}, "precondition failed"

    # Is the client's copy still fresh?
    if "if-none-match" in req_headers:
        if _weak_match(req_headers["if-none-match"], etag):
            return 304, headers, b""
    elif "if-modified-since" in req_headers and has_mtime:
        since = parse_http_date(req_headers["if-modified-since"])
        if since is not None and mtime <= since:
            return 304, headers, b""

    headers["content-type"] = guess_content_type(name, body)
    headers["accept-ranges"] = "bytes"

    status = 200
    range_value = req_headers.get("range", "")
    if range_value and method == "GET" and _if_range_holds(req_headers, etag, mtime):
        try:
            byte_range = parse_range(range_value, size)
        except RangeNotSatisfiable:
            headers = {"content-range": f"bytes */{size}", "content-type": "text/plain"}
            return 416, headers, "requested range not satisfiable"
        if byte_range is not None:
            first, last = byte_range
            status = 206
            body = body[first : last + 1]
            headers["content-range"] = f"bytes {first}-{last}/{size}"

    headers["content-length"] = str(len(body))

    # The response to a head request should not include a body
    if method == "HEAD":
        body = b""

    return status, headers, body


def _if_range_holds(req_headers, etag, mtime):
    value = req_headers.get("if-range", "").strip()
    if not value:
        return True
    if value.startswith('"'):
        return value == etag
    since = parse_http_date(value)
    return since is not None and since == mtime
