"""
This module implements the asset source: a closed, read-only mapping from
relative paths to asset records. The gateway only ever calls ``lookup()``,
so any immutable key/value store can act as a source.
"""

import os
import datetime
from collections import namedtuple


AssetRecord = namedtuple("AssetRecord", ["path", "body", "name", "mtime"])

BUNDLE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "client")


class AssetNotFound(KeyError):
    """ Raised by an asset source when a path is not part of the bundle.
    Subclass of KeyError.
    """

    def __str__(self):
        return f"asset not found: {self.args[0]!r}"


def _to_datetime(mtime):
    # Accepts None, a POSIX timestamp or a datetime; always returns aware UTC
    if mtime is None:
        return datetime.datetime.fromtimestamp(0, datetime.timezone.utc)
    elif isinstance(mtime, (int, float)):
        return datetime.datetime.fromtimestamp(mtime, datetime.timezone.utc)
    elif isinstance(mtime, datetime.datetime):
        if mtime.tzinfo is None:
            return mtime.replace(tzinfo=datetime.timezone.utc)
        return mtime.astimezone(datetime.timezone.utc)
    else:
        raise TypeError(f"Asset mtime cannot be {type(mtime)}.")


class AssetSource:
    """ Base asset source. Subclasses implement ``lookup()``, which
    returns an ``AssetRecord`` for a path, or raises ``AssetNotFound``.
    """

    def lookup(self, path):
        raise NotImplementedError()

    def __contains__(self, path):
        try:
            self.lookup(path)
        except AssetNotFound:
            return False
        return True


class DictAssetSource(AssetSource):
    """ An asset source backed by an in-memory dict.

    The ``assets`` dict maps paths to bodies (bytes or str), or to
    ``(body, mtime)`` tuples. Bodies given as str are encoded as UTF-8.
    The ``mtime`` argument is the default modification time (a datetime
    or POSIX timestamp) for assets that do not specify their own.

    Paths are matched literally: lookup does not collapse ``..`` or
    double slashes, and is case sensitive.
    """

    def __init__(self, assets, mtime=None):
        if not isinstance(assets, dict):
            raise TypeError("DictAssetSource() expects a dict of assets")

        default_mtime = _to_datetime(mtime)
        self._records = {}
        for path, value in assets.items():
            if not isinstance(path, str):
                raise TypeError("Asset paths must be str.")
            if isinstance(value, tuple):
                body, asset_mtime = value
                asset_mtime = _to_datetime(asset_mtime)
            else:
                body, asset_mtime = value, default_mtime
            if isinstance(body, str):
                body = body.encode()
            elif not isinstance(body, bytes):
                raise ValueError("Asset bodies must be bytes or str.")
            name = path.rsplit("/", 1)[-1]
            self._records[path] = AssetRecord(path, body, name, asset_mtime)

    @classmethod
    def from_directory(cls, directory):
        """ Create an asset source from a snapshot of the given directory.
        All files are read into memory now; the directory is not consulted
        afterwards. Keys are the slash-separated paths relative to the
        directory, modification times come from the file system.
        """
        directory = os.path.abspath(directory)
        if not os.path.isdir(directory):
            raise ValueError(f"Asset directory does not exist: {directory}")

        assets = {}
        for root, dirs, files in os.walk(directory):
            dirs.sort()
            for fname in sorted(files):
                filename = os.path.join(root, fname)
                relpath = os.path.relpath(filename, directory)
                key = "/".join(relpath.split(os.sep))
                with open(filename, "rb") as f:
                    body = f.read()
                assets[key] = body, os.stat(filename).st_mtime
        return cls(assets)

    def lookup(self, path):
        try:
            return self._records[path]
        except KeyError:
            raise AssetNotFound(path) from None

    def keys(self):
        return list(self._records.keys())

    def __len__(self):
        return len(self._records)


def bundled_assets():
    """ Get the asset source for the client bundle shipped with spagate.
    """
    return DictAssetSource.from_directory(BUNDLE_DIR)
