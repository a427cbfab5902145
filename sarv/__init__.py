"""
Sarv - serve static files over ASGI, preferring precompressed variants

Sarv takes a snapshot of a directory at startup and serves its files
from that index. When a file has ".br" or ".gz" siblings, these are sent
to clients that accept that encoding. Responses carry an etag, so that
clients can revalidate cheaply with a conditional request. Unknown paths
can be served a single fallback file, which is what single page apps need.
"""

from ._request import HttpRequest, DisconnectedError
from ._app import to_asgi
from ._run import run
from ._index import AssetEntry, AssetIndex, CompressedVariant, IndexBuildError
from ._index import build_index, load_index
from ._lookup import resolve, negotiate
from ._cache import build_headers, check_conditional
from ._serve import StaticServer, ServeResult, make_static_handler
from ._logging import RequestLogger


__all__ = [
    "HttpRequest",
    "DisconnectedError",
    "to_asgi",
    "run",
    "AssetEntry",
    "AssetIndex",
    "CompressedVariant",
    "IndexBuildError",
    "build_index",
    "load_index",
    "resolve",
    "negotiate",
    "build_headers",
    "check_conditional",
    "StaticServer",
    "ServeResult",
    "make_static_handler",
    "RequestLogger",
]


__version__ = "0.1.0"
