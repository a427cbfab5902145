"""
This module implements the static server: the per-request pipeline that
resolves the path, negotiates the encoding, validates the client cache,
and streams the selected file.
"""

from collections import namedtuple

import aiofiles

from ._app import send_response
from ._cache import build_headers, check_conditional
from ._index import AssetIndex, load_index
from ._logging import logger
from ._lookup import negotiate, resolve
from ._request import DisconnectedError


DEFAULT_MAX_AGE = 1209600  # two weeks
DEFAULT_CHUNK_SIZE = 2 ** 16

COMPLETE = "complete"
NOT_MODIFIED = "not_modified"
NOT_FOUND = "not_found"
NOT_ALLOWED = "not_allowed"
DELEGATED = "delegated"
STREAM_ERROR = "stream_error"
DISCONNECTED = "disconnected"


ServeResult = namedtuple(
    "ServeResult", ["outcome", "status", "headers", "path", "entry"]
)
ServeResult.__doc__ = """ The outcome of serving a single request. The
``headers`` are the headers that were actually sent, so that e.g. a
request logger can report the content-encoding and content-length.
"""


class StreamError(IOError):
    """ Raised when a file cannot be read while its body is being sent.
    The status and headers are already out, so the response cannot be
    completed. The ``result`` attribute holds the ``ServeResult``.
    """

    def __init__(self, message, result):
        super().__init__(message)
        self.result = result


class StaticServer:
    """ Handler that serves the files in an ``AssetIndex``. Instances
    can be used as a request handler directly, e.g. with ``sarv.to_asgi()``.

    Parameters:

    * ``index (AssetIndex)``: The snapshot of the files to serve.
    * ``index_file (str)``: The file to serve for a directory. Default
      "index.html".
    * ``fallback (str)``: Request path of the file to serve when nothing
      else matches, e.g. "/index.html" for a single page app. Default None.
    * ``max_age (int)``: The max-age in the cache-control header, in seconds.
      Default two weeks.
    * ``unmatched``: Async handler to delegate to when no file matches.
      Its return value is sent as the response. If not given, a 404
      is returned instead.
    * ``on_served``: Callable that is called with the request and the
      ``ServeResult`` after each request, e.g. a ``RequestLogger``.

    Precompressed siblings ("F.br" and "F.gz") are sent when the client
    accepts that encoding. Every response carries an etag; a request with a
    matching if-none-match header gets a 304.
    """

    def __init__(
        self,
        index,
        *,
        index_file="index.html",
        fallback=None,
        max_age=DEFAULT_MAX_AGE,
        unmatched=None,
        on_served=None,
        chunk_size=DEFAULT_CHUNK_SIZE,
    ):
        if not isinstance(index, AssetIndex):
            raise TypeError("StaticServer() expects an AssetIndex.")
        if not (isinstance(index_file, str) and index_file):
            raise TypeError("StaticServer() index_file must be a nonempty str.")
        if fallback is not None:
            if not isinstance(fallback, str):
                raise TypeError("StaticServer() fallback must be None or a str.")
            if not fallback.startswith("/"):
                raise ValueError("StaticServer() fallback must start with '/'.")
        if not (isinstance(max_age, int) and max_age >= 0):
            raise TypeError("StaticServer() max_age must be a positive int.")
        if unmatched is not None and not callable(unmatched):
            raise TypeError("StaticServer() unmatched must be callable.")
        if on_served is not None and not callable(on_served):
            raise TypeError("StaticServer() on_served must be callable.")
        if not (isinstance(chunk_size, int) and chunk_size > 0):
            raise TypeError("StaticServer() chunk_size must be a positive int.")

        self._index = index
        self._index_file = index_file
        self._fallback = fallback
        self._max_age = max_age
        self._unmatched = unmatched
        self._on_served = on_served
        self._chunk_size = chunk_size

        if fallback is not None and fallback not in index:
            logger.warning(f"Fallback {fallback} is not in the index of {index.root}")

    @property
    def index(self):
        """ The ``AssetIndex`` being served.
        """
        return self._index

    async def __call__(self, request):
        await self.serve(request)

    async def serve(self, request):
        """ Serve the given request and return a ``ServeResult``.
        The response is sent by this method, also when the file cannot be
        opened. If reading fails halfway, ``StreamError`` is raised, so that
        the server aborts the connection. A client that goes away ends the
        request with outcome "disconnected".
        """
        try:
            result = await self._serve(request)
        except StreamError as err:
            self._notify(request, err.result)
            raise
        except DisconnectedError:
            result = ServeResult(DISCONNECTED, None, {}, request.path, None)
        self._notify(request, result)
        return result

    def _notify(self, request, result):
        if self._on_served is not None:
            self._on_served(request, result)

    async def _serve(self, request):
        path = request.path
        if request.method in ("GET", "HEAD"):
            entry = resolve(path, self._index, self._index_file, self._fallback)
        else:
            entry = None

        if entry is None:
            return await self._serve_unmatched(request)

        variant = negotiate(entry, request.headers.get("accept-encoding"))
        headers = build_headers(entry, self._max_age)

        if check_conditional(request.headers.get("if-none-match"), entry):
            await request.accept(304, headers)
            await request.send(b"", more=False)
            return ServeResult(NOT_MODIFIED, 304, headers, path, entry)

        headers["content-length"] = str(variant.byte_size)
        if variant.encoding:
            headers["content-encoding"] = variant.encoding

        return await self._stream(request, variant, headers, entry)

    async def _serve_unmatched(self, request):
        path = request.path
        if self._unmatched is not None:
            response = await self._unmatched(request)
            if request.accepted:
                # The delegate sent the response itself
                return ServeResult(DELEGATED, None, {}, path, None)
            status, headers = await send_response(request, response)
            return ServeResult(DELEGATED, status, headers, path, None)
        elif request.method not in ("GET", "HEAD"):
            response = 405, {"allow": "GET, HEAD"}, "Method Not Allowed"
            status, headers = await send_response(request, response)
            return ServeResult(NOT_ALLOWED, status, headers, path, None)
        else:
            status, headers = await send_response(request, (404, {}, "Not Found"))
            return ServeResult(NOT_FOUND, status, headers, path, None)

    async def _stream(self, request, variant, headers, entry):
        path = request.path
        try:
            f = await aiofiles.open(variant.file_path, "rb")
        except OSError as err:
            # The index is a snapshot, the file may be gone by now
            logger.error(f"Could not open {variant.file_path}: {err}", exc_info=err)
            await request.accept(500, {"content-length": "0"})
            await request.send(b"", more=False)
            return ServeResult(STREAM_ERROR, 500, {"content-length": "0"}, path, entry)

        try:
            await request.accept(200, headers)
            if request.method == "GET":
                while True:
                    try:
                        chunk = await f.read(self._chunk_size)
                    except OSError as err:
                        result = ServeResult(STREAM_ERROR, 200, headers, path, entry)
                        error_text = f"Could not read {variant.file_path}: {err}"
                        raise StreamError(error_text, result) from err
                    if not chunk:
                        break
                    await request.send(chunk)
            await request.send(b"", more=False)
        except DisconnectedError:
            logger.debug(f"Client disconnected while sending {path}")
            return ServeResult(DISCONNECTED, 200, headers, path, entry)
        finally:
            await f.close()

        return ServeResult(COMPLETE, 200, headers, path, entry)


def make_static_handler(root_dir, **kwargs):
    """ Build the index for the given directory and return a
    ``StaticServer`` for it. The keyword arguments are passed to
    ``StaticServer``. Since the index is built synchronously, this must be
    called before the event loop runs, e.g. at module level:

    .. code-block:: python

        handler = sarv.make_static_handler("dist", fallback="/index.html")
        app = sarv.to_asgi(handler)

    """
    return StaticServer(load_index(root_dir), **kwargs)
