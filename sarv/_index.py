"""
This module implements the index builder: a single walk over the root
directory that produces an immutable snapshot of all servable files.
"""

import os
import stat
import asyncio
import mimetypes
from collections import namedtuple
from collections.abc import Mapping
from wsgiref.handlers import format_date_time

import xxhash
import aiofiles.os

from ._logging import logger


ETAG_SEED = 0xABCD
COMPRESSED_EXTENSIONS = ".gz", ".br"


class IndexBuildError(IOError):
    """ Raised when the asset index cannot be built, e.g. because the root
    or a file below it is unreadable. A failed build never produces a
    partial index.
    """


CompressedVariant = namedtuple("CompressedVariant", ["file_path", "byte_size"])
CompressedVariant.__doc__ = """ A precompressed sibling (``F.gz`` or ``F.br``)
of a servable file.
"""

AssetEntry = namedtuple(
    "AssetEntry",
    [
        "file_path",
        "content_type",
        "byte_size",
        "last_modified",
        "etag",
        "gzip",
        "br",
    ],
)
AssetEntry.__doc__ = """ Metadata of one servable (uncompressed) file. The
``content_type`` is None if it cannot be derived from the extension. The
``gzip`` and ``br`` fields hold a ``CompressedVariant`` or None.
"""


class AssetIndex(Mapping):
    """ Read-only mapping from request path (e.g. "/js/app.js") to
    ``AssetEntry``. Paths are case sensitive.
    """

    __slots__ = ("_root", "_entries")

    def __init__(self, root, entries):
        self._root = root
        self._entries = dict(entries)

    def __getitem__(self, path):
        return self._entries[path]

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def __repr__(self):
        return f"<AssetIndex {self._root!r} with {len(self)} entries>"

    @property
    def root(self):
        """ The absolute path of the directory that this index was built from.
        """
        return self._root


def compute_etag(file_path, byte_size, mtime_ms):
    """ Compute the etag for a file state. This is a fixed-seed xxhash32
    of the path, size and modification time, as a hex string.
    """
    key = f"{file_path}-{byte_size}-{mtime_ms}"
    return format(xxhash.xxh32_intdigest(key.encode(), seed=ETAG_SEED), "x")


async def _get_variant(file_path):
    try:
        st = await aiofiles.os.stat(file_path)
    except FileNotFoundError:
        return None
    return CompressedVariant(file_path, st.st_size)


async def _get_entry(file_path, st):
    gzip, br = await asyncio.gather(
        _get_variant(file_path + ".gz"), _get_variant(file_path + ".br")
    )
    content_type, _ = mimetypes.guess_type(file_path)
    return AssetEntry(
        file_path=file_path,
        content_type=content_type,
        byte_size=st.st_size,
        last_modified=format_date_time(st.st_mtime),
        etag=compute_etag(file_path, st.st_size, st.st_mtime_ns // 1_000_000),
        gzip=gzip,
        br=br,
    )


async def _gather_all(coroutines):
    """ Run the given coroutines concurrently and wait for all of them.
    If any failed, raise the first error (in order of the coroutines).
    """
    results = await asyncio.gather(*coroutines, return_exceptions=True)
    for res in results:
        if isinstance(res, BaseException):
            raise res
    return results


async def _fill_entries(entries, dirname, url_prefix):
    names = await aiofiles.os.listdir(dirname)

    async def visit(name):
        file_path = os.path.join(dirname, name)
        url = f"{url_prefix}/{name}"
        st = await aiofiles.os.stat(file_path)
        if stat.S_ISDIR(st.st_mode):
            await _fill_entries(entries, file_path, url)
        elif not stat.S_ISREG(st.st_mode):
            logger.debug(f"Skipping {file_path}: not a regular file")
        elif not name.endswith(COMPRESSED_EXTENSIONS):
            # Only readable files can be served
            if not await aiofiles.os.access(file_path, os.R_OK):
                raise PermissionError(f"File is not readable: {file_path}")
            entries[url] = await _get_entry(file_path, st)

    await _gather_all(visit(name) for name in names)


async def build_index(root_dir):
    """ Build an ``AssetIndex`` for the given directory. Subdirectories
    and files are inspected concurrently; blocking filesystem calls are
    delegated to a thread pool via aiofiles.

    Files ending with ".gz" or ".br" are not indexed themselves, but are
    registered as compressed variants of the file they're a sibling of.

    Raises ``IndexBuildError`` if any part of the tree cannot be read.
    """
    if not isinstance(root_dir, (str, os.PathLike)):
        raise TypeError("build_index() root_dir must be a str or path.")
    root = os.path.abspath(os.fspath(root_dir))
    if not await aiofiles.os.path.isdir(root):
        raise IndexBuildError(f"Not a directory: {root}")

    entries = {}
    try:
        await _fill_entries(entries, root, "")
    except OSError as err:
        raise IndexBuildError(f"Could not index {root}: {err}") from err

    index = AssetIndex(root, entries)
    logger.info(f"Indexed {len(index)} files in {root}")
    return index


def load_index(root_dir):
    """ Synchronous version of ``build_index()``. Cannot be used from
    within a running event loop.
    """
    return asyncio.run(build_index(root_dir))
