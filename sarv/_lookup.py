"""
Lookups on the asset index: resolving a request path to an entry, and
picking the variant of that entry to send.

These are pure functions; they don't touch the filesystem.
"""

from collections import namedtuple


Variant = namedtuple("Variant", ["file_path", "byte_size", "encoding"])


def resolve(path, index, index_file="index.html", fallback=None):
    """ Get the ``AssetEntry`` to serve for the given request path, or None.
    The first hit wins:

    * "/" maps to "/" + index_file.
    * The path itself.
    * The path as a directory, i.e. with "/" + index_file appended.
    * The fallback path, if given (e.g. the shell of a single page app).
    """
    req_path = "/" + index_file if path == "/" else path
    entry = index.get(req_path)
    if entry is not None:
        return entry

    if req_path.endswith("/"):
        entry = index.get(req_path + index_file)
    else:
        entry = index.get(req_path + "/" + index_file)
    if entry is not None:
        return entry

    if fallback:
        return index.get(fallback)
    return None


def negotiate(entry, accept_encoding):
    """ Select the variant of the entry to send, based on the value of the
    accept-encoding header. Brotli is preferred over gzip. This checks for
    the presence of "br" and "gzip" in the header, quality values are not
    taken into account.
    """
    accept_encoding = accept_encoding or ""
    if "br" in accept_encoding and entry.br is not None:
        return Variant(entry.br.file_path, entry.br.byte_size, "br")
    if "gzip" in accept_encoding and entry.gzip is not None:
        return Variant(entry.gzip.file_path, entry.gzip.byte_size, "gzip")
    return Variant(entry.file_path, entry.byte_size, None)
