"""
HTTP caching: the validation headers for an entry, and handling of
conditional requests.
"""


def build_headers(entry, max_age):
    """ Get the caching headers for the given entry, plus its content-type
    if known. The "no-cache" directive makes clients revalidate (using
    the etag) on every load, while ``max_age`` applies to intermediate caches.
    """
    headers = {
        "last-modified": entry.last_modified,
        "etag": entry.etag,
        "cache-control": f"no-cache, must-revalidate, max-age={max_age:d}",
    }
    if entry.content_type:
        headers["content-type"] = entry.content_type
    return headers


def check_conditional(if_none_match, entry):
    """ Get whether the client already has this exact entry, i.e. whether
    the value of its if-none-match header equals the etag. The value is
    compared as-is; lists and weak etags are not supported.
    """
    return if_none_match is not None and if_none_match == entry.etag
