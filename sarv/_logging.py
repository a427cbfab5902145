"""
This module defines the sarv logger, and the request logger that reads
the results produced by the static server.
"""

import sys
import time
import logging

ONE_KILOBYTE = 1000
ONE_MEGABYTE = 1000000


# Initialize the logger
logger = logging.getLogger("sarv")
logger.propagate = False
logger.setLevel(logging.INFO)
_handler = logging.StreamHandler(sys.stderr)
_handler.setFormatter(
    logging.Formatter(
        fmt="[%(levelname)s %(asctime)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )
)
logger.addHandler(_handler)


def format_duration(seconds):
    """ Format a request duration, e.g. ``"  12ms"`` or ``"  1.5s"``.
    """
    ms = round(seconds * 1000)
    if ms < 1000:
        text = f"{ms}ms"
    else:
        text = f"{ms / 1000:g}s"
    return text.rjust(6)


def format_content_length(nbytes):
    """ Format a number of bytes using decimal units, e.g. ``"   1.5 KB"``.
    """
    value, suffix = nbytes, "B"
    if nbytes >= ONE_MEGABYTE:
        value, suffix = nbytes / ONE_MEGABYTE, "MB"
    elif nbytes >= ONE_KILOBYTE:
        value, suffix = nbytes / ONE_KILOBYTE, "KB"
    return f"{value:.1f} {suffix}".rjust(9)


class RequestLogger:
    """ Collaborator that writes one log line per served request. Pass
    an instance as the ``on_served`` argument of a ``StaticServer``.

    In verbose mode the line also shows the content-encoding and
    content-length that were actually sent.
    """

    def __init__(self, verbose=False, logger=logger):
        self._verbose = bool(verbose)
        self._logger = logger

    def __call__(self, request, result):
        duration = format_duration(time.perf_counter() - request.start_time)
        # No status is known if a delegate sent the response itself
        parts = ["-" if result.status is None else str(result.status)]
        if self._verbose:
            encoding = result.headers.get("content-encoding", "no encoding")
            nbytes = int(result.headers.get("content-length", 0))
            parts.append(encoding.rjust(11))
            parts.append(format_content_length(nbytes))
        parts += [duration, result.path]
        self._logger.info(" - ".join(parts))
