"""
Command line interface to serve a directory:

    python -m sarv public --port 8080 --fallback /index.html

"""

import os
import sys
import argparse

from ._app import to_asgi
from ._index import IndexBuildError, load_index
from ._logging import logger, RequestLogger
from ._run import run
from ._serve import DEFAULT_MAX_AGE, StaticServer


def non_negative_int(value):
    try:
        number = int(value)
    except ValueError:
        number = -1
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be an int >= 0, not {value!r}")
    return number


def make_parser():
    parser = argparse.ArgumentParser(
        prog="sarv", description="Run a static file server."
    )
    parser.add_argument("dir", nargs="?", default=".", help="Directory to serve")
    parser.add_argument("--host", default="localhost", help="Hostname to bind")
    parser.add_argument("-p", "--port", type=int, default=3000, help="Port to bind")
    parser.add_argument(
        "-i", "--index", default="index.html", help="Define index file name"
    )
    parser.add_argument("-f", "--fallback", help="Define fallback file")
    parser.add_argument(
        "-m",
        "--maxage",
        type=non_negative_int,
        default=DEFAULT_MAX_AGE,
        help='Define max-age value (in sec) in "Cache-Control" header',
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Display content encoding and content length in logs",
    )
    parser.add_argument(
        "--server", default="uvicorn", help="ASGI server to use (uvicorn/hypercorn)"
    )
    return parser


def main(argv=None):
    args = make_parser().parse_args(argv)

    try:
        index = load_index(args.dir)
    except IndexBuildError as err:
        logger.error(str(err))
        return 1

    try:
        server = StaticServer(
            index,
            index_file=args.index,
            fallback=args.fallback,
            max_age=args.maxage,
            on_served=RequestLogger(args.verbose),
        )
    except (TypeError, ValueError) as err:
        logger.error(str(err))
        return 1
    app = to_asgi(server)

    logger.info(f"Serving {os.path.abspath(args.dir)}")
    logger.info(f"Local access: http://{args.host}:{args.port}")
    run(app, args.server, f"{args.host}:{args.port}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
