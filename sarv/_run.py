"""
This module implements a ``run()`` function to start an ASGI server of choice.
"""

import asyncio
import importlib


def run(app, server="uvicorn", bind="localhost:8080", **kwargs):
    """ Run the given ASGI app with the given ASGI server.

    Arguments:

    * ``app`` (required): The ASGI application object, or a string
      ``"module.path:appname"``.
    * ``server``: The name of the server to use, "uvicorn" or "hypercorn".
    * ``bind``: The "host:port" to listen on.
    * ``kwargs``: additional arguments to pass to the underlying server.
    """

    if isinstance(app, str):
        if ":" not in app:
            raise ValueError("If specifying an app by name, give its full path!")
    elif not callable(app):
        raise TypeError("sarv.run() app must be an ASGI app or its full name.")

    assert isinstance(server, str), "sarv.run() server arg must be a string."
    assert isinstance(bind, str), "sarv.run() bind arg must be a string."
    assert ":" in bind, "sarv.run() bind arg must be 'host:port'"
    bind = bind.replace("localhost", "127.0.0.1")

    try:
        func = SERVERS[server.lower()]
    except KeyError:
        raise ValueError(f"Invalid server specified: {server!r}")

    return func(app, bind, **kwargs)


def _run_uvicorn(app, bind, **kwargs):
    import uvicorn

    host, _, port = bind.partition(":")

    # Default to warning level, sarv logs the requests itself
    kwargs.setdefault("log_level", "warning")

    return uvicorn.run(app, host=host, port=int(port), **kwargs)


def _run_hypercorn(app, bind, **kwargs):
    from hypercorn.config import Config
    from hypercorn.asyncio import serve

    if isinstance(app, str):
        modname, _, appname = app.partition(":")
        app = getattr(importlib.import_module(modname), appname)

    config = Config()
    config.bind = [bind]
    for key, val in kwargs.items():
        setattr(config, key, val)

    return asyncio.run(serve(app, config))


SERVERS = {"uvicorn": _run_uvicorn, "hypercorn": _run_hypercorn}
