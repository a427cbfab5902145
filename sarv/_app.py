"""
This module implements the adapter between handler functions (coroutine
functions that receive an HttpRequest) and the ASGI server.
"""

import inspect

from ._logging import logger
from . import _request
from ._request import HttpRequest, DisconnectedError


def normalize_response(response):
    """ Normalize the given response, by always returning a 3-element tuple
    (status, headers, body). A handler may return ``body``,
    ``(headers, body)`` or ``(status, headers, body)``.
    """
    if isinstance(response, tuple):
        if len(response) == 3:
            status, headers, body = response
        elif len(response) == 2:
            status = 200
            headers, body = response
        elif len(response) == 1:
            status, headers, body = 200, {}, response[0]
        else:
            raise ValueError(f"Handler returned {len(response)}-tuple.")
    else:
        status, headers, body = 200, {}, response

    if not isinstance(status, int):
        raise ValueError(f"Status code must be an int, not {type(status)}")
    if not isinstance(headers, dict):
        raise ValueError(f"Headers must be a dict, not {type(headers)}")

    return status, headers, body


async def send_response(request, response):
    """ Send a handler response (as accepted by ``normalize_response()``)
    over the given request. The body must be str or bytes. Returns the
    status and headers that were sent.
    """
    status, headers, body = normalize_response(response)
    headers = dict(headers)
    if isinstance(body, str):
        headers.setdefault("content-type", "text/plain")
        body = body.encode()
    elif isinstance(body, bytes):
        headers.setdefault("content-type", "application/octet-stream")
    elif inspect.iscoroutine(body):
        raise ValueError("Body cannot be a coroutine, forgot await?")
    else:
        raise ValueError(f"Body cannot be {type(body)}.")
    headers.setdefault("content-length", str(len(body)))
    if request.method == "HEAD":
        body = b""
    await request.accept(status, headers)
    await request.send(body, more=False)
    return status, headers


def to_asgi(handler):
    """ Convert a request handler (a coroutine function, or an object with
    an async ``__call__``) to an ASGI application, which can be served with
    an ASGI server, such as Uvicorn or Hypercorn.

    The handler may send the response itself using ``request.accept()`` and
    ``request.send()`` and return None, or return a response.
    """
    func = getattr(handler, "__call__", None)
    if not (
        inspect.iscoroutinefunction(handler) or inspect.iscoroutinefunction(func)
    ):
        raise TypeError("sarv.to_asgi() handler must be a coroutine function.")

    async def application_wrapper(scope, receive, send):
        return await sarv_application(handler, scope, receive, send)

    application_wrapper.__module__ = getattr(handler, "__module__", __name__)
    application_wrapper.__name__ = getattr(
        handler, "__name__", type(handler).__name__
    )
    application_wrapper.__doc__ = handler.__doc__
    application_wrapper.sarv_handler = handler
    return application_wrapper


async def sarv_application(handler, scope, receive, send):
    if scope["type"] == "http":
        request = HttpRequest(scope, receive, send)
        await _handle_http(handler, request)
    elif scope["type"] == "lifespan":
        await _handle_lifespan(receive, send)
    else:
        logger.warning(f"Unsupported ASGI type {scope['type']}")


async def _handle_lifespan(receive, send):
    while True:
        message = await receive()
        if message["type"] == "lifespan.startup":
            logger.info("Server is starting up")
            await send({"type": "lifespan.startup.complete"})
        elif message["type"] == "lifespan.shutdown":
            logger.info("Server is shutting down")
            await send({"type": "lifespan.shutdown.complete"})
            return
        else:
            logger.warning(f"Unknown lifespan message {message['type']}")


async def _handle_http(handler, request):

    try:
        where = "request handler"
        result = await handler(request)

        if request._app_state == _request.CONNECTING:
            where = "sending response"
            await send_response(request, result)
        elif result is not None:
            raise IOError("Handlers that call request.accept() should return None.")

        # Mark end of data, if needed
        if request._app_state == _request.CONNECTED:
            where = "finalizing response"
            await request.send(b"", more=False)

    except DisconnectedError:
        pass  # Not really an error

    except Exception as err:
        # Log the error, and if possible send a 500
        error_text = f"{type(err).__name__} in {where}: {str(err)}"
        logger.error(error_text, exc_info=err)
        if request._app_state == _request.CONNECTING:
            await request.accept(500, {"content-type": "text/plain"})
            await request.send(error_text, more=False)
        elif request._app_state == _request.CONNECTED:
            # Headers are out, let the server drop the connection
            raise
