"""
Sarv test utilities.
"""

import time
import asyncio
import inspect
import logging
from collections import namedtuple
from wsgiref.handlers import format_date_time
from urllib.parse import unquote, urlparse

import requests

from ._app import to_asgi
from ._logging import logger


Response = namedtuple("Response", ["status", "headers", "body", "complete"])
Response.__doc__ = """ A response received by the ``MockTestServer``. The
``complete`` field is False if the connection was dropped before the body
was finished, or if fewer bytes were sent than the content-length announced.
"""


class _CaptureHandler(logging.Handler):
    def __init__(self, lines):
        super().__init__(logging.DEBUG)
        self._lines = lines

    def emit(self, record):
        self._lines.append(f"{record.levelname} {record.getMessage()}")


class MockTestServer:
    """ An object that mocks an ASGI server and operates in-process,
    which makes it fast and allows tracking test coverage.

    The ``app`` object passed to the constructor can be an ASGI application
    or a request handler (e.g. a ``StaticServer``).

    The server is started/stopped by using it as a context manager.
    Requests *must* be done via the methods of this object. The
    ``out`` attribute contains the messages logged by sarv while the
    server was running.
    """

    url = "http://127.0.0.1:8080"

    def __init__(self, app):
        self._app = app
        if len(inspect.signature(app).parameters) == 3:
            self._asgi_app = app
        else:
            self._asgi_app = to_asgi(app)
        self._loop = None
        self._out_lines = []
        self._capture_handler = _CaptureHandler(self._out_lines)

    @property
    def app(self):
        """ The application object that was given at instantiation.
        """
        return self._app

    @property
    def out(self):
        """ The log messages of the server, one per line.
        """
        return "\n".join(self._out_lines)

    def __enter__(self):
        self._out_lines.clear()
        self._loop = asyncio.new_event_loop()
        logger.addHandler(self._capture_handler)
        try:
            self._lifespan_messages = asyncio.Queue()
            self._lifespan_completes = []
            self._lifespan_task = self._make_lifespan_task()
            self._wait_for_lifespan_complete("startup")
        except Exception:
            self._close()
            raise
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        try:
            self._wait_for_lifespan_complete("shutdown")
        finally:
            self._close()

    def _close(self):
        logger.removeHandler(self._capture_handler)
        self._loop.close()
        self._loop = None

    def get(self, path, headers=None):
        """ Send a GET request to the server. See request() for detais.
        """
        return self.request("GET", path, headers=headers)

    def head(self, path, headers=None):
        """ Send a HEAD request to the server. See request() for detais.
        """
        return self.request("HEAD", path, headers=headers)

    def request(self, method, path, data=None, headers=None):
        """ Send a request to the server. Returns a ``Response`` named tuple
        ``(status, headers, body, complete)``.
        """
        assert isinstance(method, str)
        assert isinstance(path, str)
        if self._loop is None:
            raise RuntimeError("MockTestServer must be used as a context manager.")
        url = self.url + "/" + path.lstrip("/")
        co = self._co_request(method.upper(), url, data=data, headers=headers)
        return self._loop.run_until_complete(co)

    def _make_lifespan_task(self):
        scope = {"type": "lifespan"}

        async def send(m):
            self._lifespan_completes.append(m["type"])

        return self._loop.create_task(
            self._asgi_app(scope, self._lifespan_messages.get, send)
        )

    def _wait_for_lifespan_complete(self, what, timeout=5):
        what_complete = f"lifespan.{what}.complete"

        async def waiter():
            await self._lifespan_messages.put({"type": f"lifespan.{what}"})
            etime = time.time() + timeout
            while what_complete not in self._lifespan_completes:
                if self._lifespan_task.done():
                    raise RuntimeError(
                        f"Lifespan task finished without producing {what}"
                    )
                if time.time() > etime:
                    raise RuntimeError(
                        f"Timeout for {what}, has {self._lifespan_completes}"
                    )
                await asyncio.sleep(0.01)

        self._loop.run_until_complete(waiter())

    def _make_scope(self, request):
        scheme, netloc, path, params, query, fragment = urlparse(request.url)
        host, _, port = netloc.partition(":")
        headers = [[b"host", netloc.encode()]]
        headers += [
            [key.lower().encode(), value.encode()]
            for key, value in request.headers.items()
        ]
        return {
            "type": "http",
            "http_version": "1.1",
            "method": request.method,
            "scheme": scheme,
            "path": unquote(path),
            "root_path": "",
            "query_string": query.encode(),
            "headers": headers,
            "client": ["testclient", 50000],
            "server": [host, int(port)],
        }

    async def _co_request(self, method, url, **kwargs):
        req = requests.Request(method, url, **kwargs)
        p = req.prepare()  # Get the "resolved" request
        p.headers.setdefault("user-agent", "sarv_mock_server")
        scope = self._make_scope(p)

        client_to_server = [p.body or b""]
        server_to_client = []
        response = []
        finished = []

        async def receive():
            if client_to_server:
                body = client_to_server.pop(0)
                if isinstance(body, str):
                    body = body.encode()
                return {"type": "http.request", "body": body, "more_body": False}
            # Mimic an open connection
            await asyncio.sleep(9999)

        async def send(m):
            if m["type"] == "http.response.start":
                headers = dict((h[0].decode(), h[1].decode()) for h in m["headers"])
                headers.setdefault("date", format_date_time(time.time()))
                headers.setdefault("server", "sarv_mock_server")
                response.extend([m["status"], headers])
            elif m["type"] == "http.response.body":
                server_to_client.append(m["body"])
                if not m.get("more_body", False):
                    finished.append(True)

        try:
            await self._asgi_app(scope, receive, send)
        except Exception:
            if not response:
                raise
            # Headers were sent, the connection is dropped
            finished.clear()
        if not response:
            response.extend([9999, {}])
        status, headers = response
        body = b"".join(server_to_client)

        complete = bool(finished)
        if complete and method != "HEAD" and "content-length" in headers:
            complete = len(body) == int(headers["content-length"])

        return Response(status, headers, body, complete)
