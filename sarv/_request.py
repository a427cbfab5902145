"""
This module implements the HttpRequest class that is passed as an
argument into handler functions, and through which the response is sent.
"""

import time


CONNECTING = 0
CONNECTED = 1
DONE = 2


class DisconnectedError(IOError):
    """ An error raised when the connection is closed by the client while
    the response is being sent. Subclass of IOError. You don't need to catch
    these - it is considered ok for a handler to exit by this.
    """


class HttpRequest:
    """ Object representing an HTTP request. It gives access to the
    request metadata, and is used to send the response.
    """

    __slots__ = ("_scope", "_receive", "_send", "_headers", "_app_state", "start_time")

    def __init__(self, scope, receive, send):
        assert scope["type"] == "http", f"Unexpected scope type {scope['type']}"
        self._scope = scope
        self._receive = receive
        self._send = send
        self._headers = None
        self._app_state = CONNECTING  # CONNECTING -> CONNECTED -> DONE
        self.start_time = time.perf_counter()

    @property
    def scope(self):
        """ A dict representing the raw ASGI scope.
        """
        return self._scope

    @property
    def method(self):
        """ The HTTP method (string). E.g. 'HEAD', 'GET'.
        """
        return self._scope["method"]

    @property
    def headers(self):
        """ A dictionary representing the headers. Keys are lowercase
        strings, so lookups are effectively case-insensitive.
        """
        if self._headers is None:
            self._headers = dict(
                (key.decode().lower(), val.decode())
                for key, val in self._scope["headers"]
            )
        return self._headers

    @property
    def path(self):
        """ The path part of the URL (a string, with percent escapes
        decoded, without the query string).
        """
        return self._scope.get("root_path", "") + self._scope["path"]

    @property
    def accepted(self):
        """ Whether the status and headers have been sent.
        """
        return self._app_state != CONNECTING

    async def accept(self, status=200, headers={}):
        """ Accept this http request. Sends the status code and headers.
        Header values may be str or int.
        """
        if self._app_state != CONNECTING:
            raise IOError("Cannot accept an already accepted connection.")
        status = int(status)
        try:
            rawheaders = [(k.encode(), str(v).encode()) for k, v in headers.items()]
        except Exception:
            raise TypeError("Header keys must all be strings.")
        self._app_state = CONNECTED
        msg = {"type": "http.response.start", "status": status, "headers": rawheaders}
        await self._send_to_server(msg)

    async def send(self, data, more=True):
        """ Send (a chunk of) data, representing the response. Note that
        ``accept()`` must be called first. Use ``more=False`` for the last
        chunk to finish the response. Raises ``DisconnectedError`` when the
        client went away.
        """
        more = bool(more)
        if isinstance(data, str):
            data = data.encode()
        elif not isinstance(data, bytes):
            raise TypeError(f"Can only send bytes/str over http, not {type(data)}.")
        message = {"type": "http.response.body", "body": data, "more_body": more}
        if self._app_state == CONNECTED:
            if not more:
                self._app_state = DONE
            await self._send_to_server(message)
        elif self._app_state == CONNECTING:
            raise IOError("Cannot send before calling accept.")
        else:
            raise IOError("Cannot send to a closed connection.")

    async def _send_to_server(self, message):
        try:
            await self._send(message)
        except OSError as err:
            # The server cannot write to the client anymore
            self._app_state = DONE
            raise DisconnectedError(str(err)) from err
