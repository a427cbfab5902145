"""
Test some specifics of the run function.
"""

import sys
import types

import pytest

import sarv


async def handler(request):
    return "ok"


def test_run_fails():

    with pytest.raises(ValueError) as err:
        sarv.run("foo", "uvicorn")
    assert "full path" in str(err.value).lower()

    with pytest.raises(ValueError) as err:
        sarv.run("foo:bar", "nonexistingserver")
    assert "invalid server" in str(err.value).lower()

    with pytest.raises(ValueError) as err:
        sarv.run(sarv.to_asgi(handler), "nonexistingserver")
    assert "invalid server" in str(err.value).lower()

    with pytest.raises(TypeError):
        sarv.run(42, "uvicorn")

    with pytest.raises(AssertionError):
        sarv.run("foo:bar", "uvicorn", bind="8080")


def test_run_uvicorn(monkeypatch):
    calls = []
    fake_uvicorn = types.ModuleType("uvicorn")
    fake_uvicorn.run = lambda app, **kwargs: calls.append((app, kwargs))
    monkeypatch.setitem(sys.modules, "uvicorn", fake_uvicorn)

    app = sarv.to_asgi(handler)
    sarv.run(app, "uvicorn", "localhost:8123")
    sarv.run(app, "UVICORN", "0.0.0.0:80", log_level="debug")

    assert calls[0][0] is app
    assert calls[0][1] == {"host": "127.0.0.1", "port": 8123, "log_level": "warning"}
    assert calls[1][1] == {"host": "0.0.0.0", "port": 80, "log_level": "debug"}
