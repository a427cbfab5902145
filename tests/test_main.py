"""
Test the command line interface.
"""

import pytest

import sarv
import sarv.__main__ as cli

from common import make_server, make_site


def test_parser_defaults():
    args = cli.make_parser().parse_args([])
    assert args.dir == "."
    assert args.host == "localhost"
    assert args.port == 3000
    assert args.index == "index.html"
    assert args.fallback is None
    assert args.maxage == 1209600
    assert args.verbose is False
    assert args.server == "uvicorn"


def test_parser_options():
    argv = ["public", "-p", "8080", "-f", "/index.html", "-m", "60", "-v"]
    args = cli.make_parser().parse_args(argv)
    assert args.dir == "public"
    assert args.port == 8080
    assert args.fallback == "/index.html"
    assert args.maxage == 60
    assert args.verbose is True



def test_parser_rejects_bad_maxage(capsys):
    parser = cli.make_parser()
    for value in ["-1", "abc"]:
        with pytest.raises(SystemExit) as err:
            parser.parse_args(["-m", value])
        assert err.value.code == 2
        assert "must be an int >= 0" in capsys.readouterr().err

    assert parser.parse_args(["-m", "0"]).maxage == 0


def test_main_fails_for_missing_dir(monkeypatch):
    calls = []
    monkeypatch.setattr(cli, "run", lambda *args, **kwargs: calls.append(args))

    assert cli.main(["/this/dir/does/not/exist"]) == 1
    assert not calls



def test_main_fails_for_bad_fallback(tmp_path, monkeypatch):
    make_site(tmp_path)
    calls = []
    monkeypatch.setattr(cli, "run", lambda *args, **kwargs: calls.append(args))

    assert cli.main([str(tmp_path), "--fallback", "index.html"]) == 1
    assert not calls


def test_main(tmp_path, monkeypatch):
    make_site(tmp_path)
    calls = []
    monkeypatch.setattr(cli, "run", lambda *args, **kwargs: calls.append(args))

    argv = [str(tmp_path), "--port", "8123", "--fallback", "/index.html", "-m", "60"]
    assert cli.main(argv) == 0

    app, server, bind = calls[0]
    assert server == "uvicorn"
    assert bind == "localhost:8123"
    assert isinstance(app.sarv_handler, sarv.StaticServer)

    with make_server(app) as p:
        r1 = p.get("/some/route")
        r2 = p.get("/app.js", headers={"accept-encoding": "br"})

    assert r1.status == 200
    assert r1.body == b"<html>home</html>"
    assert r1.headers["cache-control"].endswith("max-age=60")
    assert r2.headers["content-encoding"] == "br"
    assert "INFO 200 - " in p.out
