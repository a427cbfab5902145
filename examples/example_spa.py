"""
Serve a single page app from its build directory, with an API next to it.

Paths that do not match a file are first offered to the API handler. Only
if that does not recognize the path either, the app shell is returned, so
that client-side routing can take over. Precompress the build output
(e.g. ``brotli -k`` and ``gzip -k``) to have the compressed variants served.
"""

import os
import sys

import sarv


async def api(request):
    if request.path.startswith("/api/"):
        return {"content-type": "application/json"}, '{"status": "ok"}'
    return await shell(request)


async def shell(request):
    # Let the static server resolve the fallback
    return await spa.serve(request)


dist = sys.argv[1] if len(sys.argv) > 1 else os.path.join(os.getcwd(), "dist")
index = sarv.load_index(dist)
spa = sarv.StaticServer(index, fallback="/index.html")
assets = sarv.StaticServer(index, unmatched=api, on_served=sarv.RequestLogger())
app = sarv.to_asgi(assets)


if __name__ == "__main__":
    sarv.run(app, "uvicorn", "localhost:8080")
