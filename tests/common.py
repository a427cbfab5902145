"""
Common utilities used in our test scripts.
"""

import os

from sarv.testutils import MockTestServer


def make_server(app):
    return MockTestServer(app)


def write_files(root, files):
    """ Write a dict of relative paths -> bytes/str to the given directory.
    """
    for relpath, content in files.items():
        filename = os.path.join(root, *relpath.split("/"))
        os.makedirs(os.path.dirname(filename), exist_ok=True)
        if isinstance(content, str):
            content = content.encode()
        with open(filename, "wb") as f:
            f.write(content)


def make_site(root):
    """ Write a small site with precompressed variants for some files.
    """
    write_files(
        root,
        {
            "index.html": "<html>home</html>",
            "app.js": "console.log('hi');" * 20,
            "app.js.gz": b"g" * 30,
            "app.js.br": b"b" * 20,
            "style.css": "body { color: red; }" * 10,
            "style.css.gz": b"g" * 25,
            "docs/index.html": "<html>docs</html>",
            "docs/intro.html": "<html>intro</html>",
            "data.unknownext": b"\x00\x01\x02",
        },
    )
