"""
sarv setup script.
"""

import os

from setuptools import setup


## Function we need


def get_version_and_doc(filename):
    NS = dict(__version__="", __doc__="")
    docStatus = 0  # Not started, in progress, done
    for line in open(filename, "rb").read().decode().splitlines():
        if line.startswith("__version__"):
            exec(line.strip(), NS, NS)
        elif line.startswith('"""'):
            if docStatus == 0:
                docStatus = 1
                line = line.lstrip('"')
            elif docStatus == 1:
                docStatus = 2
        if docStatus == 1:
            NS["__doc__"] += line.rstrip() + "\n"
    if not NS["__version__"]:
        raise RuntimeError("Could not find __version__")
    return NS["__version__"], NS["__doc__"]


## Collect info for setup()

THIS_DIR = os.path.dirname(__file__)

# Define name and description
name = "sarv"
description = "Serve static files over ASGI, preferring precompressed variants"

# Get version and docstring (i.e. long description)
version, doc = get_version_and_doc(os.path.join(THIS_DIR, "sarv", "__init__.py"))


## Setup

setup(
    name=name,
    version=version,
    license="MIT",
    keywords="ASGI static files brotli gzip etag spa",
    description=description,
    long_description=doc,
    platforms="any",
    provides=[name],
    python_requires=">=3.10",
    install_requires=["aiofiles>=23.1", "xxhash>=2.0"],
    extras_require={
        "server": ["uvicorn"],
        "hypercorn": ["hypercorn"],
        "tests": ["pytest", "pytest-cov", "requests"],
        "dev": ["invoke", "flake8", "black"],
    },
    packages=["sarv"],
    entry_points={"console_scripts": ["sarv = sarv.__main__:main"]},
    zip_safe=True,
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Internet :: WWW/HTTP",
        "License :: OSI Approved :: MIT License",
        "Operating System :: MacOS :: MacOS X",
        "Operating System :: Microsoft :: Windows",
        "Operating System :: POSIX",
        "Programming Language :: Python :: 3",
    ],
)
