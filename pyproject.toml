[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "apitoolkit"
version = "0.1.0"
description = "Building blocks for HTTP APIs: a small router, middleware chains, content formats, cookies, conditional requests, casing helpers and JSON patching."
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "api", "router", "middleware", "json-patch", "merge-patch", "openapi", "casing"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["apitoolkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
