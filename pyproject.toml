[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "a2aserver"
version = "0.1.0"
description = "WSGI server for the Agent-to-Agent (A2A) JSON-RPC protocol with agent cards, SSE streaming and JWKS support"
requires-python = ">=3.10"
keywords = ["a2a", "agent", "json-rpc", "wsgi", "sse", "server-sent-events", "jwks"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "werkzeug",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["a2aserver"]

[tool.hatch.build.targets.sdist]
include = ["a2aserver", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
