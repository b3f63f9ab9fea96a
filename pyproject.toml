[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "redigo"
version = "0.1.0"
description = "A small in-memory key-value store server and client speaking a subset of RESP3"
requires-python = ">=3.10"
keywords = ["cache", "key-value", "resp", "resp3", "server", "in-memory"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
redigo-server = "redigo.server_main:main"
redigo-cli = "redigo.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["redigo"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
