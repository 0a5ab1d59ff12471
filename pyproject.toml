[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "loopfetch"
version = "0.1.0"
description = "A small TCP file server and client: the client sends a file path, the server streams the file back."
requires-python = ">=3.10"
dependencies = []
keywords = ["tcp", "file-transfer", "socket", "server", "client", "loopback"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: File Transfer Protocol (FTP)",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
loopfetch-server = "loopfetch.cli:server_main"
loopfetch-client = "loopfetch.cli:client_main"

[tool.hatch.build.targets.wheel]
packages = ["loopfetch"]

[tool.pytest.ini_options]
addopts = "-ra"
