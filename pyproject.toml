[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chatwire"
version = "0.1.0"
description = "A small TCP chat server and client speaking a length-prefixed binary packet protocol"
requires-python = ">=3.10"
dependencies = []
keywords = ["chat", "tcp", "protocol", "server", "client", "packets"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
chatwire-server = "chatwire.chat_server:main"
chatwire-client = "chatwire.client:main"

[tool.hatch.build.targets.wheel]
packages = ["chatwire"]

[tool.pytest.ini_options]
addopts = "-ra"
