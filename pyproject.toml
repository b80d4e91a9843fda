[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sqlsls"
version = "0.1.0"
description = "A Language Server Protocol server for SQL documents, speaking JSON-RPC over standard input and output, with query execution against SQLite."
requires-python = ">=3.10"
dependencies = []
keywords = ["sql", "lsp", "language-server", "json-rpc", "sqlite", "editor"]
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
    "Programming Language :: SQL",
    "Topic :: Software Development :: Interpreters",
    "Topic :: Text Editors :: Integrated Development Environments (IDE)",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
sqlsls = "sqlsls.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["sqlsls"]

[tool.pytest.ini_options]
addopts = "-ra"
