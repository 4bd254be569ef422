[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hashbytes"
version = "0.3.1"
description = "Streaming content hashing: adds SHA-256 or BLAKE3 byte identity to every artifact in a JSONL manifest"
requires-python = ">=3.11"
dependencies = []
keywords = ["hash", "sha256", "blake3", "manifest", "jsonl", "provenance", "witness"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
hashbytes = "hashbytes.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["hashbytes"]

[tool.pytest.ini_options]
addopts = "-ra"
