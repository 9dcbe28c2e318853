[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xraykit"
version = "0.1.0"
description = "Building blocks for distributed tracing: trace headers, daemon addresses, wildcard matching and host metadata"
requires-python = ">=3.10"
dependencies = []
keywords = ["tracing", "x-ray", "trace-header", "daemon", "wildcard", "metadata"]
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
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["xraykit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
