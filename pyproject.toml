[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "steveres"
version = "0.1.0"
description = "Resource schemas, stores and formatters for a Kubernetes-style API server: counts, schema watches, user preferences, cluster and API group resources."
requires-python = ">=3.10"
keywords = ["kubernetes", "api", "schemas", "resources", "formatters", "counts"]
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
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
]
dependencies = [
    "platformdirs",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["steveres"]

[tool.pytest.ini_options]
addopts = "-ra"
