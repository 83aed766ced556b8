[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "avrorustgen"
version = "0.1.0"
description = "Render Rust type definitions from Avro schemas"
requires-python = ">=3.10"
keywords = ["avro", "rust", "codegen", "schema", "serde"]
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
    "Topic :: Software Development :: Code Generators",
]
dependencies = [
    "jinja2",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["avrorustgen"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
