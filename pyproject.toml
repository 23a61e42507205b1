[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "qtmetagen"
version = "0.1.0"
description = "Generate Qt meta-object tables, qrc resource data and plugin metadata from plain declarations"
requires-python = ">=3.10"
dependencies = []
keywords = ["qt", "qml", "metaobject", "qrc", "resources", "code generation", "qbjs"]
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

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["qtmetagen"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
