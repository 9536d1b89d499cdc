[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dberd"
version = "0.1.0"
description = "Extract database schemas (tables, columns, foreign keys) from live databases into a uniform model for ER diagrams"
requires-python = ">=3.10"
dependencies = [
    "pymongo",
    "sqlalchemy",
]
keywords = [
    "database",
    "schema",
    "erd",
    "entity-relationship",
    "postgresql",
    "mysql",
    "cockroachdb",
    "clickhouse",
    "mongodb",
]
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
    "Topic :: Database :: Front-Ends",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["dberd"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
