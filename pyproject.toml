[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "groupagg"
version = "0.1.0"
description = "GROUP BY aggregation strategies on one core, many cores and across a small cluster, over custom hash tables"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "group-by",
    "aggregation",
    "hash table",
    "linear probing",
    "two-level hash map",
    "hash trie",
    "merge sort",
    "distributed",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
groupagg = "groupagg.grouping:main"
groupagg-server = "groupagg.cluster_server:main"
groupagg-client = "groupagg.cluster_client:main"

[tool.hatch.build.targets.wheel]
packages = ["groupagg"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
