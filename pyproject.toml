[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mitosha"
version = "0.1.0"
description = "Doubly linked list, a compact memory pool allocator over a byte buffer, and named shared memory segments with a cross-process lock"
requires-python = ">=3.10"
dependencies = []
keywords = ["linked-list", "allocator", "memory-pool", "shared-memory", "semaphore"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mitosha"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
