[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "faildetect"
version = "0.1.0"
description = "Simulator comparing gossip-based and heartbeat-based failure detection on a lossy, delayed network"
requires-python = ">=3.10"
dependencies = []
keywords = ["failure detection", "gossip", "heartbeat", "distributed systems", "simulation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
faildetect = "faildetect.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["faildetect"]

[tool.pytest.ini_options]
addopts = "-ra"
