[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "iotctl"
version = "0.1.0"
description = "TCP control server and client for an LED, buzzer and seven-segment timer board"
requires-python = ">=3.10"
dependencies = []
keywords = ["iot", "tcp", "led", "buzzer", "seven-segment", "home-automation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Home Automation",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
iotctl-server = "iotctl.server:main"
iotctl-client = "iotctl.client:main"

[tool.hatch.build.targets.wheel]
packages = ["iotctl"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
