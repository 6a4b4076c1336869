[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "srtproto"
version = "0.1.0"
description = "Secure Reliable Transport protocol logic: sequence and message numbers, ACK state, timers, TSBPD, timing windows and XOR forward error correction"
requires-python = ">=3.10"
dependencies = []
keywords = ["srt", "secure reliable transport", "streaming", "fec", "forward error correction", "protocol"]
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
    "Topic :: System :: Networking",
    "Topic :: Multimedia :: Video",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["srtproto"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
