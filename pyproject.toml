[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "p25link"
version = "0.1.0"
description = "P25 network gateway, reflector and parrot for amateur radio digital voice linking"
requires-python = ">=3.10"
keywords = ["p25", "ham radio", "amateur radio", "reflector", "gateway", "parrot", "mmdvm"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Ham Radio",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
p25-gateway = "p25link.gateway:main"
p25-parrot = "p25link.parrot:main"
p25-reflector = "p25link.reflector:main"

[tool.hatch.build.targets.wheel]
packages = ["p25link"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
