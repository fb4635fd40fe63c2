[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "redrose"
version = "0.1.0"
description = "ABC music notation model, MIDI-like event generation and editing helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["abc", "music", "notation", "midi", "score"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: MIDI",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["redrose"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
