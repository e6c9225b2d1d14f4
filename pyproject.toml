[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lvox"
version = "1.1.0"
description = "Vocal processing chain: gate, high-pass, de-esser, EQ, compressor, saturation, plate reverb, delay and limiter"
requires-python = ">=3.11"
dependencies = [
    "numpy",
]
keywords = ["audio", "dsp", "vocal", "compressor", "reverb", "equalizer", "limiter"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Multimedia :: Sound/Audio",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["lvox"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
