[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "drcalo"
version = "0.1.0"
description = "Tower geometry, cell-ID segmentation, SiPM photon counting and particle-gun tools for a dual-readout fibre calorimeter"
requires-python = ">=3.10"
dependencies = []
keywords = ["calorimeter", "dual-readout", "segmentation", "sipm", "particle physics", "simulation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["drcalo"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
