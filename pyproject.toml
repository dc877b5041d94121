[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "adaskit"
version = "0.1.0"
description = "Building blocks for driver-assistance vision pipelines: pose decoding, segmentation decoding, resource monitors and an asynchronous inference pipeline"
requires-python = ">=3.10"
keywords = ["adas", "pose-estimation", "openpose", "segmentation", "inference", "monitoring"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Recognition",
]
dependencies = [
    "numpy",
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["adaskit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
