[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "handvision"
version = "0.1.0"
description = "Image thresholding and filtering, colour barcode decoding and hand gesture classification"
requires-python = ">=3.10"
keywords = ["image processing", "median filter", "barcode", "gesture recognition", "fourier descriptors"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
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
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
handvision-barcode = "handvision.barcode:main"
handvision-gesture = "handvision.training:main"

[tool.hatch.build.targets.wheel]
packages = ["handvision"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
