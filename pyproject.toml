[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "camstages"
version = "1.6.0"
description = "Image post-processing building blocks for camera frames: HDR, motion detection, negation, object detection and classification results"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["camera", "hdr", "motion-detection", "object-detection", "classification", "post-processing", "yuv420"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: Capture :: Digital Camera",
    "Topic :: Scientific/Engineering :: Image Processing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["camstages"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
