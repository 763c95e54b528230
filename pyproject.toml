[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pngkit"
version = "0.1.0"
description = "PNG chunk, filter-type, deflate-stream and colorimetry utilities, with BMP and gzip helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["png", "chunks", "zlib", "deflate", "icc", "colorimetry", "bmp", "gzip"]
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
    "Topic :: Multimedia :: Graphics",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
pngkit-info = "pngkit.pnginfo:main"
pngkit-gzip = "pngkit.gzipfile:main"

[tool.hatch.build.targets.wheel]
packages = ["pngkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
