[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hshoptool"
version = "0.1.0"
description = "Tools for hShop companion files: HSTX themes, HWAV audio, CWAV reading, playlists and the hLink remote protocol"
requires-python = ">=3.10"
keywords = ["hstx", "hwav", "cwav", "theme", "playlist", "lzss", "hlink"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Utilities",
]
dependencies = ["pillow"]

[project.optional-dependencies]
test = ["pytest", "pillow"]

[project.scripts]
hshoptool = "hshoptool.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["hshoptool"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
