[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pyvulnscan"
version = "0.1.7"
description = "Python dependency vulnerability scanner backed by the OSV database"
requires-python = ">=3.11"
keywords = ["cli", "python", "security", "vulnerability", "osv", "dependencies"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
    "Topic :: Software Development :: Quality Assurance",
]
dependencies = [
    "requests>=2.28",
    "packaging>=23.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
pyvulnscan = "pyvulnscan.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["pyvulnscan"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
