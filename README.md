# pyvulnscan

A command-line scanner that checks the dependencies of a Python project
against the OSV vulnerability database.

## What it reads

`pyvulnscan` looks at the files directly inside a directory. It does not
descend into subdirectories. It picks one source of dependencies, in this
order of preference:

1. `requirements.txt`
2. `constraints.txt`
3. `pyproject.toml` (`[project]` dependencies and optional dependencies, and
   `[tool.poetry]` `dependencies` / `dev-dependencies`)
4. `setup.py` (the `install_requires` lists)
5. plain `.py` files (their `import` / `from` statements)

Only the first version specifier of each requirement is used. If a
dependency has no version, the version comes from `pip`. If `pip` cannot
supply one, the latest release on pypi.org is used.

## Installation

```
pip install .
```

## Usage

Scan the current directory:

```
pyvulnscan
```

Scan another directory:

```
pyvulnscan --dir path/to/project
```

Always take versions from `pip`, or always the latest release from pypi.org:

```
pyvulnscan --pip
pyvulnscan --pypi
```

Skip loading the `pip list` cache at start-up:

```
pyvulnscan --cache-off
```

Write the raw OSV batch response to a JSON file in the current directory
instead of displaying the results:

```
pyvulnscan --output result.json
```

Check a single package. Without `--version` it checks the latest release
on pypi.org:

```
pyvulnscan package --name requests --version 2.19.0
```

Scan a project inside a Docker image. This needs `docker` on the path, and
usually elevated permissions:

```
pyvulnscan docker --name my-image --path app
```

The docker command creates a container from the image and copies the given
path into `./tmp/docker-files`. It scans that directory, then removes the
copied files and the container.

Show the version:

```
pyvulnscan --version
```

## Exit status

The command exits with one of two codes:

- `0` when no vulnerabilities are found, and also when the results were
  written with `--output`.
- `1` when at least one vulnerability is found, or when the scan cannot be
  completed (pip, pypi.org, OSV or docker errors, or no dependency source
  found).

## Using it from Python

Each step of a scan can be called on its own:

- `pyvulnscan.parser.find_files` and `pyvulnscan.parser.collect_dependencies`
  find the dependency sources and extract their dependencies.
- The `pyvulnscan.extractor` functions parse single formats, for example
  `extract_imports_pyproject` and `parse_requirement`.
- `pyvulnscan.api.Osv` queries OSV directly.
- `pyvulnscan.parser.scan_dir` runs a full scan of a directory. It returns
  the vulnerable dependencies as `ScannedDependency` objects.

## Limitations

- OSV is the only vulnerability database that is queried.
- `--output` writes only files whose names end in `.json`. With any other
  name, the results are displayed as usual.

## Running the tests

```
pip install .[test]
pytest
```