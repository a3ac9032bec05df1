"""Find dependency sources in a directory and extract the dependencies they declare."""

from __future__ import annotations

import os
from pathlib import Path, PurePath

from pyvulnscan.extractor import (
    extract_imports_pyproject,
    extract_imports_python,
    extract_imports_reqs,
    extract_imports_setup_py,
)
from pyvulnscan.models import (
    Dependency,
    FileType,
    FoundFile,
    FoundFileResult,
    ScannedDependency,
    ScanOptions,
)
from pyvulnscan.scanner import start
from pyvulnscan.utils import PipCache

_NAMED_FILES = {
    "requirements.txt": FileType.REQUIREMENTS,
    "constraints.txt": FileType.CONSTRAINTS,
    "pyproject.toml": FileType.PYPROJECT,
}
_NOTHING_FOUND = (
    "Could not find any requirements.txt, pyproject.toml or python files in this directory"
)


def classify(filename: str) -> FileType | None:
    """The kind of dependency source a file name denotes, or None."""
    if filename == "setup.py":
        return FileType.SETUPPY
    if PurePath(filename).suffix == ".py":
        return FileType.PYTHON
    return _NAMED_FILES.get(filename)


def find_files(directory: str | os.PathLike[str]) -> FoundFileResult:
    """The dependency sources directly inside ``directory``; empty if it cannot be read."""
    result = FoundFileResult()
    try:
        entries = sorted(Path(directory).iterdir())
    except OSError:
        return result
    for entry in entries:
        filetype = classify(entry.name)
        if filetype is not None and entry.is_file():
            result.add(FoundFile(name=entry.name, filetype=filetype, path=entry))
    return result


def _lines(path: Path) -> list[str]:
    """Readable UTF-8 lines of a file; undecodable lines and unreadable files are skipped."""
    try:
        data = path.read_bytes()
    except OSError:
        return []
    lines = []
    for raw in data.splitlines():
        try:
            lines.append(raw.decode("utf-8"))
        except UnicodeDecodeError:
            continue
    return lines


def _read_text(path: Path, label: str) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        print(f"There was a problem reading your {label}")
        return None


def _from_requirement_files(result: FoundFileResult, filetype: FileType) -> list[Dependency]:
    deps: list[Dependency] = []
    for found in result.files:
        if found.filetype is filetype:
            for line in _lines(found.path):
                deps.extend(extract_imports_reqs(line.strip()))
    return deps


def _from_pyproject(result: FoundFileResult) -> list[Dependency]:
    deps: list[Dependency] = []
    for found in result.files:
        if found.is_pyproject():
            content = _read_text(found.path, "pyproject.toml")
            if content is None:
                continue
            try:
                deps.extend(extract_imports_pyproject(content))
            except ValueError:
                continue
    return deps


def _from_setup_py(result: FoundFileResult) -> list[Dependency]:
    deps: list[Dependency] = []
    for found in result.files:
        if found.is_setuppy():
            content = _read_text(found.path, "setup.py")
            if content is not None:
                deps.extend(extract_imports_setup_py(content))
    return deps


def _from_python(result: FoundFileResult) -> list[Dependency]:
    deps: list[Dependency] = []
    for found in result.files:
        if found.is_python():
            for line in _lines(found.path):
                deps.extend(extract_imports_python(line))
    return deps


def collect_dependencies(result: FoundFileResult) -> list[Dependency]:
    """Dependencies from the preferred source found.

    Preference: requirements.txt, constraints.txt, pyproject.toml, setup.py, then
    plain Python files. Raises FileNotFoundError when none is present.
    """
    if result.count(FileType.REQUIREMENTS):
        print("Using requirements.txt...")
        return _from_requirement_files(result, FileType.REQUIREMENTS)
    if result.count(FileType.CONSTRAINTS):
        print("Using requirements.txt...")
        return _from_requirement_files(result, FileType.CONSTRAINTS)
    if result.count(FileType.PYPROJECT):
        print("Using pyproject.toml as source...")
        return _from_pyproject(result)
    if result.count(FileType.SETUPPY):
        print("Using setup.py as source...")
        return _from_setup_py(result)
    if result.count(FileType.PYTHON):
        print("Using python file as source...")
        return _from_python(result)
    raise FileNotFoundError(_NOTHING_FOUND)


def scan_dir(
    directory: str | os.PathLike[str],
    options: ScanOptions | None = None,
    cache: PipCache | None = None,
) -> list[ScannedDependency]:
    """Scan the dependencies declared in ``directory`` and return the vulnerable ones."""
    deps = collect_dependencies(find_files(directory))
    return start(deps, options, cache)