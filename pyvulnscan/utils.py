"""Version lookups through pip and PyPI, plus small helpers used across the scanner."""

from __future__ import annotations

import json
import subprocess
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone

import requests
from packaging.version import InvalidVersion, Version

from pyvulnscan.models import Dependency, PypiResponse, ScanOptions

VERSION = "0.1.7"
PYPI_URL = "https://pypi.org"
_TIMEOUT = 30

_PIP_LIST_EXEC_ERROR = (
    "Failed to execute 'pip list' command. pyvulnscan caches the dependencies from pip with "
    "versions to be faster and it could not run 'pip list'. You can turn this off via just "
    "using --cache-off [note: theres a chance pyvulnscan might still fallback to using pip]"
)
_PIP_LIST_UTF8_ERROR = (
    "Output from 'pip list' was not valid UTF-8. pyvulnscan caches the dependencies from pip "
    "with versions to be faster and the output it recieved was not valid UTF-8. You can turn "
    "this off via just using --cache-off [note: theres a chance pyvulnscan might still "
    "fallback to using pip]"
)


class PipError(Exception):
    """Raised when a version cannot be obtained from pip."""

    def __str__(self) -> str:
        return f"Pip error: {super().__str__()}"


class PypiError(Exception):
    """Raised when a version cannot be obtained from pypi.org."""

    def __str__(self) -> str:
        return (
            f"pypi.org error: {super().__str__()}\n\n(note: this might usually happen when the "
            "dependency does not exist on pypi [check spelling, typos, etc] or when there's "
            "problems accessing the website.)"
        )


class VersionNotFoundError(Exception):
    """Raised when no source could supply a version for a dependency."""


def get_time() -> str:
    """Current UTC time as ``HH:MM:SS AM`` on a 12-hour clock."""
    now = datetime.now(timezone.utc)
    hour = now.hour % 12 or 12
    suffix = "PM" if now.hour >= 12 else "AM"
    return f"{hour:02}:{now.minute:02}:{now.second:02} {suffix}"


def get_version() -> str:
    return VERSION


def _user_agent() -> dict[str, str]:
    return {"User-Agent": f"pyvulnscan v{get_version()}"}


def parse_pip_list(text: str) -> dict[str, str]:
    """Map package names to versions from the output of ``pip list``."""
    packages: dict[str, str] = {}
    for line in text.splitlines()[2:]:
        parts = line.split()
        if len(parts) >= 2:
            packages[parts[0]] = parts[1]
    return packages


def pip_list() -> dict[str, str]:
    """Run ``pip list`` and return its package/version table."""
    try:
        completed = subprocess.run(["pip", "list"], capture_output=True, check=False)
    except OSError as exc:
        raise PipError(_PIP_LIST_EXEC_ERROR) from exc
    try:
        text = completed.stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise PipError(_PIP_LIST_UTF8_ERROR) from exc
    return parse_pip_list(text)


@dataclass(slots=True)
class PipCache:
    """Package versions from ``pip list`` kept for quick lookup."""

    cache: dict[str, str] = field(default_factory=dict)
    cached: bool = True

    @classmethod
    def load(cls) -> PipCache:
        return cls(cache=pip_list(), cached=True)

    def lookup(self, package_name: str) -> str:
        try:
            return self.cache[package_name]
        except KeyError:
            raise PipError("Package not found in pip") from None

    def clear(self) -> None:
        if self.cached:
            self.cache.clear()


def get_python_package_version(package: str, cache: PipCache | None = None) -> str:
    """Version of ``package`` as installed by pip, using the cache when it is filled."""
    if cache is not None and cache.cached:
        return cache.lookup(package)
    try:
        completed = subprocess.run(["pip", "show", package], capture_output=True, check=False)
        text = completed.stdout.decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise PipError(str(exc)) from exc
    for line in text.splitlines():
        if line.startswith("Version: "):
            return line[len("Version: "):]
    raise PipError("could not retrive package version from Pip")


def latest_version(versions: Iterable[str]) -> str:
    """The highest of the given release strings; unparseable ones are ignored."""
    parsed = []
    for raw in versions:
        try:
            parsed.append((Version(raw), raw))
        except InvalidVersion:
            continue
    if not parsed:
        raise PypiError("no valid release versions found")
    return max(parsed, key=lambda pair: pair[0])[1]


def get_package_version_pypi(package: str) -> str:
    """Latest released version of ``package`` according to pypi.org."""
    url = f"{PYPI_URL}/pypi/{package}/json"
    try:
        response = requests.get(url, headers=_user_agent(), timeout=_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise PypiError(str(exc)) from exc
    try:
        pypi = PypiResponse.from_dict(json.loads(response.text.strip()))
    except ValueError as exc:
        raise PypiError(str(exc)) from exc
    return latest_version(pypi.releases)


def vecdep_to_dict(deps: Iterable[Dependency]) -> dict[str, str]:
    """Map dependency names to their versions; every dependency must have one."""
    result: dict[str, str] = {}
    for dep in deps:
        if dep.version is None:
            raise ValueError(f"dependency {dep.name!r} has no version")
        result[dep.name] = dep.version
    return result


def check_pypi_status() -> bool:
    """Whether pypi.org answers with a success status."""
    try:
        response = requests.get(PYPI_URL, headers=_user_agent(), timeout=_TIMEOUT)
    except requests.RequestException:
        return False
    return response.ok


@dataclass(frozen=True, slots=True)
class SysInfo:
    """Which version sources are available on this machine."""

    pip_found: bool
    pypi_found: bool

    @classmethod
    def detect(cls) -> SysInfo:
        try:
            pip_list()
            pip_found = True
        except PipError:
            pip_found = False
        return cls(pip_found=pip_found, pypi_found=check_pypi_status())


def choose_version(
    name: str,
    version: str | None,
    options: ScanOptions,
    cache: PipCache | None = None,
) -> str:
    """Pick a version for ``name``: forced by options, else source, pip, then pypi.org."""
    if options.pip:
        return get_python_package_version(name, cache)
    if options.pypi:
        return get_package_version_pypi(name)
    if version is not None:
        return version
    try:
        found = get_python_package_version(name, cache)
    except PipError:
        pass
    else:
        print(
            f"{name} : A version could not be detected in the source file, "
            "so retrieving version from pip instead."
        )
        return found
    try:
        found = get_package_version_pypi(name)
    except PypiError:
        pass
    else:
        print(
            f"{name} : A version could not be detected through source or pip, "
            "so retrieving latest version from pypi.org instead."
        )
        return found
    raise VersionNotFoundError(
        f"A version could not be retrieved for {name}. This should not happen as pyvulnscan "
        "defaults pip or pypi.org, unless:\n1) Pip is not installed\n2) You don't have an "
        "internet connection\n3) You did not anticipate the consequences of not specifying a "
        "version for your dependency in the configuration files."
    )


def _print_err(message: str) -> None:
    print(message, file=sys.stderr)


def version_map(deps: Mapping[str, str]) -> dict[str, str]:
    """A copy of a name/version mapping."""
    return dict(deps)