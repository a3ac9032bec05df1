"""Extract dependencies from Python sources, requirement lists, setup.py and pyproject.toml."""

from __future__ import annotations

import re
import sys
import tomllib
from itertools import groupby
from typing import Any

from packaging.requirements import InvalidRequirement, Requirement

from pyvulnscan.models import Dependency, VersionStatus

_IMPORT_RE = re.compile(r"^\s*(?:from|import)\s+(\w+(?:\s*,\s*\w+)*)", re.MULTILINE)
_INSTALL_REQUIRES_RE = re.compile(r"install_requires\s*=\s*\[([^\]]+)\]")

_PROJECT_LEVEL = ("dependencies", "optional-dependencies.docs", "optional-dependencies")
_POETRY_LEVEL = ("dependencies", "dev-dependencies")
_TOML_SYNTAX_ERROR = "ERR: Invalid dependency syntax found while TOML parsing"


def _spec_position(text: str, operator: str, version: str) -> int:
    match = re.search(re.escape(operator) + r"\s*" + re.escape(version), text)
    return match.start() if match else len(text)


def parse_requirement(text: str) -> Dependency | None:
    """Parse one PEP 508 requirement.

    Only the first version specifier written is kept. Returns None for a URL
    requirement; raises ValueError when ``text`` is not a valid requirement.
    """
    try:
        req = Requirement(text)
    except InvalidRequirement as exc:
        raise ValueError(str(exc)) from exc
    if req.url is not None:
        return None
    specs = list(req.specifier)
    if not specs:
        return Dependency(name=req.name, version_status=VersionStatus())
    first = min(specs, key=lambda spec: _spec_position(text, spec.operator, spec.version))
    return Dependency(
        name=req.name,
        version=first.version,
        comparator=first.operator,
        version_status=VersionStatus(source=True),
    )


def _parse_quietly(requirements: list[str]) -> list[Dependency]:
    deps = []
    for text in requirements:
        try:
            dep = parse_requirement(text)
        except ValueError:
            continue
        if dep is not None:
            deps.append(dep)
    return deps


def extract_imports_python(text: str) -> list[Dependency]:
    """Dependencies named by ``import``/``from`` statements at the start of a line."""
    deps = []
    for match in _IMPORT_RE.finditer(text):
        name = match.group(0).replace("import", "", 1).strip()
        deps.append(Dependency(name=name, version_status=VersionStatus()))
    return deps


def extract_imports_reqs(text: str) -> list[Dependency]:
    """The dependency on one requirements.txt line; parse errors are reported to stderr."""
    try:
        dep = parse_requirement(text)
    except ValueError as exc:
        print(exc, file=sys.stderr)
        return []
    return [] if dep is None else [dep]


def extract_imports_setup_py(content: str) -> list[Dependency]:
    """Dependencies listed in the ``install_requires`` lists of a setup.py."""
    requirements: list[str] = []
    for match in _INSTALL_REQUIRES_RE.finditer(content):
        requirements.extend(
            item.strip().replace('"', "").replace("\\", "") for item in match.group(1).split(",")
        )
    return _parse_quietly(requirements)


def parse_opt_deps_pyproject(table: dict[str, Any]) -> list[str]:
    """Requirement strings from an ``optional-dependencies`` table of string lists."""
    requirements: list[str] = []
    for _, group in sorted(table.items()):
        if not isinstance(group, list):
            raise ValueError("optional dependency groups must be arrays of strings")
        for item in group:
            if not isinstance(item, str):
                raise ValueError("optional dependencies must be strings")
            requirements.append(item)
    return requirements


def _poetry_requirement(name: str, constraint: str) -> str | None:
    if "^" in constraint:
        if not constraint.startswith("^"):
            raise ValueError(f"unsupported version constraint for {name!r}: {constraint!r}")
        return f"{name} >= {constraint.removeprefix('^')}"
    if constraint == "*":
        return name
    return None


def _strings(values: list[Any]) -> list[str]:
    return [item for item in values if isinstance(item, str)]


def _extract_dependencies(table: dict[str, Any], poetry: bool = False) -> list[str]:
    requirements: list[str] = []
    for key, value in sorted(table.items()):
        if key in _PROJECT_LEVEL:
            if isinstance(value, str):
                requirements.append(value)
            elif isinstance(value, dict):
                if key == "optional-dependencies":
                    requirements.extend(parse_opt_deps_pyproject(value))
                else:
                    requirements.extend(_extract_dependencies(value))
            elif isinstance(value, list):
                requirements.extend(_strings(value))
            else:
                print(_TOML_SYNTAX_ERROR, file=sys.stderr)
        elif poetry:
            if isinstance(value, str):
                requirement = _poetry_requirement(key, value)
                if requirement is not None:
                    requirements.append(requirement)
            elif isinstance(value, dict):
                requirements.extend(_extract_dependencies(value))
            elif isinstance(value, list):
                requirements.extend(_strings(value))
            else:
                print(_TOML_SYNTAX_ERROR, file=sys.stderr)
    return requirements


def extract_imports_pyproject(content: str) -> list[Dependency]:
    """Dependencies declared in a pyproject.toml, from [project] and [tool.poetry].

    Raises ValueError when the document is not valid TOML or a poetry
    dependency section is not a table.
    """
    document = tomllib.loads(content)
    requirements: list[str] = []

    for key in ("project", "optional-dependencies"):
        section = document.get(key)
        if isinstance(section, dict):
            requirements.extend(_extract_dependencies(section))

    tool = document.get("tool")
    poetry = tool.get("poetry") if isinstance(tool, dict) else None
    if isinstance(poetry, dict):
        for key in _POETRY_LEVEL:
            if key not in poetry:
                continue
            section = poetry[key]
            if not isinstance(section, dict):
                raise ValueError(f"[tool.poetry.{key}] must be a table")
            requirements.extend(_extract_dependencies(section, poetry=True))

    deduplicated = [requirement for requirement, _ in groupby(requirements)]
    return _parse_quietly(deduplicated)