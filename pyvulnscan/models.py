"""Data types shared across the scanner: found files, dependencies and OSV/PyPI payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

OSV_ECOSYSTEM = "PyPI"
UNKNOWN_PARENT_VERSION = "parent package related to one of your dependencies"


def _field(data: Any, key: str, kind: type | tuple[type, ...], *, optional: bool = False) -> Any:
    """Fetch ``key`` from a decoded JSON object, checking its presence and type."""
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object while reading {key!r}, got {type(data).__name__}")
    value = data.get(key)
    if value is None:
        if optional:
            return None
        raise ValueError(f"missing field {key!r}")
    if not isinstance(value, kind):
        raise ValueError(f"field {key!r} has unexpected type {type(value).__name__}")
    return value


def _string_list(values: list[Any], key: str) -> list[str]:
    if not all(isinstance(item, str) for item in values):
        raise ValueError(f"field {key!r} must hold only strings")
    return list(values)


class FileType(Enum):
    """Kinds of source files that can declare dependencies."""

    PYTHON = "python"
    REQUIREMENTS = "requirements"
    PYPROJECT = "pyproject"
    CONSTRAINTS = "constraints"
    SETUPPY = "setuppy"


@dataclass(frozen=True, slots=True)
class FoundFile:
    """A file discovered in the scanned directory."""

    name: str
    filetype: FileType
    path: Path

    def is_python(self) -> bool:
        return self.filetype is FileType.PYTHON

    def is_reqs(self) -> bool:
        return self.filetype is FileType.REQUIREMENTS

    def is_pyproject(self) -> bool:
        return self.filetype is FileType.PYPROJECT

    def is_constraints(self) -> bool:
        return self.filetype is FileType.CONSTRAINTS

    def is_setuppy(self) -> bool:
        return self.filetype is FileType.SETUPPY


@dataclass(slots=True)
class FoundFileResult:
    """All files found in a directory, used to decide which source to prefer."""

    files: list[FoundFile] = field(default_factory=list)

    def add(self, found: FoundFile) -> None:
        self.files.append(found)

    def count(self, filetype: FileType) -> int:
        """Number of found files of the given type."""
        return sum(1 for found in self.files if found.filetype is filetype)


@dataclass(slots=True)
class VersionStatus:
    """Records where a dependency's version came from."""

    pypi: bool = False
    pip: bool = False
    source: bool = False


@dataclass(slots=True)
class Dependency:
    """A dependency name with an optional version and comparator."""

    name: str
    version: str | None = None
    comparator: str | None = None
    version_status: VersionStatus = field(default_factory=VersionStatus)

    def to_query(self) -> Query:
        if self.version is None:
            raise ValueError(f"dependency {self.name!r} has no version to query")
        return Query(version=self.version, name=self.name)


@dataclass(frozen=True, slots=True)
class ScanOptions:
    """Command-line choices that influence how a scan runs."""

    pip: bool = False
    pypi: bool = False
    output: str | None = None
    cache_off: bool = False


@dataclass(frozen=True, slots=True)
class Package:
    """The package an OSV advisory applies to."""

    name: str
    ecosystem: str
    purl: str

    @classmethod
    def from_dict(cls, data: Any) -> Package:
        return cls(
            name=_field(data, "name", str),
            ecosystem=_field(data, "ecosystem", str),
            purl=_field(data, "purl", str),
        )


@dataclass(frozen=True, slots=True)
class Affected:
    """One affected package entry of an OSV advisory."""

    package: Package
    versions: list[str] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Affected:
        versions = _field(data, "versions", list, optional=True)
        return cls(
            package=Package.from_dict(_field(data, "package", dict)),
            versions=None if versions is None else _string_list(versions, "versions"),
        )


@dataclass(frozen=True, slots=True)
class Vuln:
    """A single OSV advisory."""

    id: str
    details: str
    affected: list[Affected]

    @classmethod
    def from_dict(cls, data: Any) -> Vuln:
        return cls(
            id=_field(data, "id", str),
            details=_field(data, "details", str),
            affected=[Affected.from_dict(item) for item in _field(data, "affected", list)],
        )


@dataclass(frozen=True, slots=True)
class ScannedDependency:
    """A dependency paired with the vulnerabilities found for it."""

    name: str
    version: str
    vuln: Vulnerability


@dataclass(frozen=True, slots=True)
class Vulnerability:
    """The set of advisories found for one dependency."""

    vulns: list[Vuln]

    @classmethod
    def from_dict(cls, data: Any) -> Vulnerability:
        return cls(vulns=[Vuln.from_dict(item) for item in _field(data, "vulns", list)])

    def to_scanned_dependency(self, imports_info: dict[str, str]) -> ScannedDependency:
        """Name the affected package and look its version up in ``imports_info``."""
        if self.vulns:
            first = self.vulns[0]
            name = first.affected[0].package.name if first.affected else "Name in Context"
        else:
            name = "Name In Context"
        version = imports_info.get(name, UNKNOWN_PARENT_VERSION)
        return ScannedDependency(name=name, version=version, vuln=self)


@dataclass(frozen=True, slots=True)
class Query:
    """A single OSV query for a package version."""

    version: str
    name: str
    ecosystem: str = OSV_ECOSYSTEM

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "package": {"name": self.name, "ecosystem": self.ecosystem},
        }


@dataclass(frozen=True, slots=True)
class QueryBatched:
    """A batch of OSV queries."""

    queries: list[Query]

    def to_dict(self) -> dict[str, Any]:
        return {"queries": [query.to_dict() for query in self.queries]}


@dataclass(frozen=True, slots=True)
class QueryVuln:
    """A vulnerability reference returned by a batch query."""

    id: str
    modified: str


@dataclass(frozen=True, slots=True)
class QueryResult:
    """The result of one query in a batch; ``vulns`` is None when nothing was found."""

    vulns: list[QueryVuln] | None = None


@dataclass(frozen=True, slots=True)
class QueryResponse:
    """The response to a batch query, one result per query in order."""

    results: list[QueryResult]

    @classmethod
    def from_dict(cls, data: Any) -> QueryResponse:
        results = []
        for item in _field(data, "results", list):
            vulns = _field(item, "vulns", list, optional=True)
            if vulns is None:
                results.append(QueryResult())
            else:
                results.append(
                    QueryResult(
                        vulns=[
                            QueryVuln(id=_field(v, "id", str), modified=_field(v, "modified", str))
                            for v in vulns
                        ]
                    )
                )
        return cls(results=results)


@dataclass(frozen=True, slots=True)
class PypiResponse:
    """The release listing from a PyPI project JSON document."""

    releases: dict[str, list[dict[str, Any]] | None]

    @classmethod
    def from_dict(cls, data: Any) -> PypiResponse:
        raw = _field(data, "releases", dict)
        releases: dict[str, list[dict[str, Any]] | None] = {}
        for version, files in raw.items():
            if files is not None and not (
                isinstance(files, list) and all(isinstance(f, dict) for f in files)
            ):
                raise ValueError(f"release {version!r} must be a list of file objects")
            releases[version] = files
        return cls(releases=releases)