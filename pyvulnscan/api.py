"""Client for the OSV vulnerability database."""

from __future__ import annotations

import json
import sys
from collections.abc import Iterable
from pathlib import Path

import requests

from pyvulnscan.display import Progress, display_queried
from pyvulnscan.models import (
    Dependency,
    QueryBatched,
    QueryResponse,
    Query,
    ScannedDependency,
    ScanOptions,
    Vuln,
    Vulnerability,
)
from pyvulnscan.utils import (
    PipCache,
    choose_version,
    get_package_version_pypi,
    get_time,
    get_version,
    vecdep_to_dict,
)

OSV_HOME = "https://osv.dev"
OSV_API = "https://api.osv.dev/v1"
QUERY_URL = f"{OSV_API}/query"
QUERYBATCH_URL = f"{OSV_API}/querybatch"
_TIMEOUT = 30


class OsvError(Exception):
    """Raised when OSV cannot be reached or answers with something unusable."""


def _status_problem(response: requests.Response) -> str | None:
    if 400 <= response.status_code < 500:
        return "Failed connecting to OSV. [Client error]"
    if response.status_code >= 500:
        return "Failed connecting to OSV. [Server error]"
    return None


class Osv:
    """A session with OSV, checked to be reachable when created."""

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session = session if session is not None else requests.Session()
        self._session.headers["User-Agent"] = f"pyvulnscan {get_version()}"
        try:
            self._session.get(OSV_HOME, timeout=_TIMEOUT)
        except requests.RequestException as exc:
            raise OsvError(
                "Could not connect to the OSV website. Check your internet or try again."
            ) from exc
        self.online = True
        self.last_queried = get_time()

    def query(self, dep: Dependency) -> Vulnerability | None:
        """Advisories for one dependency, using the latest PyPI release when unversioned."""
        version = dep.version if dep.version is not None else get_package_version_pypi(dep.name)
        return self.get_json(dep.name, version)

    def query_batched(
        self,
        deps: Iterable[Dependency],
        options: ScanOptions | None = None,
        cache: PipCache | None = None,
    ) -> list[ScannedDependency]:
        """Query all dependencies at once, display the outcome and return the vulnerable ones.

        Dependencies without a version get one chosen first. When ``options.output``
        names a ``.json`` file, the raw response is written there instead and nothing
        is displayed.
        """
        options = options if options is not None else ScanOptions()
        deps = list(deps)
        for dep in deps:
            if dep.version is None:
                dep.version = choose_version(dep.name, None, options, cache)

        imports_info = vecdep_to_dict(deps)
        batched = QueryBatched(queries=[dep.to_query() for dep in deps])

        try:
            response = self._session.post(
                QUERYBATCH_URL, data=json.dumps(batched.to_dict()), timeout=_TIMEOUT
            )
        except requests.RequestException as exc:
            raise OsvError("Could not fetch a response from osv.dev") from exc
        problem = _status_problem(response)
        if problem is not None:
            raise OsvError(problem)
        text = response.text

        if options.output is not None and options.output.endswith(".json"):
            try:
                (Path.cwd() / options.output).write_text(text, encoding="utf-8")
            except OSError as exc:
                raise OsvError(f"Could not write output to file: {exc}") from exc
            return []

        try:
            parsed = QueryResponse.from_dict(json.loads(text))
        except ValueError as exc:
            raise OsvError(
                "Invalid parse of the OSV batch response. This is usually due to an "
                "unforeseen API response or a malformed source file."
            ) from exc

        progress = Progress()
        scanned: list[ScannedDependency] = []
        for result in parsed.results:
            if result.vulns is None:
                continue
            vulnerability = Vulnerability(vulns=[self.vuln_id(qv.id) for qv in result.vulns])
            progress.count_one()
            progress.display()
            scanned.append(vulnerability.to_scanned_dependency(imports_info))
        if progress.count > 0:
            progress.end()

        display_queried(scanned, imports_info)
        return scanned

    def vuln_id(self, vuln_id: str) -> Vuln:
        """The full advisory for an OSV vulnerability ID."""
        try:
            response = self._session.get(f"{OSV_API}/vulns/{vuln_id}", timeout=_TIMEOUT)
        except requests.RequestException as exc:
            raise OsvError("Could not fetch a response from osv.dev") from exc
        problem = _status_problem(response)
        if problem is not None:
            print(problem, file=sys.stderr)
        try:
            return Vuln.from_dict(json.loads(response.text))
        except ValueError as exc:
            raise OsvError(f"Invalid parse of the OSV vulnerability response: {exc}") from exc

    def get_json(self, name: str, version: str) -> Vulnerability | None:
        """Advisories for one package version; None when OSV reports none."""
        body = json.dumps(Query(version=version, name=name).to_dict())
        try:
            response = self._session.post(QUERY_URL, data=body, timeout=_TIMEOUT)
        except requests.RequestException as exc:
            raise OsvError("Could not fetch a response from osv.dev") from exc
        problem = _status_problem(response)
        if problem is not None:
            print(problem, file=sys.stderr)
        text = response.text.strip()
        # OSV answers "{}" when there is nothing to report.
        if len(text) < 3:
            return None
        try:
            return Vulnerability.from_dict(json.loads(text))
        except ValueError:
            return None