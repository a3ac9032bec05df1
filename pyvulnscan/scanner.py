"""Entry point of a scan once the dependencies are known."""

from __future__ import annotations

from collections.abc import Iterable

from pyvulnscan.api import Osv
from pyvulnscan.models import Dependency, ScannedDependency, ScanOptions
from pyvulnscan.utils import PipCache


def start(
    imports: Iterable[Dependency],
    options: ScanOptions | None = None,
    cache: PipCache | None = None,
) -> list[ScannedDependency]:
    """Scan the dependencies against OSV and return those with vulnerabilities."""
    imports = list(imports)
    osv = Osv()
    print(f"Found {len(imports)} dependencies")
    return osv.query_batched(imports, options, cache)