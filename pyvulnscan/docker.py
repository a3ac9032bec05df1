"""Scan the dependencies of a project stored inside a Docker image."""

from __future__ import annotations

import os
import shutil
import subprocess
from contextlib import suppress
from pathlib import Path

from pyvulnscan.models import ScannedDependency, ScanOptions
from pyvulnscan.parser import scan_dir
from pyvulnscan.utils import PipCache

TMP_DIR = Path("tmp", "docker-files")


class DockerError(Exception):
    """Raised when a docker command fails or cannot be run."""

    def __str__(self) -> str:
        return f"Docker error: {super().__str__()}"


def _docker(*args: str) -> subprocess.CompletedProcess[bytes]:
    try:
        return subprocess.run(["docker", *args], capture_output=True, check=False)
    except OSError as exc:
        raise DockerError(str(exc)) from exc


def _checked(*args: str) -> subprocess.CompletedProcess[bytes]:
    completed = _docker(*args)
    if completed.returncode != 0:
        raise DockerError(completed.stderr.decode("utf-8", errors="replace"))
    return completed


def _remove_container(container_id: str) -> None:
    _docker("stop", container_id)
    _docker("rm", container_id)


def list_files_in_docker_image(
    image: str,
    path: str | os.PathLike[str],
    options: ScanOptions | None = None,
    cache: PipCache | None = None,
) -> list[ScannedDependency]:
    """Copy ``path`` out of a container made from ``image`` and scan it.

    The copied files and the container are removed afterwards. Returns the
    vulnerable dependencies found.
    """
    created = _checked("create", image)
    try:
        container_id = created.stdout.decode("utf-8").strip()
    except UnicodeDecodeError as exc:
        raise DockerError(str(exc)) from exc

    try:
        TMP_DIR.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        with suppress(DockerError):
            _remove_container(container_id)
        raise DockerError(
            "Could not create a temporary folder for the docker files. "
            f"Try creating it yourself:\n./{TMP_DIR.as_posix()}\n({exc})"
        ) from exc

    try:
        _checked("cp", f"{container_id}:/{os.fspath(path)}", os.fspath(TMP_DIR))
        scanned = scan_dir(TMP_DIR, options, cache)
    except BaseException:
        shutil.rmtree(TMP_DIR, ignore_errors=True)
        with suppress(DockerError):
            _remove_container(container_id)
        raise

    try:
        shutil.rmtree(TMP_DIR)
    except OSError as exc:
        raise DockerError(str(exc)) from exc
    _remove_container(container_id)
    return scanned