"""Command-line interface of the dependency vulnerability scanner."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from pyvulnscan.api import OsvError
from pyvulnscan.docker import DockerError, list_files_in_docker_image
from pyvulnscan.models import Dependency, ScannedDependency, ScanOptions, VersionStatus
from pyvulnscan.parser import scan_dir
from pyvulnscan.scanner import start
from pyvulnscan.utils import (
    PipCache,
    PipError,
    PypiError,
    SysInfo,
    VersionNotFoundError,
    get_package_version_pypi,
    get_version,
)

_FAILURES = (
    PipError,
    PypiError,
    VersionNotFoundError,
    OsvError,
    DockerError,
    FileNotFoundError,
)


def build_parser() -> argparse.ArgumentParser:
    """The argument parser for the ``pyvulnscan`` command."""
    parser = argparse.ArgumentParser(
        prog="pyvulnscan",
        description=(
            "python dependency vulnerability scanner.\n\n"
            "do 'pyvulnscan [subcommand] --help' for specific help."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-V", "--version", action="version", version=f"pyvulnscan {get_version()}"
    )
    parser.add_argument(
        "-d", "--dir", type=Path, default=None, metavar="DIRECTORY",
        help="path to source. (default: current directory)",
    )
    parser.add_argument(
        "-o", "--output", default=None, metavar="FILENAME",
        help="export the result to a desired format. [json]",
    )
    parser.add_argument("-s", "--skip", nargs="*", default=[], help=argparse.SUPPRESS)
    parser.add_argument("--show", nargs="*", default=[], help=argparse.SUPPRESS)
    parser.add_argument(
        "--pip", action="store_true",
        help="Uses pip to retrieve versions. if not provided it will use the source, "
        "falling back on pip if not, pypi.org.",
    )
    parser.add_argument(
        "--pypi", action="store_true",
        help="Same as --pip except uses pypi.org to retrieve the latest version for the packages.",
    )
    parser.add_argument(
        "--cache-off", dest="cache_off", action="store_true",
        help="turns off the caching of pip packages at the starting of execution.",
    )

    commands = parser.add_subparsers(dest="command")

    package = commands.add_parser("package", help="query for a single python package")
    package.add_argument("-n", "--name", required=True, help="name of the package")
    package.add_argument(
        "-v", "--version", default=None,
        help="version of the package (defaults to latest if not provided)",
    )

    docker = commands.add_parser("docker", help="scan inside a docker image")
    docker.add_argument("-n", "--name", required=True, help="name of the docker image")
    docker.add_argument(
        "-p", "--path", required=True, type=Path, metavar="DIRECTORY",
        help="path inside your docker container where requirements.txt is, or just the "
        "folder name where your Dockerfile (along with requirements.txt) is.",
    )
    return parser


def _run_package(name: str, version: str | None, options: ScanOptions) -> list[ScannedDependency]:
    if version is None:
        version = get_package_version_pypi(name)
    dep = Dependency(name=name, version=version, version_status=VersionStatus())
    return start([dep], options)


def _run_docker(image: str, path: Path, options: ScanOptions) -> list[ScannedDependency]:
    print(f"Docker image: {image}\nPath inside container: {path}")
    print(
        "--- Make sure you run the command with elevated permissions (sudo/administrator) "
        "as pyvulnscan might have trouble accessing files inside docker containers ---"
    )
    return list_files_in_docker_image(image, path, options)


def _run_scan(directory: Path | None, options: ScanOptions) -> list[ScannedDependency]:
    print(f"pyvulnscan v{get_version()}")
    sys_info = SysInfo.detect()
    cache: PipCache | None = None
    if not options.cache_off or sys_info.pip_found:
        try:
            cache = PipCache.load()
        except PipError as exc:
            print(exc, file=sys.stderr)
    return scan_dir(directory if directory is not None else Path.cwd(), options, cache)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the scanner; returns 1 when vulnerabilities are found or the scan fails."""
    args = build_parser().parse_args(argv)
    options = ScanOptions(
        pip=args.pip, pypi=args.pypi, output=args.output, cache_off=args.cache_off
    )
    try:
        if args.command == "package":
            scanned = _run_package(args.name, args.version, options)
        elif args.command == "docker":
            scanned = _run_docker(args.name, args.path, options)
        else:
            scanned = _run_scan(args.dir, options)
    except _FAILURES as exc:
        print(exc, file=sys.stderr)
        return 1
    return 1 if scanned else 0


if __name__ == "__main__":
    sys.exit(main())