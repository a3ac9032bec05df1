"""Terminal output for scan progress, per-dependency results and the summary."""

from __future__ import annotations

import sys
from collections.abc import Mapping, Sequence
from typing import TextIO

from pyvulnscan.models import ScannedDependency, Vuln

_RESET = "\x1b[0m"
_BOLD = "1"
_DIM = "2"
_ITALIC = "3"
_UNDERLINE = "4"
_RED = "91"
_GREEN = "92"
_YELLOW = "93"
_CLEAR_LAST_LINE = "\x1b[1A\x1b[2K"


def _is_tty(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def _styled(text: object, stream: TextIO, *codes: str) -> str:
    if codes and _is_tty(stream):
        return f"\x1b[{';'.join(codes)}m{text}{_RESET}"
    return str(text)


def _write_line(stream: TextIO, line: str) -> None:
    stream.write(line + "\n")
    stream.flush()


class Progress:
    """A single self-overwriting line counting the vulnerabilities found so far."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.count = 0
        self._displayed = 0
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def _clear_last_line(self) -> None:
        if _is_tty(self.stream):
            self.stream.write(_CLEAR_LAST_LINE)
            self.stream.flush()

    def count_one(self) -> None:
        self.count += 1

    def display(self) -> None:
        if self.count > 1:
            self._clear_last_line()
        if self.count > self._displayed:
            number = _styled(self.count, self.stream, _BOLD, _RED)
            _write_line(self.stream, f"Found {number} vulnerabilities so far")
            self._displayed = self.count

    def end(self) -> None:
        self._clear_last_line()


def affected_range(vuln: Vuln) -> tuple[str, str]:
    """First and last affected version of an advisory, with placeholders when unlisted."""
    if not vuln.affected:
        raise ValueError("No version found affected")
    first = vuln.affected[0].versions
    last = vuln.affected[-1].versions
    start = first[0] if first else "This version"
    end = last[-1] if last else "Unknown"
    return start, end


def display_queried(
    collected: Sequence[ScannedDependency],
    imports_info: Mapping[str, str],
) -> None:
    """Print each dependency as vulnerable or safe, then the summary."""
    out = sys.stdout
    for dep in collected:
        _write_line(
            out,
            f"|-| {_styled(dep.name, out, _BOLD, _YELLOW)} "
            f"[{_styled(dep.version, out, _BOLD, _DIM)}]"
            f"{_styled(' -> Found vulnerabilities!', out, _BOLD, _RED)}",
        )
    vulnerable = {dep.name for dep in collected}
    for name, version in imports_info.items():
        if name in vulnerable:
            continue
        _write_line(
            out,
            f"|-| {_styled(name, out, _BOLD, _YELLOW)} "
            f"[{_styled(version, out, _BOLD, _DIM)}]"
            f"{_styled(' -> No vulnerabilities found.', out, _BOLD, _GREEN)}",
        )
    display_summary(collected)


def display_summary(collected: Sequence[ScannedDependency]) -> None:
    """Print the details of every advisory found, or a closing line when there are none."""
    out = sys.stdout
    if not collected:
        _write_line(out, "Finished scanning all found dependencies.")
        return
    _write_line(out, _styled("SUMMARY", out, _BOLD, _YELLOW, _UNDERLINE))
    for dep in collected:
        for vuln in dep.vuln.vulns:
            _write_line(out, f"Dependency: {_styled(dep.name, out, _BOLD, _RED)}")
            _write_line(out, f"ID: {_styled(vuln.id, out, _BOLD, _YELLOW)}")
            _write_line(out, f"Details: {_styled(vuln.details, out, _ITALIC)}")
            start, end = affected_range(vuln)
            _write_line(out, "")
            _write_line(
                out,
                f"Versions affected: {_styled(start, out, _DIM, _UNDERLINE)} "
                f"to {_styled(end, out, _DIM, _UNDERLINE)}",
            )