"""Scan Python project dependencies for known vulnerabilities using OSV."""

__version__ = "0.1.7"
__all__ = ["__version__"]