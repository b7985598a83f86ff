"""net-amermaid: interactive mermaid class diagrams for .NET assemblies."""

from __future__ import annotations


def _get_version() -> str:
    """Best-effort version string."""
    try:
        from importlib.metadata import version  # noqa: PLC0415

        return version("net-amermaid")
    except Exception:
        return "0.0.0-dev"


__version__ = _get_version()
