"""CLI entrypoint for net-amermaid."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Any

import typer
from loguru import logger

if TYPE_CHECKING:
    from pathlib import Path

    from net_amermaid.docs import XmlDocumentationFormatter
    from net_amermaid.settings import AmermaidSettings

app = typer.Typer(
    name="amermaid",
    help="net-amermaid: generate an interactive HTML class diagrammer for a .NET assembly.",
    no_args_is_help=True,
)


def configure_logging(verbose: bool) -> None:
    """Replace loguru's default sink with a stderr sink at INFO, or DEBUG when *verbose*."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO", format="<level>{level: <8}</level> {message}")


@app.command()
def generate(
    assembly: str = typer.Option(..., "--assembly", "-a", help="Path or file:// URI of the .NET assembly to diagram."),
    output_folder: str | None = typer.Option(
        None, "--output-folder", "-o", help="Output folder (default: netAmermaid next to the assembly)."
    ),
    include: str | None = typer.Option(
        None, "--include", "-i", help="Regex a type's full name must match to be included."
    ),
    exclude: str | None = typer.Option(None, "--exclude", "-e", help="Regex excluding types whose full name matches."),
    docs: str | None = typer.Option(
        None, "--docs", "-d", help="XML documentation file (default: the assembly path with an .xml extension)."
    ),
    strip_namespaces: list[str] | None = typer.Option(
        None,
        "--strip-namespaces",
        "-n",
        help="Namespaces to strip from doc comments (repeatable, space-separated values allowed). Put longer ones first.",
    ),
    report_excluded: bool = typer.Option(
        False, "--report-excluded", "-r", help="Also write a text file listing the excluded types."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output."),
) -> None:
    """Generate the HTML diagrammer for an assembly."""
    configure_logging(verbose)
    _run_generate(
        assembly,
        output_folder=output_folder,
        include=include,
        exclude=exclude,
        docs=docs,
        strip_namespaces=strip_namespaces,
        report_excluded=report_excluded,
    )


@app.command()
def version() -> None:
    """Print the net-amermaid version."""
    from net_amermaid import __version__

    typer.echo(__version__)


# ---------------------------------------------------------------------------
# Generate helpers
# ---------------------------------------------------------------------------


def _split_namespaces(values: list[str] | None) -> list[str] | None:
    if not values:
        return None
    return [ns for value in values for ns in value.split()]


def _build_settings(
    *,
    output_folder: str | None,
    include: str | None,
    exclude: str | None,
    docs: str | None,
    strip_namespaces: list[str] | None,
    report_excluded: bool,
) -> AmermaidSettings:
    """Settings with the given CLI options layered over env vars and ``amermaid.toml``."""
    from net_amermaid.generator import resolve_path
    from net_amermaid.settings import AmermaidSettings

    settings = AmermaidSettings()
    if include is not None:
        settings.filter.include = include
    if exclude is not None:
        settings.filter.exclude = exclude
    if docs is not None:
        settings.docs.path = resolve_path(docs)
    namespaces = _split_namespaces(strip_namespaces)
    if namespaces is not None:
        settings.docs.strip_namespaces = namespaces
    if output_folder is not None:
        settings.output.folder = resolve_path(output_folder)
    if report_excluded:
        settings.output.report_excluded = True
    return settings


def _create_docs_formatter(assembly_path: Path, settings: AmermaidSettings) -> XmlDocumentationFormatter | None:
    """XML doc formatter for the assembly, or ``None`` when there is no doc file."""
    from net_amermaid.docs import XmlDocumentationFile, XmlDocumentationFormatter
    from net_amermaid.generator import default_docs_path

    docs_path = settings.docs.path or default_docs_path(assembly_path)
    if not docs_path.is_file():
        logger.warning("No XML documentation file found at {}. Continuing without.", docs_path)
        return None
    return XmlDocumentationFormatter(XmlDocumentationFile(docs_path), settings.docs.strip_namespaces)


def _run_generate(assembly: str, **options: Any) -> None:
    """Implementation of the ``amermaid generate`` command."""
    from xml.etree.ElementTree import ParseError

    from net_amermaid.factory import ClassDiagrammerFactory, InvalidFilterError, compile_filter
    from net_amermaid.generator import generate_output, resolve_path
    from net_amermaid.loader import AssemblyLoadError, load_assembly
    from net_amermaid.names import InconsistentTypeError

    try:
        settings = _build_settings(**options)
        assembly_path = resolve_path(assembly)
    except ValueError as exc:
        logger.error("Invalid path: {}", exc)
        raise typer.Exit(code=1) from exc

    # fail on bad patterns before reading any metadata
    try:
        compile_filter("include", settings.filter.include)
        compile_filter("exclude", settings.filter.exclude)
    except InvalidFilterError as exc:
        logger.error("{}", exc)
        raise typer.Exit(code=1) from exc

    try:
        snapshot = load_assembly(assembly_path)
    except AssemblyLoadError as exc:
        logger.error("{}", exc)
        raise typer.Exit(code=1) from exc

    try:
        docs = _create_docs_formatter(assembly_path, settings)
    except ParseError as exc:
        logger.error("Cannot read XML documentation: {}", exc)
        raise typer.Exit(code=1) from exc

    factory = ClassDiagrammerFactory(snapshot, docs)
    try:
        diagram = factory.build_model(settings.filter.include, settings.filter.exclude)
    except InconsistentTypeError as exc:
        logger.error("Aborting: {}", exc)
        raise typer.Exit(code=1) from exc

    try:
        generate_output(assembly_path, diagram, settings.output, snapshot.version)
    except OSError as exc:
        logger.error("Cannot write output: {}", exc)
        raise typer.Exit(code=1) from exc
