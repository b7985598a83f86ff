"""HTML diagrammer generator.

Embeds the serialized model and the viewer script into the bundled
``html/template.html`` and writes the result next to the assembly (or into
the configured output folder) together with the stylesheet.
"""

from __future__ import annotations

from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

from jinja2 import Environment, PackageLoader, select_autoescape
from loguru import logger

from net_amermaid import __version__

if TYPE_CHECKING:
    from net_amermaid.model import ClassDiagram
    from net_amermaid.settings import OutputSettings

HTML_PACKAGE = "net_amermaid.html"
TEMPLATE_FILE = "template.html"
SCRIPT_FILE = "script.js"
RESOURCE_FILES = ("styles.css",)

_ENV = Environment(loader=PackageLoader("net_amermaid", "html"), autoescape=select_autoescape(["html"]))


def resolve_path(path_or_uri: str) -> Path:
    """Path from a plain path or a ``file://`` URI.

    Relative paths are relative to the current directory.
    """
    parsed = urlparse(path_or_uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if parsed.scheme and len(parsed.scheme) > 1:  # a single letter is a Windows drive
        raise ValueError(f"{path_or_uri!r} is neither a path nor a file:// URI")
    return Path(path_or_uri)


def default_docs_path(assembly_path: Path) -> Path:
    return assembly_path.with_suffix(".xml")


def default_output_folder(assembly_path: Path, settings: OutputSettings) -> Path:
    return assembly_path.parent / settings.folder_name


def serialize_model(diagram: ClassDiagram) -> str:
    # "</" would end the <script> element the model is embedded in
    return diagram.to_json(indent=2).replace("</", "<\\/")


def _read_resource(name: str) -> str:
    return resources.files(HTML_PACKAGE).joinpath(name).read_text(encoding="utf-8")


def render_html(assembly_name: str, diagram: ClassDiagram, assembly_version: str, repo_url: str) -> str:
    """Fill the bundled template; model and script go in verbatim, everything else is HTML-escaped."""
    template = _ENV.get_template(TEMPLATE_FILE)
    return template.render(
        assembly=assembly_name,
        assembly_version=assembly_version,
        builder_version=__version__,
        repo_url=repo_url,
        model=serialize_model(diagram),
        script=_read_resource(SCRIPT_FILE),
    )


def generate_output(
    assembly_path: Path,
    diagram: ClassDiagram,
    settings: OutputSettings,
    assembly_version: str,
) -> Path:
    """Write the diagrammer for *diagram* and return the path of the HTML file."""
    html = render_html(assembly_path.stem, diagram, assembly_version, settings.repo_url)

    output_folder = settings.folder or default_output_folder(assembly_path, settings)
    output_folder.mkdir(parents=True, exist_ok=True)
    html_path = output_folder / settings.html_file
    html_path.write_text(html, encoding="utf-8")

    for name in RESOURCE_FILES:
        (output_folder / name).write_text(_read_resource(name), encoding="utf-8")

    logger.info("Generated HTML diagrammer at {}", html_path)

    if settings.report_excluded:
        report = output_folder / settings.excluded_report
        report.write_text("\n".join(diagram.excluded), encoding="utf-8")
        logger.info("Wrote {} excluded types to {}", len(diagram.excluded), report)

    return html_path
