"""Configuration management for net-amermaid."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict, TomlConfigSettingsSource

CONFIG_FILE_NAME = "amermaid.toml"
DEFAULT_REPO_URL = "https://github.com/h0lg/netAmermaid"


def _find_amermaid_toml(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for ``amermaid.toml``."""
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


class FilterSettings(BaseSettings):
    """Type selection settings."""

    include: str | None = Field(
        default=None, description="Regular expression a type's reflection name must match to be included."
    )
    exclude: str | None = Field(
        default=None, description="Regular expression excluding types whose reflection name matches."
    )


class DocsSettings(BaseSettings):
    """XML documentation settings."""

    path: Path | None = Field(
        default=None, description="XML documentation file. Defaults to the assembly path with an .xml extension."
    )
    strip_namespaces: list[str] = Field(
        default_factory=list,
        description="Namespaces to remove from doc comments, in order. Put longer namespaces first.",
    )


class OutputSettings(BaseSettings):
    """HTML diagrammer output settings."""

    folder: Path | None = Field(
        default=None, description="Output folder. Defaults to a folder_name folder next to the assembly."
    )
    folder_name: str = Field(default="netAmermaid", description="Name of the default output folder.")
    html_file: str = Field(default="class-diagrammer.html", description="File name of the generated diagrammer.")
    excluded_report: str = Field(default="excluded types.txt", description="File name of the excluded types report.")
    report_excluded: bool = Field(default=False, description="Also write a report of types left out by the filters.")
    repo_url: str = Field(default=DEFAULT_REPO_URL, description="Project URL linked from the diagrammer footer.")


class AmermaidSettings(BaseSettings):
    """Root configuration for net-amermaid."""

    model_config = SettingsConfigDict(
        toml_file=CONFIG_FILE_NAME,
        env_prefix="AMERMAID_",
        env_nested_delimiter="__",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        toml_path = _find_amermaid_toml()
        sources: list[PydanticBaseSettingsSource] = [init_settings, env_settings]
        if toml_path:
            sources.append(TomlConfigSettingsSource(settings_cls, toml_file=toml_path))
        sources.append(file_secret_settings)
        return tuple(sources)

    filter: FilterSettings = Field(default_factory=FilterSettings)
    docs: DocsSettings = Field(default_factory=DocsSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)
