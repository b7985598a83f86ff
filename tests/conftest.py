"""Shared test fixtures for net-amermaid."""

from __future__ import annotations

import pytest
from builders import SAMPLE_DOCS_XML, sample_snapshot

from net_amermaid.docs import XmlDocumentationFile, XmlDocumentationFormatter
from net_amermaid.factory import ClassDiagrammerFactory
from net_amermaid.settings import AmermaidSettings


@pytest.fixture
def snapshot():
    """The sample assembly's metadata snapshot."""
    return sample_snapshot()


@pytest.fixture
def docs_file(tmp_path):
    """The sample assembly's XML documentation file, written next to a fake assembly."""
    path = tmp_path / "MyApp.xml"
    path.write_text(SAMPLE_DOCS_XML, encoding="utf-8")
    return path


@pytest.fixture
def docs(docs_file):
    return XmlDocumentationFormatter(XmlDocumentationFile(docs_file), ["MyApp.Models"])


@pytest.fixture
def factory(snapshot):
    return ClassDiagrammerFactory(snapshot)


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings isolated from any ``amermaid.toml`` or environment of the developer."""
    monkeypatch.chdir(tmp_path)
    for name in ("AMERMAID_FILTER__INCLUDE", "AMERMAID_FILTER__EXCLUDE", "AMERMAID_OUTPUT__FOLDER"):
        monkeypatch.delenv(name, raising=False)
    return AmermaidSettings()
