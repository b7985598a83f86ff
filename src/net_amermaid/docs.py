"""XML documentation comments.

``XmlDocumentationFile`` reads the ``<assembly>.xml`` file the C# compiler
writes with ``GenerateDocumentationFile``.  ``XmlDocumentationFormatter``
turns raw comment XML into short plain text for tooltips: tags stripped,
references reduced to the referenced name, configured namespaces removed.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from xml.etree import ElementTree

from loguru import logger

from net_amermaid.model import NEW_LINE

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


@runtime_checkable
class Documented(Protocol):
    @property
    def documentation_id(self) -> str: ...


@runtime_checkable
class DocumentationProvider(Protocol):
    """Raw comment XML for an entity, or ``None`` if it has none."""

    def get_documentation(self, entity: Documented) -> str | None: ...


class XmlDocumentationFile:
    """``DocumentationProvider`` backed by a compiler-generated XML doc file."""

    def __init__(self, path: Path) -> None:
        self.path = path
        root = ElementTree.parse(path).getroot()  # noqa: S314 - local build output
        self._members: dict[str, str] = {}
        for member in root.iterfind("members/member"):
            name = member.get("name")
            if name:
                self._members[name] = _inner_xml(member)
        logger.debug("Loaded {} documented members from {}", len(self._members), path)

    def __len__(self) -> int:
        return len(self._members)

    def get_documentation(self, entity: Documented) -> str | None:
        return self._members.get(entity.documentation_id)


def _inner_xml(element: ElementTree.Element) -> str:
    # tostring() includes each child's tail text
    return (element.text or "") + "".join(ElementTree.tostring(child, encoding="unicode") for child in element)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

# XML indentation
LINE_PADDING = r"^[ \t]+|[ \t]+$"

# "see cref", "see href" and "paramref name" attributes, with the symbol prefix (T:, M:, ...)
# of cref values and the closing quote and slash of the tag
REFERENCE_ATTRIBUTES = r'(see\s.ref="(.:)?)|(paramref\sname=")|("\s/)'

_HORIZONTAL_WHITESPACE = re.compile(r"[ \t]+")


class XmlDocumentationFormatter:
    """Prettifies comments from a ``DocumentationProvider``.

    *stripped_namespaces* are removed from the text in the given order, so
    ``System.Collections`` has to come before ``System`` to remove both.
    """

    def __init__(self, provider: DocumentationProvider, stripped_namespaces: Sequence[str] | None = None) -> None:
        self._provider = provider
        patterns = [LINE_PADDING, REFERENCE_ATTRIBUTES]
        patterns.extend(f"({re.escape(ns)}\\.)" for ns in stripped_namespaces or ())
        self._noise = re.compile("|".join(patterns), re.MULTILINE)

    def format(self, entity: Documented) -> str | None:
        comment = self._provider.get_documentation(entity)
        if comment is None:
            return None
        for tag in ("<summary>", "</summary>"):
            comment = comment.replace(tag, "")
        for tag in ("<para>", "</para>"):
            comment = comment.replace(tag, NEW_LINE)
        # square brackets render better than escaped angle brackets
        comment = comment.strip().replace("<", "[").replace(">", "]")
        comment = self._noise.sub("", comment)
        return _HORIZONTAL_WHITESPACE.sub(" ", comment)

    def get_xml_docs(self, definition: Documented, *member_groups: Iterable[Documented]) -> dict[str, str] | None:
        """Docs of *definition* under the ``""`` key and of its members under their names."""
        docs: dict[str, str] = {}
        self._add_entry(docs, "", definition)
        for members in member_groups:
            for member in members:
                self._add_entry(docs, getattr(member, "name", ""), member)
        return docs or None

    def _add_entry(self, docs: dict[str, str], key: str, entity: Documented) -> None:
        doc = self.format(entity)
        if doc:
            docs[key] = doc
