"""Unit tests for XML documentation loading and formatting."""

from __future__ import annotations

from dataclasses import dataclass
from xml.etree.ElementTree import ParseError

import pytest
from builders import COLOR, CUSTOMER, ENTITY, STORE, STRING, field, method, prop

from net_amermaid.docs import DocumentationProvider, XmlDocumentationFile, XmlDocumentationFormatter


@dataclass(frozen=True)
class _Entity:
    documentation_id: str
    name: str = ""


class _StaticDocs:
    """In-memory provider keyed by documentation id."""

    def __init__(self, comments: dict[str, str]) -> None:
        self._comments = comments

    def get_documentation(self, entity) -> str | None:
        return self._comments.get(entity.documentation_id)


class TestXmlDocumentationFile:
    def test_reads_all_members(self, docs_file):
        provider = XmlDocumentationFile(docs_file)
        assert len(provider) == 7
        assert isinstance(provider, DocumentationProvider)

    def test_keeps_inner_markup(self, docs_file):
        provider = XmlDocumentationFile(docs_file)
        raw = provider.get_documentation(_Entity("M:MyApp.Models.Customer.Rename(System.String)"))
        assert '<paramref name="newName" />' in raw
        assert "<summary>" in raw

    def test_unknown_member(self, docs_file):
        assert XmlDocumentationFile(docs_file).get_documentation(_Entity("T:Nope")) is None

    def test_broken_file_raises(self, tmp_path):
        broken = tmp_path / "broken.xml"
        broken.write_text("<doc><members>", encoding="utf-8")
        with pytest.raises(ParseError):
            XmlDocumentationFile(broken)


class TestFormat:
    def test_references_are_reduced_to_names(self, docs):
        customer = _Entity("T:MyApp.Models.Customer")
        assert docs.format(customer) == "A customer placing [Order]s.\n\nOwns an [Address]."

    def test_without_stripped_namespaces(self, docs_file):
        formatter = XmlDocumentationFormatter(XmlDocumentationFile(docs_file))
        assert formatter.format(_Entity("T:MyApp.Models.Customer")) == (
            "A customer placing [MyApp.Models.Order]s.\n\nOwns an [MyApp.Models.Address]."
        )

    def test_parameter_reference(self, docs):
        rename = method(CUSTOMER, "Rename", params=(("newName", STRING),))
        assert docs.format(rename) == "Renames to [newName]."

    def test_horizontal_whitespace_collapses(self, docs):
        red = field(COLOR, "Red", COLOR, is_const=True, is_static=True)
        assert docs.format(red) == "Like a rose."

    def test_undocumented_entity(self, docs):
        assert docs.format(_Entity("T:MyApp.Models.Address")) is None

    def test_href_reference(self):
        provider = _StaticDocs({"T:X": '<summary>See <see href="https://example.org" />.</summary>'})
        assert XmlDocumentationFormatter(provider).format(_Entity("T:X")) == "See [https://example.org]."

    def test_namespaces_are_stripped_in_order(self):
        provider = _StaticDocs({"T:X": '<summary><see cref="T:System.Collections.IEnumerable" /></summary>'})
        entity = _Entity("T:X")
        short_first = XmlDocumentationFormatter(provider, ["System", "System.Collections"])
        long_first = XmlDocumentationFormatter(provider, ["System.Collections", "System"])
        assert short_first.format(entity) == "[Collections.IEnumerable]"
        assert long_first.format(entity) == "[IEnumerable]"

    def test_namespace_dots_are_literal(self):
        provider = _StaticDocs({"T:X": "<summary>MyAppXModels.Thing and MyApp.Models.Thing</summary>"})
        formatter = XmlDocumentationFormatter(provider, ["MyApp.Models"])
        assert formatter.format(_Entity("T:X")) == "MyAppXModels.Thing and Thing"


class TestGetXmlDocs:
    def test_type_and_member_docs(self, snapshot, docs):
        definition = snapshot.resolve(CUSTOMER)
        properties = snapshot.get_properties(definition)
        methods = snapshot.get_methods(definition)
        assert docs.get_xml_docs(definition, properties, methods) == {
            "": "A customer placing [Order]s.\n\nOwns an [Address].",
            "Id": "Primary key.",
            "Name": "The display name.",
            "Rename": "Renames to [newName].",
        }

    def test_generic_method_doc_id(self, snapshot, docs):
        definition = snapshot.resolve(STORE)
        assert docs.get_xml_docs(definition, definition.methods) == {"Add": "Adds [item].", "Find": "Finds by [key]."}

    def test_inherited_member_keeps_declaring_type_doc(self, docs):
        assert docs.get_xml_docs(_Entity("T:Other"), [prop(ENTITY, "Id", STRING)]) == {"Id": "Primary key."}

    def test_nothing_documented(self, snapshot, docs):
        assert docs.get_xml_docs(snapshot.resolve(ENTITY)) is None
