import pytest
from lxml import etree

from docx_factory import NS, xml_of
from errors import MalformedPartError
from package_store import Part
from xml_editor import NAMESPACES, XmlPartEditor, namespaces_for


class TestXmlPartEditor:

    @pytest.fixture
    def editor(self, store):
        return XmlPartEditor(store)

    def test_unchanged_part_is_not_rewritten(self, store, editor):
        before = store.get("word/settings.xml").data
        changed = editor.edit("word/settings.xml", namespaces_for("w"), lambda fragment: False)
        assert changed is False
        assert store.get("word/settings.xml").data == before
        assert not store.dirty

    def test_changed_part_is_rewritten(self, store, editor):
        def set_zoom(fragment):
            fragment.select_one("//w:zoom").set(fragment.qname("w:percent"), "150")
            return True

        assert editor.edit("word/settings.xml", namespaces_for("w"), set_zoom) is True
        zoom = xml_of(store, "word/settings.xml").find(f"{{{NS['w']}}}zoom")
        assert zoom.get(f"{{{NS['w']}}}percent") == "150"

    def test_missing_part_is_skipped(self, editor):
        assert editor.edit("word/absent.xml", namespaces_for("w"), lambda fragment: True) is False

    def test_malformed_part(self, store, editor):
        store.replace("word/settings.xml", b"<w:settings><unclosed>")
        with pytest.raises(MalformedPartError) as exc_info:
            editor.edit("word/settings.xml", namespaces_for("w"), lambda fragment: True)
        assert exc_info.value.part_name == "word/settings.xml"

    def test_queries_use_table_not_document_prefix(self, store, editor):
        # Same namespace, different prefix in the document
        store.replace(
            "word/settings.xml",
            f'<x:settings xmlns:x="{NAMESPACES["w"]}"><x:zoom x:percent="100"/></x:settings>'.encode(),
        )
        found = []
        editor.edit("word/settings.xml", namespaces_for("w"), lambda f: found.extend(f.select("//w:zoom")) or False)
        assert len(found) == 1

    def test_serialization_keeps_declaration_and_standalone(self, store, editor):
        editor.edit("word/settings.xml", namespaces_for("w"), lambda fragment: True)
        data = store.get("word/settings.xml").data
        assert data.startswith(b"<?xml version='1.0' encoding='UTF-8' standalone='yes'?>")

    def test_no_added_indentation(self, store, editor):
        editor.edit("word/settings.xml", namespaces_for("w"), lambda fragment: True)
        assert b'<w:zoom w:percent="100"/><w:defaultTabStop w:val="720"/>' in store.get("word/settings.xml").data

    def test_append_reuses_existing_prefix(self, store, editor):
        def add(fragment):
            fragment.append(fragment.root, "w:removePersonalInformation")
            return True

        editor.edit("word/settings.xml", namespaces_for("w"), add)
        assert b"<w:removePersonalInformation/>" in store.get("word/settings.xml").data

    def test_remove_keeps_tail_text(self, editor):
        part = Part("t.xml", b"<root><a/>tail<b/></root>")
        fragment = editor.parse(part, {})
        fragment.remove(fragment.root[0])
        assert etree.tostring(fragment.root) == b"<root>tail<b/></root>"

    def test_edit_accepts_part_object(self, store, editor):
        part = store.get("word/settings.xml")
        assert editor.edit(part, namespaces_for("w"), lambda fragment: True) is True
