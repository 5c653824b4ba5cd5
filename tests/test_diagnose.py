import sys

import pytest

from diagnose import analyze_package, collect_content_types, collect_languages, collect_relationships, main
from package_store import PartStore


class TestCollectors:

    def test_languages(self, store):
        languages = collect_languages(store)
        assert languages["word/document.xml"] == ["en-US", "fr-FR"]
        assert languages["word/footer2.xml"] == ["nl-NL"]

    def test_malformed_part_flagged(self, store):
        store.replace("word/header1.xml", b"<w:hdr")
        assert collect_languages(store)["word/header1.xml"] == ["(malformed)"]

    def test_relationships(self, store):
        rels = collect_relationships(store)
        assert ("rId3", "media/image1.png", "Internal") in rels["word/_rels/document.xml.rels"]
        assert ("rId8", "http://example.com/image1.png", "External") in rels["word/_rels/document.xml.rels"]

    def test_content_types(self, store):
        defaults, overrides = collect_content_types(store)
        assert defaults["png"] == "image/png"
        assert "/word/document.xml" in overrides


class TestAnalyzePackage:

    def test_report(self, docx_file, capsys):
        dangling = analyze_package(docx_file, show_rels=True)
        out = capsys.readouterr().out
        assert dangling == []
        assert "word/media/image1.png" in out
        assert "No dangling references." in out

    def test_reports_dangling(self, docx_file, capsys):
        with PartStore.open(docx_file) as store:
            store.delete("word/media/image1.png")
        dangling = analyze_package(docx_file)
        assert len(dangling) == 2
        assert "dangling reference(s)" in capsys.readouterr().out

    def test_main_exit_code(self, docx_file, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["diagnose", str(docx_file), "--no-parts"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 0
