import pytest

from docx_factory import NS, read_names, read_xml
from docxcleaner import build_options, build_parser, main

W = f"{{{NS['w']}}}"


def run_main(argv):
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestBuildOptions:

    def test_flags(self, docx_file):
        args = build_parser().parse_args([str(docx_file), "--lang", "en-GB", "--privacy", "--title", ""])
        options = build_options(args)
        assert options.file == docx_file
        assert options.lang == "en-GB"
        assert options.privacy is True
        assert options.title == ""
        assert options.company is None

    def test_cli_overrides_config(self, docx_file, tmp_path):
        config = tmp_path / "cleaner.yaml"
        config.write_text("lang: de-DE\nprivacy: true\n")
        args = build_parser().parse_args([str(docx_file), "-c", str(config), "--lang", "en-GB"])
        options = build_options(args)
        assert options.lang == "en-GB"
        assert options.privacy is True


class TestMain:

    def test_success(self, docx_file, capsys):
        code = run_main([str(docx_file), "--lang", "en-GB", "--convert-images", "--check"])
        out = capsys.readouterr().out
        assert code == 0
        assert "Processing completed successfully" in out
        assert "no dangling references" in out
        assert "word/media/image1.jpg" in read_names(docx_file.with_suffix(".updated.zip"))

    def test_missing_input(self, tmp_path, capsys):
        code = run_main([str(tmp_path / "missing.docx"), "--privacy"])
        assert code == 1
        assert "not found" in capsys.readouterr().err

    def test_bad_archive(self, tmp_path, capsys):
        bogus = tmp_path / "bogus.docx"
        bogus.write_text("nope")
        code = run_main([str(bogus), "--privacy"])
        assert code == 1
        assert "Error" in capsys.readouterr().err
        assert not (tmp_path / "bogus.updated.zip").exists()

    def test_unparsable_config(self, docx_file, tmp_path, capsys):
        config = tmp_path / "cleaner.yaml"
        config.write_text("lang: [en-GB\n")
        code = run_main([str(docx_file), "-c", str(config)])
        assert code == 1
        assert "Invalid value for 'config'" in capsys.readouterr().err
        assert not docx_file.with_suffix(".updated.zip").exists()

    def test_bad_quality_warns_and_continues(self, docx_file, capsys):
        code = run_main([str(docx_file), "--convert-images", "--compress-quality", "high"])
        out = capsys.readouterr().out
        assert code == 0
        assert "compress_quality" in out

    def test_unsupported_styles_exit_code(self, docx_file, tmp_path, capsys):
        code = run_main([str(docx_file), "--styles", str(tmp_path / "styles.xml"), "--lang", "en-GB", "-q"])
        assert code == 1
        assert "not supported" in capsys.readouterr().err
        document = read_xml(docx_file.with_suffix(".updated.zip"), "word/document.xml")
        assert {n.get(f"{W}val") for n in document.iter(f"{W}lang")} == {"en-GB"}

    def test_verbose_lists_changed_parts(self, docx_file, capsys):
        run_main([str(docx_file), "--privacy", "-v"])
        out = capsys.readouterr().out
        assert "CHANGED PARTS" in out
        assert "word/settings.xml" in out
