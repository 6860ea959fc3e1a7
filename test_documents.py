"""
Tests for the I/O edges: document read/write with backups, manifest
parsing, template stamping and environment configuration.
"""

from datetime import datetime

import pytest

from form_tables.config import RepairTrigger, Settings, parse_substitutions
from form_tables.documents import (
    backup_path,
    detect_charset,
    document_path,
    read_document,
    write_document,
)
from form_tables.exceptions import ConfigError, DocumentIOError, ManifestError
from form_tables.generator import generate, stamp
from form_tables.manifest import load_manifest, parse_manifest
from form_tables.schemas import Language

NOW = datetime(2024, 3, 5, 14, 7, 9)

LATIN_PAGE = (
    '<html><head><meta http-equiv="Content-Type" content="text/html; charset=iso-8859-1">'
    '</head><body><p>Année d\'imposition</p></body></html>'
).encode("windows-1252")


class TestCharset:
    def test_meta_charset(self):
        assert detect_charset(b'<meta charset="UTF-8">') == "utf-8"

    def test_http_equiv_with_whatwg_mapping(self):
        assert detect_charset(LATIN_PAGE) == "windows-1252"

    def test_default(self):
        assert detect_charset(b"<html><body>plain</body></html>") == "utf-8"


class TestReadWrite:
    def test_paths(self, tmp_path):
        assert document_path(tmp_path, "t2-s2", Language.EN).name == "t2-s2-table-e.htm"
        assert document_path(tmp_path, "t2-s2", Language.FR).name == "t2-s2-table-f.htm"

    def test_round_trip_preserves_bytes(self, tmp_path):
        path = tmp_path / "t2-table-f.htm"
        path.write_bytes(LATIN_PAGE)

        document = read_document(path)
        assert document.charset == "windows-1252"
        assert "Année" in document.text

        saved = write_document(document, document.text.replace("Année", "Exercice"), now=NOW)
        assert path.read_bytes() == LATIN_PAGE.replace("Année".encode("windows-1252"), b"Exercice")
        assert saved.name == "t2-table-f.htm.bak-20240305-140709"
        assert saved.read_bytes() == LATIN_PAGE

    def test_backup_names_do_not_collide(self, tmp_path):
        path = tmp_path / "t2-table-e.htm"
        path.write_text("<html></html>")
        first = write_document(read_document(path), "<html>1</html>", now=NOW)
        second = write_document(read_document(path), "<html>2</html>", now=NOW)
        assert first != second
        assert second.name.endswith("-1")
        assert sorted(p.name for p in tmp_path.iterdir()) == [
            "t2-table-e.htm",
            "t2-table-e.htm.bak-20240305-140709",
            "t2-table-e.htm.bak-20240305-140709-1",
        ]

    def test_backup_name_sorts_by_time(self, tmp_path):
        path = tmp_path / "x.htm"
        early = backup_path(path, datetime(2023, 12, 31, 23, 59, 59))
        late = backup_path(path, datetime(2024, 1, 1, 0, 0, 0))
        assert early.name < late.name

    def test_no_backup(self, tmp_path):
        path = tmp_path / "t2-table-e.htm"
        path.write_text("<html></html>")
        assert write_document(read_document(path), "<html>1</html>", backup=False) is None
        assert len(list(tmp_path.iterdir())) == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(DocumentIOError) as exc:
            read_document(tmp_path / "nope-table-e.htm")
        assert exc.value.path.endswith("nope-table-e.htm")

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "bad-table-e.htm"
        path.write_bytes(b'<meta charset="utf-8"><p>\xe9t\xe9</p>')
        with pytest.raises(DocumentIOError):
            read_document(path)

    def test_unencodable_text(self, tmp_path):
        path = tmp_path / "t2-table-f.htm"
        path.write_bytes(LATIN_PAGE)
        with pytest.raises(DocumentIOError):
            write_document(read_document(path), "snowman ☃")
        assert path.read_bytes() == LATIN_PAGE


class TestManifest:
    def test_parse(self):
        text = "# forms\n\nt2-s1\n  t2-s2  \nbad slug!\nt2_s3\nt2-s1\n5000-S2\n"
        assert parse_manifest(text) == ["t2-s1", "t2-s2", "5000-S2"]

    def test_load(self, tmp_path):
        path = tmp_path / "forms.txt"
        path.write_text("\ufefft2-s1\n# done\n", encoding="utf-8")
        assert load_manifest(path) == ["t2-s1"]

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(ManifestError):
            load_manifest(tmp_path / "missing.txt")


class TestGenerator:
    def test_stamp(self):
        assert stamp("{{FORM}}-table / {{FORM}}", "t2-s2") == "t2-s2-table / t2-s2"

    def test_generate(self, tmp_path):
        template = tmp_path / "template-e.htm"
        template.write_text('<meta charset="utf-8"><a href="/pdf/{{FORM}}-23e.pdf">PDF</a>', encoding="utf-8")
        out = tmp_path / "results"

        written = generate(template, ["t2-s1", "t2-s2"], out, Language.EN)

        assert [p.name for p in written] == ["t2-s1-table-e.htm", "t2-s2-table-e.htm"]
        assert "/pdf/t2-s2-23e.pdf" in written[1].read_text(encoding="utf-8")

    def test_generate_missing_template(self, tmp_path):
        with pytest.raises(DocumentIOError):
            generate(tmp_path / "none.htm", ["t2"], tmp_path, Language.FR)


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.repair_trigger is RepairTrigger.NOT_FOUND
        assert settings.substitutions == {"5000-": "5100-"}
        assert settings.max_workers == 1

    def test_from_env(self):
        settings = Settings.from_env({
            "FORM_TABLES_TIMEOUT": "30",
            "FORM_TABLES_REPAIR_TRIGGER": "any_dead",
            "FORM_TABLES_SUBSTITUTIONS": "5000-=5100-, 5010-=5110-",
            "FORM_TABLES_STRICT_YEAR": "false",
            "FORM_TABLES_BASE_URL": "",
        })
        assert settings.timeout == 30.0
        assert settings.repair_trigger is RepairTrigger.ANY_DEAD
        assert settings.substitutions == {"5000-": "5100-", "5010-": "5110-"}
        assert settings.strict_year is False

    def test_invalid_env_value(self):
        with pytest.raises(ConfigError):
            Settings.from_env({"FORM_TABLES_REPAIR_TRIGGER": "sometimes"})

    def test_overrides_ignore_none(self):
        settings = Settings().with_overrides(timeout=None, max_workers=3)
        assert settings.timeout == 15.0
        assert settings.max_workers == 3

    def test_bad_substitution(self):
        with pytest.raises(ConfigError):
            parse_substitutions("5000-")
