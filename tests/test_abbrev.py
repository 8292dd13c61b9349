import json
import sqlite3

import pytest

from soapkit.abbrev import AbbreviationTable, load_csv, load_json, load_sqlite, load_table
from soapkit.config import SoapkitSettings


def make_db(path, rows):
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE abbreviations (short TEXT, full TEXT)")
    conn.executemany("INSERT INTO abbreviations VALUES (?, ?)", rows)
    conn.commit()
    conn.close()


def test_table_is_read_only():
    table = AbbreviationTable({"cd": "current date"})
    assert table["cd"] == "current date"
    assert len(table) == 1
    with pytest.raises(TypeError):
        table["x"] = "y"  # type: ignore[index]


def test_table_copies_its_source():
    src = {"a": "alpha"}
    table = AbbreviationTable(src)
    src["b"] = "beta"
    assert "b" not in table


def test_merged_layers_extra_entries():
    base = AbbreviationTable({"a": "alpha", "b": "beta"})
    merged = base.merged({"b": "BETA", "c": "gamma"})
    assert dict(merged) == {"a": "alpha", "b": "BETA", "c": "gamma"}
    assert dict(base) == {"a": "alpha", "b": "beta"}
    assert base.merged(None) is base


def test_load_sqlite(tmp_path):
    db = tmp_path / "abbreviations.db"
    make_db(db, [("htn", "hypertension"), ("dm", "diabetes mellitus")])
    assert dict(load_sqlite(str(db))) == {"htn": "hypertension", "dm": "diabetes mellitus"}


def test_load_sqlite_missing_file_or_table(tmp_path, caplog):
    assert len(load_sqlite(str(tmp_path / "missing.db"))) == 0
    db = tmp_path / "empty.db"
    sqlite3.connect(db).close()
    assert len(load_sqlite(str(db))) == 0
    assert any("Failed to read abbreviation database" in r.getMessage() for r in caplog.records)


def test_load_csv_skips_header_and_short_rows(tmp_path):
    path = tmp_path / "abbreviations.csv"
    path.write_text("short,full\nsob,shortness of breath\nbad\n cp , chest pain \n", encoding="utf-8")
    assert dict(load_csv(str(path))) == {"sob": "shortness of breath", "cp": "chest pain"}


def test_load_csv_with_invalid_utf8_is_empty(tmp_path, caplog):
    path = tmp_path / "abbreviations.csv"
    path.write_bytes(b"htn,hyper\xe9tension\n")
    assert len(load_csv(str(path))) == 0
    assert any("Failed to read abbreviation CSV" in r.getMessage() for r in caplog.records)
    assert len(load_table(SoapkitSettings(assets_path=str(tmp_path)))) == 0


def test_load_json_accepts_lists_and_strings(tmp_path):
    path = tmp_path / "abbreviations.json"
    path.write_text(json.dumps({"prn": "as needed", "po": ["by mouth", "per os"], "bad": 3}), encoding="utf-8")
    assert dict(load_json(str(path))) == {"prn": "as needed", "po": "by mouth"}


def test_load_json_rejects_non_objects(tmp_path):
    path = tmp_path / "abbreviations.json"
    path.write_text("[1, 2]", encoding="utf-8")
    assert len(load_json(str(path))) == 0
    path.write_text("{not json", encoding="utf-8")
    assert len(load_json(str(path))) == 0


def test_load_table_prefers_database_over_csv(tmp_path):
    make_db(tmp_path / "abbreviations.db", [("htn", "from db")])
    (tmp_path / "abbreviations.csv").write_text("htn,from csv\n", encoding="utf-8")
    table = load_table(SoapkitSettings(assets_path=str(tmp_path)))
    assert table["htn"] == "from db"


def test_load_table_falls_back_to_csv_then_json(tmp_path):
    (tmp_path / "abbreviations.json").write_text(json.dumps({"htn": "from json"}), encoding="utf-8")
    assert load_table(SoapkitSettings(assets_path=str(tmp_path)))["htn"] == "from json"
    (tmp_path / "abbreviations.csv").write_text("htn,from csv\n", encoding="utf-8")
    assert load_table(SoapkitSettings(assets_path=str(tmp_path)))["htn"] == "from csv"


def test_load_table_with_no_store_is_empty(tmp_path):
    assert len(load_table(SoapkitSettings(assets_path=str(tmp_path)))) == 0


def test_bundled_abbreviations_load():
    table = load_table(SoapkitSettings())
    assert table["htn"] == "hypertension"
