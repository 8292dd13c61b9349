import os
import csv
import json
import sqlite3
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional

from .config import SoapkitSettings
from .logger import logger


class AbbreviationTable(Mapping[str, str]):
    """
    Read-only abbreviation key -> expansion mapping handed to the expansion engine.
    Keys are case-sensitive and carry no marker (":cd" is stored as "cd").
    """

    def __init__(self, entries: Optional[Mapping[str, str]] = None):
        self._entries = MappingProxyType(dict(entries or {}))

    def __getitem__(self, key: str) -> str:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"AbbreviationTable({len(self._entries)} entries)"

    def merged(self, extra: Optional[Mapping[str, str]]) -> "AbbreviationTable":
        """New table with extra entries layered over this one."""
        if not extra:
            return self
        return AbbreviationTable({**self._entries, **extra})


def load_sqlite(path: str) -> AbbreviationTable:
    """Reads the `abbreviations(short, full)` table. Missing file or bad schema -> empty."""
    if not os.path.exists(path):
        return AbbreviationTable()
    try:
        conn = sqlite3.connect(path)
        try:
            rows = conn.execute("SELECT short, full FROM abbreviations").fetchall()
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.error(f"Failed to read abbreviation database {path}: {e}")
        return AbbreviationTable()
    return AbbreviationTable({str(k): str(v) for k, v in rows if k is not None and v is not None})


def load_csv(path: str) -> AbbreviationTable:
    """Two-column short,full rows; an optional `short,full` header row is skipped."""
    if not os.path.exists(path):
        return AbbreviationTable()
    entries: Dict[str, str] = {}
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            for row in csv.reader(f):
                if len(row) < 2:
                    continue
                k, v = row[0].strip(), row[1].strip()
                if not k or (k.lower(), v.lower()) == ("short", "full"):
                    continue
                entries[k] = v
    except (OSError, ValueError, csv.Error) as e:
        logger.error(f"Failed to read abbreviation CSV {path}: {e}")
        return AbbreviationTable()
    return AbbreviationTable(entries)


def load_json(path: str) -> AbbreviationTable:
    """Flat {short: full} object; list values use their first element."""
    if not os.path.exists(path):
        return AbbreviationTable()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read abbreviation JSON {path}: {e}")
        return AbbreviationTable()
    if not isinstance(data, dict):
        logger.warning(f"Ignoring abbreviation JSON {path}: top level is not an object")
        return AbbreviationTable()
    entries: Dict[str, str] = {}
    for k, v in data.items():
        if isinstance(v, list) and v:
            entries[k] = str(v[0])
        elif isinstance(v, str):
            entries[k] = v
    return AbbreviationTable(entries)


def load_table(settings: SoapkitSettings) -> AbbreviationTable:
    """Database first, then CSV, then JSON; the first non-empty store wins."""
    for loader, path in (
        (load_sqlite, settings.abbrev_db_path),
        (load_csv, settings.abbrev_csv_path),
        (load_json, settings.abbrev_json_path),
    ):
        table = loader(path)
        if table:
            logger.info(f"Loaded {len(table)} abbreviations from {path}")
            return table
    logger.warning("No abbreviation store found; the abbreviation table is empty")
    return AbbreviationTable()
