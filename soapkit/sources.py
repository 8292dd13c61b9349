"""Reference-data sources for the catalog cache.

A source is anything with ``read() -> Optional[bytes]``; ``None`` means the
data is unavailable. Read errors propagate so the cache can log and absorb them.
"""

from __future__ import annotations

import os
from typing import Optional, Protocol

from .config import PACKAGE_ASSETS

CATALOG_FILENAME = "med_data.xml"


class ReferenceDataSource(Protocol):
    def read(self) -> Optional[bytes]:
        ...


class FileSource:
    def __init__(self, path: str):
        self.path = path

    def read(self) -> Optional[bytes]:
        if not os.path.exists(self.path):
            return None
        with open(self.path, "rb") as f:
            return f.read()

    def __repr__(self) -> str:
        return f"FileSource({self.path!r})"


class BytesSource:
    """In-memory source; handy for embedding hosts and tests."""

    def __init__(self, data: Optional[bytes]):
        self.data = data

    def read(self) -> Optional[bytes]:
        return self.data

    def __repr__(self) -> str:
        size = None if self.data is None else len(self.data)
        return f"BytesSource(size={size})"


class PackageSource(FileSource):
    """Catalog bundled with soapkit under soapkit/assets."""

    def __init__(self, filename: str = CATALOG_FILENAME):
        super().__init__(os.path.join(PACKAGE_ASSETS, filename))


def source_from_settings(catalog_path: str) -> ReferenceDataSource:
    return FileSource(catalog_path) if catalog_path else PackageSource()
