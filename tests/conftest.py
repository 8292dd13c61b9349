# Ensure the repo root is on sys.path so tests can import `soapkit` without requiring editable install
import os
import sys

import pytest

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from soapkit.catalog import CatalogCache  # noqa: E402
from soapkit.sources import BytesSource  # noqa: E402


CATALOG_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<medications>
  <category name="Diabetes">
    <group name="Biguanides">
      <item>  Metformin 500 mg  </item>
      <item>Metformin XR</item>
    </group>
    <group name="Insulin">
      <item>Glargine</item>
      <item>   </item>
    </group>
  </category>
  <category name="Hypertension">
    <group name="ARB">
      <item>Losartan</item>
    </group>
    <group name="ARB">
      <item>Valsartan</item>
    </group>
  </category>
  <category name="Thyroid">
    <group title="Hormone">
      <item>Levothyroxine</item>
    </group>
  </category>
</medications>
"""


class CountingSource(BytesSource):
    """BytesSource that records how many times it was read."""

    def __init__(self, data):
        super().__init__(data)
        self.reads = 0

    def read(self):
        self.reads += 1
        return super().read()


@pytest.fixture
def catalog_source():
    return CountingSource(CATALOG_XML)


@pytest.fixture
def cache(catalog_source):
    return CatalogCache(catalog_source)


@pytest.fixture
def catalog_xml():
    return CATALOG_XML
