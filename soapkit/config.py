import os
from pydantic import BaseModel, Field
from typing import Dict

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Built-in location of the bundled reference catalog and sample tables
PACKAGE_ASSETS = os.path.join(os.path.dirname(os.path.abspath(__file__)), "assets")

# Key names accepted as the expansion trigger
TRIGGER_KEYS = ("space",)


class SoapkitSettings(BaseModel):
    # Core paths
    assets_path: str = Field(default=os.getenv("SOAPKIT_ASSETS_PATH", PACKAGE_ASSETS))
    # Empty catalog_path means "use the catalog bundled with the package"
    catalog_path: str = Field(default=os.getenv("SOAPKIT_CATALOG", ""))

    # Abbreviation stores, derived from assets_path unless overridden
    abbrev_db_path: str = Field(default=os.getenv("SOAPKIT_ABBREV_DB", ""))
    abbrev_csv_path: str = Field(default=os.getenv("SOAPKIT_ABBREV_CSV", ""))
    abbrev_json_path: str = Field(default=os.getenv("SOAPKIT_ABBREV_JSON", ""))

    # Expansion behaviour
    marker: str = Field(default=os.getenv("SOAPKIT_MARKER", ":"), min_length=1, max_length=1)
    trigger_key: str = Field(default=os.getenv("SOAPKIT_TRIGGER_KEY", "space"))

    log_level: str = Field(default=os.getenv("SOAPKIT_LOG_LEVEL", "WARNING"))

    # HTTP server
    host: str = Field(default=os.getenv("SOAPKIT_HOST", "127.0.0.1"))
    port: int = Field(default=int(os.getenv("SOAPKIT_PORT", 8000)))

    def model_post_init(self, __context: Dict) -> None:  # type: ignore[override]
        # Derive abbreviation store paths from assets_path when not set explicitly
        if not self.abbrev_db_path:
            self.abbrev_db_path = os.path.join(self.assets_path, "abbreviations.db")
        if not self.abbrev_csv_path:
            self.abbrev_csv_path = os.path.join(self.assets_path, "abbreviations.csv")
        if not self.abbrev_json_path:
            self.abbrev_json_path = os.path.join(self.assets_path, "abbreviations.json")
        if self.trigger_key not in TRIGGER_KEYS:
            raise ValueError(f"Unsupported trigger key '{self.trigger_key}'. Supported: {', '.join(TRIGGER_KEYS)}")