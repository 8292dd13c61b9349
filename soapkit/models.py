"""
Data model shared by the catalog cache, the expansion engine and the host surfaces.

Catalog nodes (Item, Group) are plain mutable objects: items are matched by identity,
so they must not pick up value equality. Value types and API payloads are pydantic models.
"""

from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict

# =============================================================================
# CATALOG NODES
# =============================================================================

class Item:
    """Leaf entry of the catalog (e.g. a medication name). Compared by identity."""

    __slots__ = ("text",)

    def __init__(self, text: str):
        self.text = text

    def __repr__(self) -> str:
        return f"Item({self.text!r})"

    def __str__(self) -> str:
        return self.text


class Group:
    """Named subdivision of a category holding an ordered list of items."""

    __slots__ = ("title", "items")

    def __init__(self, title: str, items: Optional[List[Item]] = None):
        self.title = title
        self.items: List[Item] = items if items is not None else []

    def __repr__(self) -> str:
        return f"Group({self.title!r}, {len(self.items)} items)"

    def index_of(self, item: Item) -> int:
        """Position of this exact item instance, or -1."""
        for i, candidate in enumerate(self.items):
            if candidate is item:
                return i
        return -1


class CacheState(str, Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"


class MutationOutcome(str, Enum):
    """Result of a targeted catalog mutation. Only APPLIED changes the catalog."""
    APPLIED = "applied"
    NOT_FOUND = "not_found"
    NOT_LOADED = "not_loaded"

# =============================================================================
# EXPANSION
# =============================================================================

class Replacement(BaseModel):
    """Instruction to replace buffer[start:end] with text."""
    model_config = ConfigDict(frozen=True)

    start: int = Field(..., ge=0, description="Absolute offset where the abbreviation token begins")
    end: int = Field(..., ge=0, description="Cursor offset; end of the replaced span")
    text: str = Field(..., description="Expansion followed by a single trailing space")
    key: str = Field(..., description="Abbreviation key without the marker")

# =============================================================================
# API REQUEST / RESPONSE MODELS
# =============================================================================

class GroupPayload(BaseModel):
    title: str
    items: List[str] = Field(default_factory=list)


class AddItemRequest(BaseModel):
    category: str = Field(..., description="Category name as loaded")
    group: str = Field(..., description="Group title within the category")
    text: str = Field(..., description="Item text to append")


class RemoveItemRequest(BaseModel):
    category: str = Field(..., description="Category holding the item")
    group: str = Field(..., description="Group holding the item")
    index: int = Field(..., ge=0, description="Position of the item within the group")


class MutationResponse(BaseModel):
    outcome: MutationOutcome
    pending_changes: bool


class ExpandRequest(BaseModel):
    text: str = Field(..., description="Buffer text")
    cursor: Optional[int] = Field(None, ge=0, description="Caret offset; defaults to end of text")
    table: Optional[Dict[str, str]] = Field(None, description="Per-request abbreviations merged over the loaded table")


class ExpandResponse(BaseModel):
    matched: bool
    replacement: Optional[Replacement] = None
    text: str = Field(..., description="Buffer after applying the replacement (unchanged on no match)")
    cursor: int


class ExpandTextRequest(BaseModel):
    text: str
    table: Optional[Dict[str, str]] = None


class PmhRequest(BaseModel):
    checked: List[str] = Field(default_factory=list, description="Checked condition names")
    notes: Dict[str, str] = Field(default_factory=dict, description="Free-text note per condition")
    conditions: Optional[List[str]] = Field(None, description="Condition order; defaults to the standard PMH list")
    save: bool = Field(False, description="Apply save-time wording (dated allergy denial)")


class FmhRequest(BaseModel):
    relationship: Optional[str] = None
    notes: Optional[str] = None
    selections: Dict[str, List[str]] = Field(default_factory=dict, description="Column title -> selected conditions")


class ReportResponse(BaseModel):
    text: str
