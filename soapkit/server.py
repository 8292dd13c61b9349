from fastapi import FastAPI, HTTPException, Depends, Header
from typing import Any, Dict, List
import os
import threading
from datetime import datetime

from dotenv import load_dotenv

from . import __version__
from .abbrev import AbbreviationTable, load_table
from .buffers import DeferredQueue, TextBuffer, handle_key
from .catalog import CatalogCache
from .config import SoapkitSettings
from .expansion import ExpansionEngine
from .logger import logger
from .models import (
    AddItemRequest, ExpandRequest, ExpandResponse, ExpandTextRequest, FmhRequest,
    GroupPayload, Item, MutationOutcome, MutationResponse, PmhRequest, RemoveItemRequest,
    ReportResponse,
)
from .reports import PMH_CONDITIONS, build_fmh_entry, build_pmh_summary, load_condition_lists
from .sources import source_from_settings

# Load environment variables from .env file
load_dotenv()

app = FastAPI(title="soapkit API", version=__version__)
settings = SoapkitSettings()
_init_lock = threading.Lock()
# Lazy initialization; one catalog cache and one table per process
_cache = None
_table = None


def verify_api_key(authorization: str = Header(None)):
    """Static bearer-token authentication.
    - Set SOAPKIT_API_KEY to require 'Authorization: Bearer <SOAPKIT_API_KEY>'.
    - For local use without auth, set SOAPKIT_ALLOW_ANON=1.
    """
    api_key = os.getenv("SOAPKIT_API_KEY")
    if not api_key:
        if os.getenv("SOAPKIT_ALLOW_ANON", "0").lower() in ("1", "true", "yes"):
            return True
        raise HTTPException(
            status_code=401,
            detail="SOAPKIT_API_KEY not set. Set SOAPKIT_API_KEY or SOAPKIT_ALLOW_ANON=1 for local use."
        )
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing Authorization header. Use 'Authorization: Bearer <SOAPKIT_API_KEY>'")
    if authorization[len("Bearer "):].strip() != api_key:
        raise HTTPException(status_code=401, detail="Invalid API key. Check your SOAPKIT_API_KEY env variable")
    return True


def get_cache() -> CatalogCache:
    global _cache
    if _cache is None:
        with _init_lock:
            if _cache is None:
                _cache = CatalogCache(source_from_settings(settings.catalog_path))
    return _cache


def get_table() -> AbbreviationTable:
    global _table
    if _table is None:
        with _init_lock:
            if _table is None:
                _table = load_table(settings)
    return _table


def _error(status: int, error: str, detail: str) -> HTTPException:
    return HTTPException(
        status_code=status,
        detail={"error": error, "detail": detail, "timestamp": datetime.now().isoformat()},
    )


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "service": "soapkit API",
        "version": __version__
    }

# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@app.get("/categories")
def list_categories(auth: bool = Depends(verify_api_key), cache: CatalogCache = Depends(get_cache)) -> Dict[str, Any]:
    return {"categories": cache.get_ordered_categories()}


@app.get("/catalog")
def get_catalog(auth: bool = Depends(verify_api_key), cache: CatalogCache = Depends(get_cache)) -> Dict[str, List[GroupPayload]]:
    catalog = cache.get_catalog()
    return {
        name: [GroupPayload(title=g.title, items=[i.text for i in g.items]) for g in catalog.get(name, [])]
        for name in cache.get_ordered_categories()
    }


@app.get("/catalog/search")
def search_catalog(q: str, auth: bool = Depends(verify_api_key), cache: CatalogCache = Depends(get_cache)) -> Dict[str, Any]:
    hits = cache.find_items(q)
    return {"results": [{"category": c, "group": g.title, "item": i.text} for c, g, i in hits]}


@app.get("/catalog/status")
def catalog_status(auth: bool = Depends(verify_api_key), cache: CatalogCache = Depends(get_cache)) -> Dict[str, Any]:
    return {"state": cache.state.value, "pending_changes": cache.has_pending_changes()}


@app.post("/catalog/items")
def add_item(req: AddItemRequest, auth: bool = Depends(verify_api_key), cache: CatalogCache = Depends(get_cache)) -> MutationResponse:
    # The API loads on demand; direct callers of add_item get NOT_LOADED instead
    cache.get_catalog()
    outcome = cache.add_item(req.category, req.group, Item(req.text))
    if outcome is not MutationOutcome.APPLIED:
        raise _error(404, "Item not added", f"No group '{req.group}' in category '{req.category}'")
    return MutationResponse(outcome=outcome, pending_changes=cache.has_pending_changes())


@app.delete("/catalog/items")
def remove_item(req: RemoveItemRequest, auth: bool = Depends(verify_api_key), cache: CatalogCache = Depends(get_cache)) -> MutationResponse:
    item = cache.get_item(req.category, req.group, req.index)
    if item is None:
        raise _error(404, "Item not found", f"No item {req.index} in '{req.category}' / '{req.group}'")
    outcome = cache.remove_item(item)
    return MutationResponse(outcome=outcome, pending_changes=cache.has_pending_changes())


@app.post("/catalog/commit")
def commit_catalog(auth: bool = Depends(verify_api_key), cache: CatalogCache = Depends(get_cache)) -> Dict[str, Any]:
    cache.commit_pending()
    return {"pending_changes": cache.has_pending_changes()}

# ---------------------------------------------------------------------------
# Expansion
# ---------------------------------------------------------------------------

@app.post("/expand")
def expand(req: ExpandRequest, auth: bool = Depends(verify_api_key), table: AbbreviationTable = Depends(get_table)) -> ExpandResponse:
    cursor = len(req.text) if req.cursor is None else req.cursor
    if cursor > len(req.text):
        raise _error(400, "Invalid input", f"cursor {cursor} outside text of length {len(req.text)}")
    engine = ExpansionEngine(table.merged(req.table), marker=settings.marker)
    buf = TextBuffer(req.text, cursor)
    loop = DeferredQueue()
    replacement = engine.decide(req.text, cursor)
    matched = handle_key(buf, settings.trigger_key, engine, loop.call_soon, settings.trigger_key)
    loop.run_pending()
    return ExpandResponse(
        matched=matched,
        replacement=replacement if matched else None,
        text=buf.text,
        cursor=buf.caret,
    )


@app.post("/expand/text")
def expand_text(req: ExpandTextRequest, auth: bool = Depends(verify_api_key), table: AbbreviationTable = Depends(get_table)) -> Dict[str, Any]:
    engine = ExpansionEngine(table.merged(req.table), marker=settings.marker)
    expanded = engine.expand_text(req.text)
    return {"text": expanded, "changed": expanded != req.text}

# ---------------------------------------------------------------------------
# Report fragments
# ---------------------------------------------------------------------------

@app.post("/reports/pmh")
def pmh_summary(req: PmhRequest, auth: bool = Depends(verify_api_key)) -> ReportResponse:
    conditions = req.conditions if req.conditions is not None else PMH_CONDITIONS
    return ReportResponse(text=build_pmh_summary(conditions, req.checked, req.notes, apply_save_logic=req.save))


@app.post("/reports/fmh")
def fmh_entry(req: FmhRequest, auth: bool = Depends(verify_api_key)) -> ReportResponse:
    try:
        return ReportResponse(text=build_fmh_entry(req.relationship, req.notes, req.selections))
    except ValueError as ve:
        raise _error(400, "Invalid input", str(ve))


@app.get("/reports/fmh/conditions")
def fmh_conditions(auth: bool = Depends(verify_api_key)) -> Dict[str, List[str]]:
    return load_condition_lists(os.getenv("SOAPKIT_FMH_DIR"))


def main():
    import uvicorn
    logger.setLevel(settings.log_level.upper())
    logger.info("Starting soapkit API server...")
    uvicorn.run(app, host=settings.host, port=settings.port)
