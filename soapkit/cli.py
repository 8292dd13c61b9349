import argparse
import json
import sys

from .abbrev import load_table
from .buffers import DeferredQueue, TextBuffer, handle_key
from .catalog import CatalogCache
from .config import SoapkitSettings
from .expansion import ExpansionEngine
from .reports import load_condition_lists
from .sources import source_from_settings


def _catalog_json(cache: CatalogCache):
    catalog = cache.get_catalog()
    return {
        name: [{"title": g.title, "items": [i.text for i in g.items]} for g in catalog.get(name, [])]
        for name in cache.get_ordered_categories()
    }


def main(argv=None):
    p = argparse.ArgumentParser(description="soapkit: reference catalog and abbreviation expansion for clinical notes")
    p.add_argument("--catalog", default=None, help="Catalog XML file (defaults to the bundled catalog)")
    p.add_argument("--assets", default=None, help="Directory holding abbreviations.db/.csv/.json")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("categories", help="List category names in catalog order")
    sub.add_parser("catalog", help="Dump the full catalog")
    sp = sub.add_parser("search", help="Find catalog items containing QUERY (case-insensitive)")
    sp.add_argument("query")
    ep = sub.add_parser("expand", help="Expand the abbreviation typed before the cursor, as if space was pressed")
    ep.add_argument("text")
    ep.add_argument("--cursor", type=int, default=None, help="Caret offset (defaults to end of text)")
    xp = sub.add_parser("expand-all", help="Expand every marked abbreviation in TEXT")
    xp.add_argument("text")
    cp = sub.add_parser("conditions", help="Family-history condition lists")
    cp.add_argument("--dir", dest="data_dir", default=None, help="Directory with <column>.txt lists")
    args = p.parse_args(argv)

    overrides = {}
    if args.catalog:
        overrides["catalog_path"] = args.catalog
    if args.assets:
        overrides["assets_path"] = args.assets
    cfg = SoapkitSettings(**overrides)

    if args.command in ("categories", "catalog", "search"):
        cache = CatalogCache(source_from_settings(cfg.catalog_path))
        if args.command == "categories":
            out = cache.get_ordered_categories()
        elif args.command == "catalog":
            out = _catalog_json(cache)
        else:
            out = [
                {"category": name, "group": group.title, "item": item.text}
                for name, group, item in cache.find_items(args.query)
            ]
    elif args.command == "conditions":
        out = load_condition_lists(args.data_dir)
    else:
        engine = ExpansionEngine(load_table(cfg), marker=cfg.marker)
        if args.command == "expand-all":
            out = {"text": engine.expand_text(args.text)}
        else:
            cursor = len(args.text) if args.cursor is None else args.cursor
            if not 0 <= cursor <= len(args.text):
                print(f"Error: cursor {cursor} outside text of length {len(args.text)}", file=sys.stderr)
                sys.exit(2)
            buf = TextBuffer(args.text, cursor)
            loop = DeferredQueue()
            matched = handle_key(buf, cfg.trigger_key, engine, loop.call_soon, cfg.trigger_key)
            if not matched:
                buf.type(" ")
            loop.run_pending()
            out = {"matched": matched, "text": buf.text, "cursor": buf.caret}

    print(json.dumps(out, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
