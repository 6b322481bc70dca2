import sys
import os
import argparse
import json
import yaml

from supplydash import __version__
from supplydash.core.v1.config import (
    load_config,
    get_collection_order_by,
    get_activity_settings,
)
from supplydash.core.v1.records import Record, SHAPE_FOR_COLLECTION, shape_for_collection
from supplydash.core.v1.editor import RowSetEditor, Notification
from supplydash.core.v1.filters import ALL_COUNTRIES, unique_countries
from supplydash.core.v1.store import open_store
from supplydash.core.v1.activity import recent_activity


class SDArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that prints full help on error instead of short usage."""
    def error(self, message):
        self.print_help()
        sys.stderr.write(f"\nError: {message}\n")
        raise SystemExit(2)


def main():
    env_format = os.getenv("SD_FORMAT", "human").lower()
    if env_format not in ("human", "json", "yaml"):
        env_format = "human"
    parser = SDArgumentParser(prog="sd", description="supplyDash CLI")
    parser.add_argument(
        "-F", "--format", dest="format", choices=["human", "json", "yaml"], default=env_format,
        help="Output format (default from SD_FORMAT or 'human')"
    )
    parser.add_argument("--version", action="version", version=f"supplyDash {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=False, parser_class=SDArgumentParser)
    collections = sorted(SHAPE_FOR_COLLECTION)

    # records group (nested subcommands)
    records_parser = subparsers.add_parser("records", help="Browse and edit supplier/inventory/wheel-motor rows")
    rec_sub = records_parser.add_subparsers(dest="rec_cmd", required=False, parser_class=SDArgumentParser)

    rec_ls = rec_sub.add_parser("ls", aliases=["list"], help="List records of a collection")
    rec_ls.add_argument("collection", choices=collections)
    rec_ls.add_argument("-s", "--search", default="", help="Case-insensitive match on code or description")
    rec_ls.add_argument("--country", default=ALL_COUNTRIES, help="Only rows from this country ('all' disables)")

    rec_countries = rec_sub.add_parser("countries", help="List distinct countries in a collection")
    rec_countries.add_argument("collection", choices=collections)

    rec_add = rec_sub.add_parser("add", help="Insert a new record")
    rec_add.add_argument("collection", choices=collections)
    rec_add.add_argument("pairs", nargs="*", help="field=value pairs")

    rec_set = rec_sub.add_parser("set", help="Update fields on an existing record")
    rec_set.add_argument("collection", choices=collections)
    rec_set.add_argument("id", help="Record id (itemcode for inventory)")
    rec_set.add_argument("pairs", nargs="+", help="field=value pairs")

    rec_rm = rec_sub.add_parser("rm", aliases=["remove"], help="Delete a record")
    rec_rm.add_argument("collection", choices=collections)
    rec_rm.add_argument("id", help="Record id (itemcode for inventory)")

    # activity
    activity_parser = subparsers.add_parser("activity", help="Show recent activity for a user")
    activity_parser.add_argument("--email", required=True, help="User email the feed is keyed by")

    # web
    web_parser = subparsers.add_parser("web", help="Start the web UI server")
    web_parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    web_parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    web_parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(2)

    def _fmt() -> str:
        return args.format

    def _emit(res, human: str) -> None:
        fmt = _fmt()
        if fmt == "json":
            print(json.dumps(res, indent=2))
        elif fmt == "yaml":
            print(yaml.safe_dump(res, sort_keys=False))
        else:
            print(human)

    def _parse_pairs(pairs_list):
        updates = {}
        for pair in pairs_list or []:
            if "=" not in pair:
                print(f"[supplyDash] Error: invalid field=value pair '{pair}'")
                sys.exit(1)
            k, v = pair.split("=", 1)
            updates[k.strip()] = v.strip()
        return updates

    def _open():
        try:
            cfg = load_config()
            return cfg, open_store(cfg)
        except Exception as e:
            print(f"[supplyDash] Error: {e}")
            sys.exit(1)

    def _editor(collection, notes):
        cfg, store = _open()
        try:
            records = store.fetch_records(collection, order_by=get_collection_order_by(collection, cfg))
        except Exception as e:
            print(f"[supplyDash] Error: {e}")
            sys.exit(1)
        return RowSetEditor(records, store, notes.append, default_shape=shape_for_collection(collection))

    def _find(editor, record_id):
        for rec in editor.records:
            if rec.id == record_id:
                return rec
        print(f"[supplyDash] Error: no record with id '{record_id}'")
        sys.exit(1)

    def _finish(ok: bool, notes: list, res: dict) -> None:
        last: Notification | None = notes[-1] if notes else None
        message = last.description if last else ""
        if not ok:
            if _fmt() == "human":
                print(f"[supplyDash] Error: {message}")
            else:
                _emit({"success": False, "error": message}, "")
            sys.exit(1)
        res = dict(res, success=True, message=message)
        _emit(res, f"[supplyDash] {message}")

    def _record_dict(rec: Record) -> dict:
        return {"id": rec.id, **dict(rec.values)}

    def cmd_records_ls(args):
        editor = _editor(args.collection, [])
        editor.search_term = args.search
        editor.selected_country = args.country
        rows = editor.filtered()
        res = [_record_dict(r) for r in rows]
        fmt = _fmt()
        if fmt != "human":
            _emit(res, "")
            return
        print("\t".join(["id"] + editor.header()))
        for rec in rows:
            print("\t".join([rec.id] + rec.cells()))
        print(f"[supplyDash] {len(rows)} of {len(editor.records)} record(s)")

    def cmd_records_countries(args):
        editor = _editor(args.collection, [])
        res = unique_countries(editor.records)
        _emit(res, "\n".join(res) if res else "[supplyDash] No countries recorded")

    def _apply(editor, fields):
        for name, value in fields.items():
            try:
                editor.change_field(name, value)
            except KeyError:
                allowed = ", ".join(editor.dialog.record.fields)
                print(f"[supplyDash] Error: unknown field '{name}' (allowed: {allowed})")
                sys.exit(1)

    def cmd_records_add(args):
        notes = []
        editor = _editor(args.collection, notes)
        editor.edit(Record.blank(shape_for_collection(args.collection)))
        _apply(editor, _parse_pairs(args.pairs))
        record = editor.dialog.record
        ok = editor.save()
        _finish(ok, notes, {"collection": args.collection, "record": _record_dict(record)})

    def cmd_records_set(args):
        fields = _parse_pairs(args.pairs)
        if not fields:
            print("[supplyDash] Error: no field=value pairs provided")
            sys.exit(1)
        notes = []
        editor = _editor(args.collection, notes)
        editor.edit(_find(editor, args.id))
        _apply(editor, fields)
        record = editor.dialog.record
        ok = editor.save()
        _finish(ok, notes, {"collection": args.collection, "record": _record_dict(record)})

    def cmd_records_rm(args):
        notes = []
        editor = _editor(args.collection, notes)
        ok = editor.delete(_find(editor, args.id))
        _finish(ok, notes, {"collection": args.collection, "id": args.id})

    def cmd_activity(args):
        cfg, store = _open()
        act_collection, act_limit = get_activity_settings(cfg)
        try:
            entries = recent_activity(store, args.email, limit=act_limit, collection=act_collection)
        except Exception as e:
            print(f"[supplyDash] Error: {e}")
            sys.exit(1)
        res = [{"action": e.action, "detail": e.detail, "created_at": e.created_at} for e in entries]
        lines = [f"{e.created_at or '-'}  {e.action}  {e.detail}" for e in entries]
        _emit(res, "\n".join(lines) if lines else f"[supplyDash] No recent activity for {args.email}")

    def cmd_web(args):
        try:
            # Import Flask app here to avoid import issues if Flask isn't installed
            from pathlib import Path

            # Add the project root to Python path for web imports
            project_root = Path(__file__).parent.parent.parent
            sys.path.insert(0, str(project_root))

            from web.app import app

            print(" Starting supplyDash Web UI...")
            print(f" Access the interface at: http://localhost:{args.port}")
            print("=" * 50)
            try:
                app.run(debug=args.debug, host=args.host, port=args.port, use_reloader=args.debug)
            except KeyboardInterrupt:
                print("\n Shutting down supplyDash Web UI...")
            except OSError as e:
                if "Address already in use" in str(e):
                    print(f" Error: Port {args.port} is already in use.")
                    print(f"   Try using a different port: python sd.py web --port {args.port + 1}")
                else:
                    print(f" Error starting web server: {e}")
                sys.exit(1)
        except ImportError as e:
            # Be specific: only claim Flask is missing if that's the failing module
            missing = getattr(e, "name", "") or ""
            if missing == "flask":
                print(" Error: Flask is not installed.")
                print("   Install dependencies: pip install -e .")
            else:
                print(f" Import error starting web UI: {e}")
            sys.exit(1)

    cmd = args.command
    sub = getattr(args, "rec_cmd", None) if cmd == "records" else None

    DISPATCH = {
        ("records", "ls"): cmd_records_ls,
        ("records", "list"): cmd_records_ls,
        ("records", "countries"): cmd_records_countries,
        ("records", "add"): cmd_records_add,
        ("records", "set"): cmd_records_set,
        ("records", "rm"): cmd_records_rm,
        ("records", "remove"): cmd_records_rm,
        ("activity", None): cmd_activity,
        ("web", None): cmd_web,
    }

    handler = DISPATCH.get((cmd, sub))
    if handler:
        handler(args)
    else:
        if cmd == "records":
            records_parser.print_help()
        else:
            parser.print_help()


if __name__ == "__main__":
    main()
