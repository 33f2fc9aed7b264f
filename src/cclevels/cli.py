from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Callable

from . import __version__, crypto
from .errors import LevelStoreError
from .models import ExportFormat
from .settings import Settings
from .store import NEW_ENTRY, LevelStore

logger = logging.getLogger(__name__)


def _open_store(args: argparse.Namespace) -> LevelStore:
    settings = Settings.load(Path(args.config) if args.config else None)
    root = Path(args.root) if args.root else settings.resolved_instances_dir
    instance = args.instance or settings.default_instance
    if not instance:
        raise LevelStoreError("No instance given; pass --instance or set default_instance in settings.")
    store = LevelStore(settings)
    store.open(root, instance)
    return store


def _cmd_list(args: argparse.Namespace) -> int:
    store = _open_store(args)
    entries = store.list_entries()
    if args.json:
        print(json.dumps([e.to_dict() for e in entries], indent=2))
        return 0
    for e in entries:
        song = f"{'custom' if e.is_custom_song else 'official'} {e.song_id}"
        print(f"{e.identifier}\t{e.name}\t{song}\tstars={e.star_request}")
    return 0


def _cmd_show(args: argparse.Namespace) -> int:
    print(_open_store(args).read_payload(args.id))
    return 0


def _cmd_dump(args: argparse.Namespace) -> int:
    print(_open_store(args).dump_markup())
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    store = _open_store(args)
    if args.out:
        path = store.export_to_file(args.id, args.format, Path(args.out))
        print(f"Exported {args.id} to {path}")
    else:
        print(store.export_entry(args.id, args.format))
    return 0


def _mutating(apply: Callable[[LevelStore, argparse.Namespace], str]) -> Callable[[argparse.Namespace], int]:
    def run(args: argparse.Namespace) -> int:
        store = _open_store(args)
        message = apply(store, args)
        store.persist()
        print(message)
        return 0

    return run


def _import(store: LevelStore, args: argparse.Namespace) -> str:
    identifier = store.import_file(args.file, args.target)
    return f"Imported {args.file} as {identifier}"


def _rename(store: LevelStore, args: argparse.Namespace) -> str:
    store.rename(args.id, args.name)
    return f"Renamed {args.id} to {args.name}"


def _set_song(store: LevelStore, args: argparse.Namespace) -> str:
    store.set_song(args.id, args.song, args.custom)
    return f"Set {'custom' if args.custom else 'official'} song {args.song} on {args.id}"


def _set_stars(store: LevelStore, args: argparse.Namespace) -> str:
    store.set_star_request(args.id, args.stars)
    return f"Set star request on {args.id}"


def _set_description(store: LevelStore, args: argparse.Namespace) -> str:
    store.set_description(args.id, args.text)
    return f"Updated description of {args.id}"


def _cmd_decode(args: argparse.Namespace) -> int:
    text = crypto.decrypt_container(Path(args.file).read_bytes())
    if args.out:
        Path(args.out).write_text(text, encoding="utf-8")
    else:
        print(text)
    return 0


def _cmd_encode(args: argparse.Namespace) -> int:
    data = crypto.encrypt_container(Path(args.file).read_text(encoding="utf-8"))
    Path(args.out).write_bytes(data)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="cclevels", description="Inspect and edit local level saves")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--root", help="Directory containing instance folders")
    p.add_argument("--instance", help="Instance folder name")
    p.add_argument("--config", help="Settings YAML file")
    p.add_argument("--debug", action="store_true", help="Verbose logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    ls = sub.add_parser("list", help="List levels in the save")
    ls.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    ls.set_defaults(func=_cmd_list)

    show = sub.add_parser("show", help="Print the decoded level string")
    show.add_argument("id")
    show.set_defaults(func=_cmd_show)

    sub.add_parser("dump", help="Print the whole save as indented markup").set_defaults(func=_cmd_dump)

    exp = sub.add_parser("export", help="Export a level")
    exp.add_argument("id")
    exp.add_argument("--format", choices=[f.value for f in ExportFormat], default=ExportFormat.RAW.value)
    exp.add_argument("--out", help="Output file or directory (default: stdout)")
    exp.set_defaults(func=_cmd_export)

    imp = sub.add_parser("import", help="Import a .gmd or raw level file")
    imp.add_argument("file")
    imp.add_argument("--target", default=NEW_ENTRY, help="Level to overwrite, or 'new'")
    imp.set_defaults(func=_mutating(_import))

    ren = sub.add_parser("rename", help="Rename a level")
    ren.add_argument("id")
    ren.add_argument("name")
    ren.set_defaults(func=_mutating(_rename))

    song = sub.add_parser("set-song", help="Assign an official or custom song")
    song.add_argument("id")
    song.add_argument("song")
    song.add_argument("--custom", action="store_true", help="Treat the id as a custom song id")
    song.set_defaults(func=_mutating(_set_song))

    stars = sub.add_parser("set-stars", help="Set the requested star rating")
    stars.add_argument("id")
    stars.add_argument("stars")
    stars.set_defaults(func=_mutating(_set_stars))

    desc = sub.add_parser("set-description", help="Set the level description")
    desc.add_argument("id")
    desc.add_argument("text")
    desc.set_defaults(func=_mutating(_set_description))

    dec = sub.add_parser("decode", help="Decode a save file to markup")
    dec.add_argument("file")
    dec.add_argument("--out", help="Output file (default: stdout)")
    dec.set_defaults(func=_cmd_decode)

    enc = sub.add_parser("encode", help="Encode a markup file into a save file")
    enc.add_argument("file")
    enc.add_argument("--out", required=True)
    enc.set_defaults(func=_cmd_encode)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except LevelStoreError as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
