"""Formatting helpers and the ``castbot-admin`` data-management CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import tarfile
from pathlib import Path
from typing import Any, Mapping, Sequence

import discord

from .errors import CastbotError
from .storage import PLAYER_FILE, PRONOUNS_FILE, TRIBES_FILE, DataStore, resolve_storage_root

PROJECT_BASE = Path(__file__).resolve().parent.parent


def capitalize(text: str) -> str:
    """Upper-case the first character and leave the rest untouched."""

    return text[:1].upper() + text[1:]


def emoji_token(record: Mapping[str, Any]) -> str | None:
    """Return the inline ``<:name:id>`` token for a player's decorative emoji."""

    handle = record.get("emoji")
    if isinstance(handle, Mapping) and handle.get("id") and handle.get("name"):
        return str(discord.PartialEmoji(name=str(handle["name"]), id=int(handle["id"])))
    code = record.get("emojiCode")
    return str(code) if code else None


def emoji_id(record: Mapping[str, Any]) -> int | None:
    """Return the platform ID of a player's decorative emoji, if any."""

    handle = record.get("emoji")
    if isinstance(handle, Mapping) and handle.get("id"):
        return int(handle["id"])
    code = record.get("emojiCode")
    if not code:
        return None
    return discord.PartialEmoji.from_str(str(code)).id


def truncate_block(text: str, limit: int, marker: str = "\n... (truncated)") -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + marker


# ---------------------------------------------------------------------------
# Admin CLI
# ---------------------------------------------------------------------------


def _default_storage_root() -> Path:
    return resolve_storage_root(PROJECT_BASE)


def _store_from_args(args: argparse.Namespace) -> DataStore:
    root = Path(args.data_root).expanduser().resolve() if args.data_root else _default_storage_root()
    return DataStore(root)


def _command_show(args: argparse.Namespace) -> int:
    store = _store_from_args(args)
    document = asyncio.run(store.players.load())
    players = document["players"]
    if not players:
        print("No player records stored.")
        return 0
    for user_id, record in sorted(players.items(), key=lambda item: str(item[1].get("member", ""))):
        name = record.get("member", "?")
        age = record.get("age", "-")
        tz = record.get("timezone") or "-"
        token = emoji_token(record) or "-"
        print(f"{user_id}\t{name}\tage={age}\ttimezone={tz}\temoji={token}")
    return 0


def _command_delete_player(args: argparse.Namespace) -> int:
    store = _store_from_args(args)
    removed = asyncio.run(store.players.delete_player(args.user_id))
    if not removed:
        print(f"No record for {args.user_id}.", file=sys.stderr)
        return 1
    print(f"Deleted record for {args.user_id}.")
    return 0


def _command_validate(args: argparse.Namespace) -> int:
    store = _store_from_args(args)

    async def _load_all() -> list[str]:
        issues: list[str] = []
        for label, loader in (
            (TRIBES_FILE, store.tribes.load_tribes),
            (PRONOUNS_FILE, store.pronouns.load),
            (PLAYER_FILE, store.players.load),
        ):
            try:
                await loader()
            except CastbotError as exc:
                issues.append(f"[ERROR] {label}: {exc}")
        return issues

    issues = asyncio.run(_load_all())
    for issue in issues:
        print(issue)
    if not issues:
        print(f"All documents in {store.root} are valid.")
    return 1 if issues else 0


def _command_export(args: argparse.Namespace) -> int:
    store = _store_from_args(args)
    destination = Path(args.destination).expanduser().resolve()
    destination.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    with tarfile.open(destination, "w:gz") as archive:
        for name in (PLAYER_FILE, TRIBES_FILE, PRONOUNS_FILE):
            path = store.root / name
            if path.exists():
                archive.add(path, arcname=name)
                written += 1
    print(f"Exported {written} document(s) to {destination}.")
    return 0


def _command_dump(args: argparse.Namespace) -> int:
    store = _store_from_args(args)
    document = asyncio.run(store.players.load())
    print(json.dumps(document, indent=2, ensure_ascii=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage castbot data files")
    parser.add_argument(
        "--data-root",
        help="Directory holding the JSON documents (defaults to the bot's storage root)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    show_parser = subparsers.add_parser("show", help="List stored player records")
    show_parser.set_defaults(func=_command_show)

    dump_parser = subparsers.add_parser("dump", help="Print the raw player document")
    dump_parser.set_defaults(func=_command_dump)

    delete_parser = subparsers.add_parser("delete-player", help="Remove one player record")
    delete_parser.add_argument("user_id", help="Discord user ID of the player")
    delete_parser.set_defaults(func=_command_delete_player)

    validate_parser = subparsers.add_parser("validate", help="Check every document parses")
    validate_parser.set_defaults(func=_command_validate)

    export_parser = subparsers.add_parser("export", help="Archive the documents as tar.gz")
    export_parser.add_argument("destination", help="Path of the archive to create")
    export_parser.set_defaults(func=_command_export)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except CastbotError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
