"""
CLI entry point.

Commands:
- init [--force]: Write default config and create the data directory
- block list|get|set|create|delete: Working memory blocks
- archive add|search|list: Archival facts
- graph add|query|search|entities: Knowledge graph
- summary add|list: Conversation summaries
- context: Dump the context payload as JSON
- ingest [text]: Extract memories from text (stdin when omitted)

Flags:
- --debug: Enable debug logging
- --db PATH: Database path (default: ~/.botmem/botmem.db)
"""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from botmem.core.config import (
    Settings,
    config_exists,
    default_config_path,
    get_settings,
    load_settings,
    save_settings,
)
from botmem.core.errors import BotmemError
from botmem.core.logging import get_logger, setup_logging
from botmem.memory import (
    ArchivalStore,
    BlockStore,
    ContextAssembler,
    GraphStore,
    MemoryDatabase,
    SummaryStore,
)

USAGE = """Usage: botmem [--debug] [--db PATH] <command> [args]
Commands:
  init [--force]
  block list [type] | get <label> | set <label> <content>
        | create <label> <type> [content] | delete <label>
  archive add <text> [--tags a,b] | search <query> | list [--tag t]
  graph add <subject> <predicate> <object> | query <entity>
        | search <predicate> | entities [type]
  summary add <text> [--level N] | list [--level N]
  context
  ingest [text]"""


class UsageError(Exception):
    """Bad command-line arguments."""
    ...


Handler = Callable[[MemoryDatabase, list[str]], Awaitable[None]]


def _pop_flag(args: list[str], name: str) -> str | None:
    """Remove `--name value` from args and return value."""
    if name not in args:
        return None
    idx = args.index(name)
    if idx + 1 >= len(args):
        raise UsageError(f"{name} requires a value")
    value = args[idx + 1]
    del args[idx : idx + 2]
    return value


def _require(args: list[str], count: int, usage: str) -> None:
    if len(args) < count:
        raise UsageError(f"usage: botmem {usage}")


def _truncate(text: str, n: int) -> str:
    return text if len(text) <= n else text[:n] + "..."


def _int_flag(args: list[str], name: str, default: int) -> int:
    value = _pop_flag(args, name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise UsageError(f"{name} must be an integer") from None


# Block commands


async def _block(db: MemoryDatabase, args: list[str]) -> None:
    _require(args, 1, "block <list|get|set|create|delete>")
    store = BlockStore(db)
    sub, rest = args[0], args[1:]

    if sub == "list":
        for b in await store.list(rest[0] if rest else ""):
            print(f"[{b.block_type}] {b.label} ({b.updated_at:%Y-%m-%d %H:%M})")
    elif sub == "get":
        _require(rest, 1, "block get <label>")
        print((await store.get_by_label(rest[0])).content)
    elif sub == "set":
        _require(rest, 2, "block set <label> <content>")
        await store.set(rest[0], rest[1])
        print(f"Block {rest[0]!r} updated.")
    elif sub == "create":
        _require(rest, 2, "block create <label> <type> [content]")
        content = rest[2] if len(rest) > 2 else ""
        b = await store.create(rest[0], rest[1], content)
        print(f"Created block {b.label!r} (id={b.id})")
    elif sub == "delete":
        _require(rest, 1, "block delete <label>")
        await store.delete(rest[0])
    else:
        raise UsageError(f"unknown block command: {sub}")


# Archive commands


async def _archive(db: MemoryDatabase, args: list[str]) -> None:
    _require(args, 1, "archive <add|search|list>")
    store = ArchivalStore(db)
    sub, rest = args[0], args[1:]

    if sub == "add":
        tags_flag = _pop_flag(rest, "--tags")
        _require(rest, 1, "archive add <text> [--tags a,b]")
        tags = tags_flag.split(",") if tags_flag else []
        entry = await store.add(rest[0], tags)
        print(f"Added archival entry (id={entry.id})")
    elif sub == "search":
        _require(rest, 1, "archive search <query>")
        entries = await store.search(rest[0], 10)
        for e in entries:
            print(f"[{e.id}] {e.content} (tags: {e.tags})")
        if not entries:
            print("No results.")
    elif sub == "list":
        tag = _pop_flag(rest, "--tag") or ""
        for e in await store.list(tag, 50):
            print(f"[{e.id}] {_truncate(e.content, 80)} (tags: {e.tags})")
    else:
        raise UsageError(f"unknown archive command: {sub}")


# Graph commands


async def _graph(db: MemoryDatabase, args: list[str]) -> None:
    _require(args, 1, "graph <add|query|search|entities>")
    store = GraphStore(db)
    sub, rest = args[0], args[1:]

    if sub == "add":
        _require(rest, 3, "graph add <subject> <predicate> <object>")
        await store.add_relation(rest[0], rest[1], rest[2])
        print(f"Added: {rest[0]} -[{rest[1]}]-> {rest[2]}")
    elif sub == "query":
        _require(rest, 1, "graph query <entity>")
        relations = await store.query_entity(rest[0])
        for r in relations:
            print(f"{r.subject} -[{r.predicate}]-> {r.object}")
        if not relations:
            print("No relations found.")
    elif sub == "search":
        _require(rest, 1, "graph search <predicate>")
        for r in await store.search_relations(rest[0]):
            print(f"{r.subject} -[{r.predicate}]-> {r.object}")
    elif sub == "entities":
        for e in await store.list_entities(rest[0] if rest else ""):
            print(f"{e.name} ({e.entity_type})")
    else:
        raise UsageError(f"unknown graph command: {sub}")


# Summary commands


async def _summary(db: MemoryDatabase, args: list[str]) -> None:
    _require(args, 1, "summary <add|list>")
    store = SummaryStore(db)
    sub, rest = args[0], args[1:]
    level = _int_flag(rest, "--level", 0)

    if sub == "add":
        _require(rest, 1, "summary add <text> [--level N]")
        s = await store.add(level, rest[0])
        print(f"Added summary (id={s.id}, level={s.level})")
    elif sub == "list":
        for s in await store.list(level, 20):
            print(f"[L{s.level} #{s.id}] {_truncate(s.content, 100)}")
    else:
        raise UsageError(f"unknown summary command: {sub}")


async def _context(db: MemoryDatabase, args: list[str]) -> None:
    payload = await ContextAssembler.from_database(db).build()
    print(payload.to_json())


async def _ingest(db: MemoryDatabase, args: list[str]) -> None:
    from botmem.ingest import ExtractionPipeline, IngestConfig

    text = args[0] if args else sys.stdin.read()
    if not text.strip():
        raise UsageError("no text provided")

    config = IngestConfig.from_settings(load_settings())
    async with ExtractionPipeline(db, config) as pipeline:
        result = await pipeline.run(text)
    print(json.dumps(result.model_dump(), indent=2, ensure_ascii=False))


COMMANDS: dict[str, Handler] = {
    "block": _block,
    "archive": _archive,
    "graph": _graph,
    "summary": _summary,
    "context": _context,
    "ingest": _ingest,
}


def _init(settings: Settings, args: list[str]) -> int:
    """Write a default config file (claude CLI backend).

    An existing file is kept unless --force is given.
    """
    path = default_config_path()
    if config_exists(path) and "--force" not in args:
        print(f"Config already exists: {path} (use --force to overwrite)")
        return 0
    if not settings.llm.provider:
        settings.llm.provider = "claude"
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    save_settings(settings, path)
    print(f"Created: {path}")
    print(f"Data directory: {settings.data_dir}")
    return 0


async def _run(command: str, args: list[str], db_path: Path) -> int:
    logger = get_logger("cli")
    async with MemoryDatabase(db_path) as db:
        try:
            await COMMANDS[command](db, args)
        except UsageError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except BotmemError as e:
            logger.debug(f"{command} failed", exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = list(sys.argv[1:] if argv is None else argv)

    debug_mode = "--debug" in args
    if debug_mode:
        args.remove("--debug")

    try:
        db_flag = _pop_flag(args, "--db")
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # init must work even when the existing config is broken
    try:
        settings = get_settings()
    except BotmemError as e:
        if args[:1] != ["init"]:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(f"Warning: ignoring unreadable config ({e})", file=sys.stderr)
        settings = Settings()

    setup_logging(
        level=logging.DEBUG if debug_mode else logging.WARNING,
        log_file=settings.log_file if debug_mode else None,
    )

    if not args:
        print(USAGE)
        return 1

    command, rest = args[0], args[1:]

    if command == "init":
        return _init(settings, rest)

    if command not in COMMANDS:
        print(f"Unknown command: {command}")
        print(USAGE)
        return 1

    db_path = Path(db_flag).expanduser() if db_flag else settings.db_path
    return asyncio.run(_run(command, rest, db_path))


if __name__ == "__main__":
    sys.exit(main())
