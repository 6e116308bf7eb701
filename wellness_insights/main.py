from __future__ import annotations

import argparse
import json
import logging
import signal
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from wellness_insights.cache import InsightCache, build_default_cache, get_cached_insights
from wellness_insights.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from wellness_insights.insights.demo import build_demo_input
from wellness_insights.insights.engine import InsightEngine
from wellness_insights.insights.schemas import InsightEngineInput
from wellness_insights.logging import configure_logging
from wellness_insights.scheduler import CacheCleanupTask
from wellness_insights.storage import KeyValueStorage, MemoryStorage, RedisStorage, SqliteStorage

logger = logging.getLogger("wellness_insights")

EXIT_BAD_INPUT = 2


def _load(config_path: str | None) -> AppConfig:
    path = Path(config_path).expanduser() if config_path else DEFAULT_CONFIG_PATH
    return load_config(path)


def _build_storage(config: AppConfig) -> KeyValueStorage:
    if config.storage_backend == "memory":
        return MemoryStorage()
    if config.storage_backend == "redis":
        return RedisStorage(config.redis_url)
    return SqliteStorage(config.db_path)


def _close_storage(storage: KeyValueStorage) -> None:
    if isinstance(storage, SqliteStorage):
        storage.close()


def _emit(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _read_input(path: str) -> InsightEngineInput:
    raw = Path(path).expanduser().read_text(encoding="utf-8")
    return InsightEngineInput.model_validate_json(raw)


def cmd_init(args: argparse.Namespace) -> int:
    config = _load(args.config)
    storage = _build_storage(config)
    _close_storage(storage)
    logger.info("initialized config at %s", Path(args.config).expanduser() if args.config else DEFAULT_CONFIG_PATH)
    logger.info("initialized %s storage", config.storage_backend)
    return 0


def cmd_generate(args: argparse.Namespace) -> int:
    config = _load(args.config)
    try:
        data = build_demo_input() if args.demo else _read_input(args.input)
    except ValidationError as exc:
        # The error text echoes input values, so only field locations are logged.
        fields = sorted({".".join(str(part) for part in error["loc"]) for error in exc.errors()})
        logger.error("insight input failed validation", extra={"invalid_fields": fields})
        return EXIT_BAD_INPUT
    except (OSError, ValueError) as exc:
        logger.error("could not load insight input: %s", exc)
        return EXIT_BAD_INPUT

    engine = InsightEngine(config)
    if args.no_cache:
        report = engine.generate_insights(data, args.user_id)
        _emit(report.model_dump(mode="json"))
        return 0

    storage = _build_storage(config)
    try:
        cache = build_default_cache(config, storage)
        report = get_cached_insights(cache, args.user_id, lambda: engine.generate_insights(data, args.user_id))
        _emit(report.model_dump(mode="json"))
    finally:
        _close_storage(storage)
    return 0


def _with_cache(args: argparse.Namespace) -> tuple[InsightCache, KeyValueStorage, AppConfig]:
    config = _load(args.config)
    storage = _build_storage(config)
    return build_default_cache(config, storage), storage, config


def cmd_cache_stats(args: argparse.Namespace) -> int:
    cache, storage, _ = _with_cache(args)
    try:
        _emit(cache.get_stats().model_dump(mode="json"))
    finally:
        _close_storage(storage)
    return 0


def cmd_cache_clear(args: argparse.Namespace) -> int:
    cache, storage, _ = _with_cache(args)
    try:
        if args.user_id:
            cache.invalidate(args.user_id)
            logger.info("invalidated today's insight report", extra={"user_id": args.user_id})
        else:
            cache.clear()
            logger.info("cleared insight cache")
    finally:
        _close_storage(storage)
    return 0


def _register_signal_handlers(stop_event: threading.Event) -> None:
    def _handler(signum: int, frame: Any) -> None:
        del frame
        logger.info("received signal %s, shutting down", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def cmd_cleanup(args: argparse.Namespace) -> int:
    cache, storage, config = _with_cache(args)
    task = CacheCleanupTask(cache, interval_seconds=args.interval or config.cleanup_interval_seconds)
    try:
        if not args.daemon:
            removed = task.run_once()
            _emit({"removed": removed})
            return 0
        stop_event = threading.Event()
        _register_signal_handlers(stop_event)
        task.run_once()
        task.run_forever(stop_event)
        return 0
    finally:
        _close_storage(storage)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wellness-insights")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="create config, data dir, and cache storage")
    init_parser.add_argument("--config", type=str, default=None, help="path to config.toml")
    init_parser.set_defaults(func=cmd_init)

    generate_parser = subparsers.add_parser("generate", help="print today's insight report for a user")
    generate_parser.add_argument("--config", type=str, default=None, help="path to config.toml")
    generate_parser.add_argument("--user-id", type=str, required=True)
    source = generate_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", type=str, help="JSON file with usage, sessions and progress notes")
    source.add_argument("--demo", action="store_true", help="use generated demo data")
    generate_parser.add_argument("--no-cache", action="store_true", help="skip the report cache")
    generate_parser.add_argument("--verbose", action="store_true")
    generate_parser.set_defaults(func=cmd_generate)

    stats_parser = subparsers.add_parser("cache-stats", help="print insight cache statistics")
    stats_parser.add_argument("--config", type=str, default=None, help="path to config.toml")
    stats_parser.set_defaults(func=cmd_cache_stats)

    clear_parser = subparsers.add_parser("cache-clear", help="drop cached reports")
    clear_parser.add_argument("--config", type=str, default=None, help="path to config.toml")
    clear_parser.add_argument("--user-id", type=str, default=None, help="only drop today's report for this user")
    clear_parser.set_defaults(func=cmd_cache_clear)

    cleanup_parser = subparsers.add_parser("cleanup", help="remove expired cache entries")
    cleanup_parser.add_argument("--config", type=str, default=None, help="path to config.toml")
    cleanup_parser.add_argument("--daemon", action="store_true", help="keep running on an interval")
    cleanup_parser.add_argument("--interval", type=int, default=None, help="cleanup interval override in seconds")
    cleanup_parser.add_argument("--verbose", action="store_true")
    cleanup_parser.set_defaults(func=cmd_cleanup)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(bool(getattr(args, "verbose", False)))
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
