"""CLI entry point for inspecting and maintaining the weather catalog."""

import argparse
import asyncio
import logging

from weatherstore.config.loader import get_config_value, load_config
from weatherstore.config.schema import StoreConfig
from weatherstore.errors import StorageError
from weatherstore.models.weather import WeatherCondition
from weatherstore.storage.seed import ensure_seeded
from weatherstore.store import WeatherStore, open_store


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="weatherstore",
        description="Local weather condition catalog",
    )
    parser.add_argument("--config", default=None, help="Config YAML path")
    parser.add_argument("--db", default=None, help="SQLite DB path (overrides config)")

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("seed", help="Populate an empty catalog with defaults")
    sub.add_parser("list", help="List all weather conditions")
    get_p = sub.add_parser("get", help="Show one weather condition")
    get_p.add_argument("id", type=int)
    sub.add_parser("random", help="Pick a random weather condition")
    sub.add_parser("clear", help="Delete every weather condition")
    watch_p = sub.add_parser("watch", help="Print the listing on every change")
    watch_p.add_argument(
        "--count", type=int, default=None, help="Stop after N listings"
    )

    config_p = sub.add_parser("config", help="Config operations")
    config_sub = config_p.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Display current config")
    cget_p = config_sub.add_parser("get", help="Display one config value")
    cget_p.add_argument("key", help="Dotted key, e.g. database.path")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    if args.db is not None:
        config = config.model_copy(
            update={"database": config.database.model_copy(update={"path": args.db})}
        )
    if args.command == "config":
        return _cmd_config(config, args)

    # Only the seed command writes defaults.
    config = config.model_copy(update={"seed_defaults": False})

    commands = {
        "seed": _cmd_seed,
        "list": _cmd_list,
        "get": _cmd_get,
        "random": _cmd_random,
        "clear": _cmd_clear,
        "watch": _cmd_watch,
    }
    try:
        return asyncio.run(_with_store(config, commands[args.command], args))
    except StorageError as e:
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        return 0


async def _with_store(config: StoreConfig, command, args) -> int:
    async with await open_store(config) as store:
        return await command(store, args)


def _format(w: WeatherCondition) -> str:
    return f"{w.id:>3}  {w.emoji}  {w.condition} ({w.temperature}°) - {w.mood}"


async def _cmd_seed(store: WeatherStore, args) -> int:
    inserted = await ensure_seeded(store.repository)
    if inserted:
        print(f"Seeded {inserted} weather conditions")
    else:
        print("Catalog already populated")
    return 0


async def _cmd_list(store: WeatherStore, args) -> int:
    async with store.repository.get_all_weather() as listing:
        rows = await anext(listing)
    for w in rows:
        print(_format(w))
    print(f"{len(rows)} weather condition(s)")
    return 0


async def _cmd_get(store: WeatherStore, args) -> int:
    weather = await store.repository.get_weather_by_id(args.id)
    if weather is None:
        print(f"No weather condition with id {args.id}")
        return 1
    print(_format(weather))
    return 0


async def _cmd_random(store: WeatherStore, args) -> int:
    weather = await store.repository.get_random_weather()
    if weather is None:
        print("Catalog is empty")
        return 1
    print(_format(weather))
    return 0


async def _cmd_clear(store: WeatherStore, args) -> int:
    await store.repository.delete_all()
    print("Catalog cleared")
    return 0


async def _cmd_watch(store: WeatherStore, args) -> int:
    seen = 0
    async with store.repository.get_all_weather() as listing:
        async for rows in listing:
            seen += 1
            print(f"--- listing #{seen}: {len(rows)} weather condition(s)")
            for w in rows:
                print(_format(w))
            if args.count is not None and seen >= args.count:
                break
    return 0


def _cmd_config(config: StoreConfig, args) -> int:
    if args.config_command == "show":
        print(config.model_dump_json(indent=2))
        return 0
    elif args.config_command == "get":
        try:
            print(f"{args.key} = {get_config_value(config, args.key)}")
            return 0
        except KeyError as e:
            print(f"Error: {e}")
            return 1
    else:
        print("Use: config show | config get key")
        return 1
