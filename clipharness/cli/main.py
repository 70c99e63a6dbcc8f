"""Entry point for the clipharness CLI."""

import asyncio
import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from clipharness.cli.arg_parser import parse_args
from clipharness.config.loader import load_config
from clipharness.config.schema import HarnessConfig
from clipharness.core.errors import ConfigError


def _effective_config(args) -> HarnessConfig:
    """Load config and apply command line overrides.

    Raises:
        ConfigError: If the config cannot be loaded or an override is invalid.
    """
    config = load_config(Path(args.config) if args.config else None)

    overrides: dict[str, object] = {}
    if args.api:
        overrides["clipboard_api"] = args.api
    if args.storage:
        overrides["data_storage"] = args.storage
    data = config.model_dump(mode="json")
    data.update(overrides)
    if args.mirror_path:
        data["mirror"]["path"] = args.mirror_path
    if getattr(args, "delay", None) is not None:
        data["content"]["resolve_delay"] = args.delay

    try:
        return HarnessConfig.model_validate(data)
    except ValueError as e:
        raise ConfigError(f"Invalid command line override: {e}") from e


def main(argv: list[str] | None = None) -> None:
    """Entry point for the clipharness CLI."""
    args = parse_args(argv)
    console = Console(highlight=False)

    if args.command is None:
        console.print("Usage: clipharness {demo,config} [options]")
        raise SystemExit(1)

    try:
        config = _effective_config(args)
    except ConfigError as e:
        console.print(f"[bold red]Error:[/] {escape(e.message)}")
        raise SystemExit(2) from e

    if args.command == "config":
        console.print_json(json.dumps(config.model_dump(mode="json")))
        raise SystemExit(0)

    from clipharness.cli.demo import run_demo

    try:
        exit_code = asyncio.run(run_demo(config, args, console))
    except KeyboardInterrupt:
        exit_code = 130
    raise SystemExit(exit_code)
