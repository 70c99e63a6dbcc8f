"""Argument parsing for the clipharness CLI."""

import argparse

from clipharness.clipboard.types import USER_FORMATS
from clipharness.config.schema import ChannelApi, StorageMode

SCENARIOS = ("cross-session", "same-session", "external", "clear")
FORMAT_CHOICES = [tag.value for tag in USER_FORMATS]


def add_config_args(parser: argparse.ArgumentParser) -> None:
    """Add config file and transport override arguments."""
    parser.add_argument(
        "--config", "-c",
        help="Config file (default: layered ~/.clipharness and ./.clipharness config)",
    )
    parser.add_argument(
        "--api",
        choices=[api.value for api in ChannelApi],
        help="Transfer channel adapter (overrides config)",
    )
    parser.add_argument(
        "--storage",
        choices=[mode.value for mode in StorageMode],
        help="Replication policy (overrides config)",
    )
    parser.add_argument(
        "--mirror-path",
        dest="mirror_path",
        help="Mirror database file (default: a temporary directory)",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="clipharness",
        description="Copy/paste harness with channel and mirror replicas",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show debug log lines",
    )
    subparsers = parser.add_subparsers(dest="command")

    demo_parser = subparsers.add_parser(
        "demo",
        help="Copy in one context and paste in another",
        description="Run a two-context copy/paste scenario and print the outcome.",
    )
    demo_parser.add_argument(
        "scenario",
        nargs="?",
        choices=SCENARIOS,
        default="cross-session",
        help="Scenario to run (default: cross-session)",
    )
    demo_parser.add_argument(
        "--formats", "-f",
        nargs="*",
        choices=FORMAT_CHOICES,
        help="Formats to copy (default: config copy_formats)",
    )
    demo_parser.add_argument(
        "--paste-format", "-p",
        dest="paste_format",
        choices=FORMAT_CHOICES,
        help="Request this format on paste (default: priority order)",
    )
    demo_parser.add_argument(
        "--keyboard", "-k",
        action="store_true",
        help="Use keyboard gestures instead of programmatic triggers",
    )
    demo_parser.add_argument(
        "--delay",
        type=float,
        help="Artificial resolution delay in seconds (overrides config)",
    )
    add_config_args(demo_parser)

    config_parser = subparsers.add_parser(
        "config",
        help="Print the effective configuration",
    )
    add_config_args(config_parser)

    return parser.parse_args(argv)
