# SPDX-License-Identifier: MIT
"""Command-line interface for story text and portrait generation."""

from __future__ import annotations

import argparse
import asyncio
import platform
import signal
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import Any, Awaitable, Callable, Coroutine

import logfire

from core.templates import STORY_TEMPLATES, get_template
from io_utils.assets import file_url
from llm.errors import APIError
from observability.monitoring import init_logfire
from runtime.environment import RuntimeEnv
from models import LOG_LEVELS
from runtime.settings import Settings, load_settings

Command = Callable[[argparse.Namespace, RuntimeEnv], Awaitable[int]]


def _print_version() -> None:
    """Print the installed package version."""
    try:
        pkg_version = version("taleweaver-core")
    except PackageNotFoundError:  # pragma: no cover - fallback for editable installs
        pkg_version = "unknown"
    print(f"taleweaver-core {pkg_version}")


def _print_diagnostics(settings: Settings) -> None:
    """Output basic environment information for health checks."""
    _print_version()
    print(f"Python {platform.python_version()}")
    print(f"Platform {platform.platform()}")
    print(f"Assets directory {settings.assets_dir}")
    print(f"Worst-case sends per call {settings.retry_policy().worst_case_sends}")
    if settings.openai_api_key:
        print("API key configured")
    else:
        print("Missing API key: set TW_OPENAI_API_KEY or OPENAI_API_KEY")


def _configure_logging(args: argparse.Namespace, settings: Settings) -> None:
    """Configure Logfire from ``settings.log_level`` adjusted by -v/-q."""
    index = LOG_LEVELS.index(settings.log_level) + args.verbose - args.quiet
    index = max(0, min(len(LOG_LEVELS) - 1, index))
    init_logfire(
        settings.logfire_token,
        LOG_LEVELS[index],  # type: ignore[arg-type]
        api_key=settings.openai_api_key or None,
    )


async def _cmd_text(args: argparse.Namespace, env: RuntimeEnv) -> int:
    """Generate story text from a prompt or a built-in template."""
    if args.template:
        context: dict[str, str] = {}
        for item in args.set:
            key, sep, value = item.partition("=")
            if not sep:
                raise SystemExit(f"--set expects KEY=VALUE, got {item!r}")
            context[key.strip()] = value
        try:
            template = get_template(args.template)
        except KeyError:
            raise SystemExit(f"Unknown template: {args.template}") from None
        prompt = template.render(**context)
    else:
        prompt = args.prompt
    print(await env.client.generate_text(prompt))
    return 0


async def _cmd_scene(args: argparse.Namespace, env: RuntimeEnv) -> int:
    """Generate a scene description for a theme."""
    print(await env.client.generate_scene_description(args.theme))
    return 0


async def _cmd_portrait(args: argparse.Namespace, env: RuntimeEnv) -> int:
    """Generate, or reuse, a character portrait."""
    path = await env.client.generate_character_portrait(
        args.description, args.subject_id, force_regenerate=args.force
    )
    print(file_url(path) if args.url else path)
    return 0


async def _cmd_delete(args: argparse.Namespace, env: RuntimeEnv) -> int:
    """Delete a stored portrait."""
    await env.client.delete_asset(args.subject_id)
    return 0


def _cmd_templates() -> int:
    """List built-in story templates."""
    for template in STORY_TEMPLATES:
        print(f"{template.name}: {template.description}")
        print(f"    {template.prompt_template}")
    return 0


def _add_common_args(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    parser.add_argument("--config", help="Path to a YAML configuration file.")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Increase verbosity."
    )
    parser.add_argument(
        "-q", "--quiet", action="count", default=0, help="Decrease verbosity."
    )
    return parser


def _build_parser() -> argparse.ArgumentParser:
    """Return an argument parser configured with subcommands."""
    parser = argparse.ArgumentParser(
        description="Generate story text and character portraits.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--version", action="store_true", help="Print the version and exit."
    )
    parser.add_argument(
        "--diagnostics",
        action="store_true",
        help="Print environment diagnostics and exit.",
    )
    common = _add_common_args(argparse.ArgumentParser(add_help=False))
    subparsers = parser.add_subparsers(dest="command")

    text = subparsers.add_parser("text", parents=[common], help="Generate story text.")
    source = text.add_mutually_exclusive_group(required=True)
    source.add_argument("--prompt", help="Prompt sent to the model.")
    source.add_argument("--template", help="Built-in story template name.")
    text.add_argument(
        "--set",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Template placeholder value; may be repeated.",
    )
    text.set_defaults(func=_cmd_text)

    scene = subparsers.add_parser(
        "scene", parents=[common], help="Generate a scene description."
    )
    scene.add_argument("theme", help="Scene theme.")
    scene.set_defaults(func=_cmd_scene)

    portrait = subparsers.add_parser(
        "portrait", parents=[common], help="Generate a character portrait."
    )
    portrait.add_argument("subject_id", help="Stable character identifier.")
    portrait.add_argument("description", help="Character description.")
    portrait.add_argument(
        "--force", action="store_true", help="Regenerate even if a portrait exists."
    )
    portrait.add_argument(
        "--url", action="store_true", help="Print a file:// URL instead of a path."
    )
    portrait.set_defaults(func=_cmd_portrait)

    delete = subparsers.add_parser(
        "delete-portrait", parents=[common], help="Delete a stored portrait."
    )
    delete.add_argument("subject_id", help="Stable character identifier.")
    delete.set_defaults(func=_cmd_delete)

    subparsers.add_parser("templates", help="List built-in story templates.")
    return parser


def _run_async_with_signals(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run ``coro`` cancelling it on SIGINT/SIGTERM."""

    async def _runner() -> Any:
        loop = asyncio.get_running_loop()
        task = asyncio.create_task(coro)
        handled: list[signal.Signals] = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, task.cancel)
                handled.append(sig)
            except NotImplementedError:  # pragma: no cover - Windows
                pass
        try:
            return await task
        finally:
            for sig in handled:
                loop.remove_signal_handler(sig)

    return asyncio.run(_runner())


async def _execute(
    command: Command, args: argparse.Namespace, settings: Settings
) -> int:
    async with RuntimeEnv(settings) as env:
        try:
            return await command(args, env)
        except APIError as exc:
            logfire.error("Generation failed", kind=exc.kind, error=str(exc))
            print(f"error ({exc.kind}): {exc}", file=sys.stderr)
            return 2
        except ValueError as exc:
            logfire.error("Invalid argument", error=str(exc))
            print(f"error: {exc}", file=sys.stderr)
            return 2


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and dispatch to the requested subcommand."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.version:
        _print_version()
        return 0
    if args.command == "templates":
        return _cmd_templates()
    if args.command is None and not args.diagnostics:
        parser.print_help()
        return 1
    settings = load_settings(getattr(args, "config", None))
    if args.diagnostics:
        _print_diagnostics(settings)
        return 0
    _configure_logging(args, settings)
    try:
        return _run_async_with_signals(_execute(args.func, args, settings))
    finally:
        logfire.force_flush()


if __name__ == "__main__":
    # Allow module to be executed as a standalone script
    raise SystemExit(main())
