"""CLI entry point: ``adoc-convert <input> [-to <format>] [<output>]``.

Return codes:

* ``0`` - conversion finished
* ``1`` - invalid arguments, invalid settings or a converter failed to start
* ``-1`` - help requested, no conversion attempted
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv
from rich import box
from rich.console import Console
from rich.table import Table

from adoc_convert.core import workspace as workspace_mod
from adoc_convert.core.logging import configure_logger
from adoc_convert.core.workspace import WORKSPACE_ENV, WorkspaceError

from .arguments import (
    USAGE,
    UsageError,
    is_help_request,
    parse_arguments,
    resolve_request,
)
from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    ConversionConfigError,
    config_target,
    load_config,
    write_config_template,
)
from .formats import DEFAULT_REGISTRY, FormatKind, FormatRegistry
from .pipeline import EXIT_FAILURE, ConversionResult, run_conversion
from .process import ProcessRunner, SubprocessRunner

EXIT_HELP = -1

_HELP_HINT = 'Type "help" (without quotes) to display the command usage.'


def main(
    argv: Sequence[str] | None = None,
    *,
    registry: FormatRegistry = DEFAULT_REGISTRY,
) -> int:
    args_list = list(argv) if argv is not None else list(sys.argv[1:])

    if not args_list:
        sys.stdout.write(_HELP_HINT + "\n")
        return EXIT_HELP

    if is_help_request(args_list):
        print_help(registry)
        return EXIT_HELP

    if args_list[0] == "config":
        return _handle_config(args_list[1:])

    try:
        parsed = parse_arguments(args_list)
        request = resolve_request(parsed, registry)
    except UsageError as exc:
        _error(str(exc))
        return EXIT_FAILURE

    load_dotenv()
    try:
        load_result = load_config(
            config_path=parsed.config_path,
            overrides=ConfigOverrides(log_level=parsed.log_level),
            workspace_path=parsed.workspace,
        )
    except (ConversionConfigError, WorkspaceError) as exc:
        _error(str(exc))
        return EXIT_FAILURE

    logger, log_path = configure_logger(
        "adoc_convert",
        log_dir=load_result.layout.path_for("logs"),
        level=load_result.config.log_level,
        verbose=parsed.verbose,
    )
    logger.debug(
        "adoc-convert invoked",
        extra={
            "argv": args_list,
            "config_path": load_result.config_path,
            "log_path": log_path,
        },
    )

    result = run_conversion(
        request,
        lookup=load_result.config.lookup,
        runner=_build_runner(),
        logger=logger,
        registry=registry,
    )
    _report(result)
    return result.exit_code


def print_help(registry: FormatRegistry = DEFAULT_REGISTRY) -> None:
    """Print usage and the table of supported formats to stdout."""

    console = Console(highlight=False)
    console.print(USAGE, markup=False)
    console.print()

    table = Table(title="Supported formats", box=box.SIMPLE)
    table.add_column("format")
    table.add_column("converted by")
    table.add_column("extension")
    for output_format, kind, extension in registry.iter_entries():
        engine = "asciidoc" if kind is FormatKind.DIRECT else "asciidoc + pandoc"
        table.add_row(output_format, engine, extension)
    console.print(table)


def _build_runner() -> ProcessRunner:
    return SubprocessRunner()


def _report(result: ConversionResult) -> None:
    for warning in result.warnings:
        sys.stderr.write(f"warning: {warning}\n")
    if result.error:
        _error(result.error)
        return
    request = result.request
    sys.stdout.write(
        f"Converted {request.input_path} to {request.output_format}: "
        f"{request.output_path}\n"
    )


def _error(message: str) -> None:
    sys.stderr.write(f"error: {message}\n")


def _handle_config(argv: Sequence[str]) -> int:
    """Run ``adoc-convert config init``.

    The template goes where a later conversion would read settings from,
    so ``--path`` and ``$ADOC_CONVERT_CONFIG`` are honoured the same way.
    """

    args = _build_config_parser().parse_args(argv)
    try:
        layout = workspace_mod.ensure_workspace(path=args.workspace)
        target = config_target(layout, config_path=args.path)
        written = write_config_template(target, overwrite=args.force)
    except (ConversionConfigError, WorkspaceError) as exc:
        _error(str(exc))
        return EXIT_FAILURE

    sys.stdout.write(f"Wrote adoc-convert settings template to {written}\n")
    return 0


def _build_config_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="adoc-convert config",
        description=(
            "Write the commented asciidoc/pandoc settings template that "
            "adoc-convert reads on every run."
        ),
    )
    parser.add_argument("command", choices=["init"])
    parser.add_argument(
        "--path",
        type=Path,
        help=f"Write here instead of the workspace {CONFIG_FILENAME}.",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help=f"Workspace root (overrides ${WORKSPACE_ENV}).",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Replace an existing settings file.",
    )
    return parser


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
