"""Turn ``<input> [-to <format>] [<output>]`` into a conversion request."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .formats import DEFAULT_REGISTRY, FormatKind, FormatRegistry
from .formats import UnknownFormatError

__all__ = [
    "HELP_WORDS",
    "USAGE",
    "ConversionRequest",
    "ParsedArguments",
    "UsageError",
    "is_help_request",
    "parse_arguments",
    "resolve_arguments",
    "resolve_request",
]

USAGE = "Usage:\n\tinput_file [-to <format>] [output_file]"
HELP_WORDS = frozenset({"help", "-h", "--help"})
_OPTION_TOKENS = frozenset(
    {"-to", "--config", "--workspace", "--log-level", "--verbose"}
)


class UsageError(ValueError):
    """Raised when the command line cannot be turned into a request."""


@dataclass(frozen=True)
class ParsedArguments:
    """Raw values read from the command line, nothing derived yet."""

    input_path: str
    output_format: Optional[str] = None
    output_path: Optional[str] = None
    config_path: Optional[Path] = None
    workspace: Optional[Path] = None
    log_level: Optional[str] = None
    verbose: bool = False


@dataclass(frozen=True)
class ConversionRequest:
    """Fully determined input, output format and output path."""

    input_path: Path
    output_format: str
    output_path: Path
    kind: FormatKind

    @property
    def is_chained(self) -> bool:
        return self.kind is FormatKind.CHAINED


class _RaisingParser(argparse.ArgumentParser):
    def error(self, message: str):  # type: ignore[override]
        raise UsageError(f"could not read arguments: {message}\n{USAGE}")


class _StoreOnce(argparse.Action):
    def __call__(self, parser, namespace, values, option_string=None):
        if getattr(namespace, self.dest) is not None:
            parser.error(f"{option_string} may only be given once")
        setattr(namespace, self.dest, values)


def _build_parser() -> argparse.ArgumentParser:
    parser = _RaisingParser(
        prog="adoc-convert",
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument("input_path")
    parser.add_argument("output_path", nargs="?")
    parser.add_argument(
        "-to",
        dest="output_format",
        metavar="FORMAT",
        action=_StoreOnce,
    )
    parser.add_argument("--config", dest="config_path", type=Path)
    parser.add_argument("--workspace", type=Path)
    parser.add_argument("--log-level")
    parser.add_argument("--verbose", action="store_true")
    return parser


def is_help_request(argv: Sequence[str]) -> bool:
    return len(argv) == 1 and argv[0].strip().lower() in HELP_WORDS


def parse_arguments(argv: Sequence[str]) -> ParsedArguments:
    """Split ``argv`` into input, optional ``-to`` format and optional output.

    The input file must be the first token; ``-to`` and the output file may
    follow in either order.
    """

    args = list(argv)
    if not args:
        raise UsageError(f"could not read arguments: no input file\n{USAGE}")
    if args[0].startswith("-"):
        raise UsageError(
            f"could not read arguments: the input file must come first\n"
            f"{USAGE}"
        )
    for token in args[1:]:
        if token.startswith("-") and token not in _OPTION_TOKENS:
            raise UsageError(
                f"could not read arguments: unexpected option {token!r}\n"
                f"{USAGE}"
            )

    namespace = _build_parser().parse_intermixed_args(args)
    return ParsedArguments(
        input_path=namespace.input_path,
        output_format=namespace.output_format,
        output_path=namespace.output_path,
        config_path=namespace.config_path,
        workspace=namespace.workspace,
        log_level=namespace.log_level,
        verbose=namespace.verbose,
    )


def resolve_request(
    parsed: ParsedArguments,
    registry: FormatRegistry = DEFAULT_REGISTRY,
) -> ConversionRequest:
    """Fill in whichever of format and output path was left out."""

    output_format = (parsed.output_format or "").strip().lower()
    output_text = (parsed.output_path or "").strip()

    if not output_format and not output_text:
        raise UsageError(
            "either format or output file name with extension must be "
            "specified"
        )

    input_path = Path(parsed.input_path)
    stem, input_extension = _split_extension(input_path)
    if not input_extension:
        raise UsageError("extension for input file must be specified")

    if not output_format:
        output_format = registry.format_for_extension(Path(output_text).suffix)
    elif not output_text:
        extension = registry.extension_for(output_format)
        output_text = str(input_path.parent / f"{stem}{extension}")

    if not output_format:
        raise UsageError("output format was not specified")

    try:
        kind = registry.classify(output_format)
    except UnknownFormatError as exc:
        raise _unrecognized(output_format) from exc

    return ConversionRequest(
        input_path=input_path,
        output_format=output_format,
        output_path=Path(output_text),
        kind=kind,
    )


def _split_extension(path: Path) -> tuple[str, str]:
    """Split ``path`` like ``Path.suffix`` but read ``.adoc`` as an extension."""

    if path.suffix:
        return path.stem, path.suffix
    if path.name.startswith(".") and path.name.strip("."):
        return "", path.name
    return path.name, ""


def _unrecognized(output_format: str) -> UsageError:
    return UsageError(
        f'output format "{output_format}" is not recognized; '
        'run "help" to list supported formats'
    )


def resolve_arguments(
    argv: Sequence[str],
    registry: FormatRegistry = DEFAULT_REGISTRY,
) -> ConversionRequest:
    return resolve_request(parse_arguments(argv), registry)
