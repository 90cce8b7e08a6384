"""Convert AsciiDoc documents with asciidoc, chaining pandoc when needed."""

from __future__ import annotations

from .arguments import (
    ConversionRequest,
    ParsedArguments,
    UsageError,
    is_help_request,
    parse_arguments,
    resolve_arguments,
    resolve_request,
)
from .config import (
    AdocConvertConfig,
    ConfigLookupError,
    ConfigOverrides,
    ConversionConfigError,
    LoadResult,
    load_config,
)
from .formats import (
    DEFAULT_REGISTRY,
    FormatKind,
    FormatRegistry,
    UnknownFormatError,
)
from .pipeline import (
    ConversionPipeline,
    ConversionResult,
    PipelineState,
    StageResult,
    run_conversion,
)
from .process import LaunchError, ProcessRunner, SubprocessRunner

__all__ = [
    "ConversionRequest",
    "ParsedArguments",
    "UsageError",
    "is_help_request",
    "parse_arguments",
    "resolve_arguments",
    "resolve_request",
    "AdocConvertConfig",
    "ConfigLookupError",
    "ConfigOverrides",
    "ConversionConfigError",
    "LoadResult",
    "load_config",
    "DEFAULT_REGISTRY",
    "FormatKind",
    "FormatRegistry",
    "UnknownFormatError",
    "ConversionPipeline",
    "ConversionResult",
    "PipelineState",
    "StageResult",
    "run_conversion",
    "LaunchError",
    "ProcessRunner",
    "SubprocessRunner",
]
