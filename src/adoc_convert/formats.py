"""Output formats reachable through asciidoc alone or asciidoc + pandoc."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping

__all__ = [
    "DEFAULT_REGISTRY",
    "FormatKind",
    "FormatRegistry",
    "UnknownFormatError",
]


class UnknownFormatError(ValueError):
    """Raised when a format is in neither the direct nor the chained set."""

    def __init__(self, output_format: str) -> None:
        super().__init__(output_format)
        self.output_format = output_format


class FormatKind(Enum):
    """How a format is produced."""

    DIRECT = "direct"
    CHAINED = "chained"


@dataclass(frozen=True)
class FormatRegistry:
    """Lookup tables describing the supported output formats.

    ``direct`` formats are asciidoc backends, ``chained`` formats are pandoc
    writers fed with asciidoc's intermediate output. ``extensions`` maps a
    format to its canonical file extension (formats without an entry use
    ``.<format>``) and ``extension_aliases`` maps a file extension back to
    the format it stands for when it is not the extension itself.
    """

    direct: frozenset[str]
    chained: frozenset[str]
    extensions: Mapping[str, str] = field(default_factory=dict)
    extension_aliases: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        overlap = self.direct & self.chained
        if overlap:
            raise ValueError(
                "Formats cannot be both direct and chained: {0}".format(
                    ", ".join(sorted(overlap))
                )
            )

    def classify(self, output_format: str) -> FormatKind:
        normalized = output_format.strip().lower()
        if normalized in self.direct:
            return FormatKind.DIRECT
        if normalized in self.chained:
            return FormatKind.CHAINED
        raise UnknownFormatError(output_format)

    def is_supported(self, output_format: str) -> bool:
        normalized = output_format.strip().lower()
        return normalized in self.direct or normalized in self.chained

    def extension_for(self, output_format: str) -> str:
        """Return the canonical extension, leading dot included."""

        normalized = output_format.strip().lower()
        return self.extensions.get(normalized, f".{normalized}")

    def format_for_extension(self, extension: str) -> str:
        """Map a file extension (with or without dot) to a format identifier."""

        normalized = extension.strip().lstrip(".").lower()
        return self.extension_aliases.get(normalized, normalized)

    def supported(self) -> tuple[str, ...]:
        return tuple(sorted(self.direct | self.chained))

    def iter_entries(self) -> Iterable[tuple[str, FormatKind, str]]:
        """Yield ``(format, kind, extension)`` for every supported format."""

        for output_format in self.supported():
            yield (
                output_format,
                self.classify(output_format),
                self.extension_for(output_format),
            )


def _family(extension: str, *formats: str) -> dict[str, str]:
    return {name: extension for name in formats}


_HTML_FAMILY = ("html", "html4", "html5", "xhtml11", "slidy", "wordpress")
_DOCBOOK_FAMILY = ("docbook", "docbook4", "docbook5")
_MARKDOWN_FAMILY = ("markdown", "markdown_strict", "gfm")

DEFAULT_REGISTRY = FormatRegistry(
    direct=frozenset(_HTML_FAMILY),
    chained=frozenset(
        (
            "docx",
            "pdf",
            "odt",
            "epub",
            "rtf",
            "pptx",
            "rst",
            "org",
            "textile",
            "mediawiki",
            *_MARKDOWN_FAMILY,
            *_DOCBOOK_FAMILY,
        )
    ),
    extensions=MappingProxyType(
        {
            **_family(".html", *_HTML_FAMILY),
            **_family(".xml", *_DOCBOOK_FAMILY),
            **_family(".md", *_MARKDOWN_FAMILY),
        }
    ),
    extension_aliases=MappingProxyType(
        {
            "md": "markdown_strict",
            "xml": "docbook",
        }
    ),
)
