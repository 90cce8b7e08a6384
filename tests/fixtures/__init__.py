"""Shared testing fixtures for the adoc_convert test suite."""

from .process import RecordingRunner, StartCall  # noqa: F401

__all__ = [
    "RecordingRunner",
    "StartCall",
]
