# src/formats/handler_factory.py - v1
"""Factory: instantiate a format handler from a file_type tag."""

from __future__ import annotations

from transbatch.formats.base_handler import BaseFormatHandler
from transbatch.formats.text_handler import PlainTextHandler

# Registry maps file_type -> handler class.
_HANDLER_REGISTRY: dict[str, type[BaseFormatHandler]] = {}


def _register_defaults() -> None:
    for cls in [PlainTextHandler]:
        for file_type in cls().file_types:
            _HANDLER_REGISTRY[file_type.lower()] = cls


_register_defaults()


class UnsupportedFileTypeError(ValueError):
    """Raised when no handler is registered for a file type."""


def create_handler(file_type: str) -> BaseFormatHandler:
    """Create a handler for file_type.

    Raises:
        UnsupportedFileTypeError: If no handler is registered.
    """
    key = file_type.lower().lstrip(".")
    cls = _HANDLER_REGISTRY.get(key)
    if cls is None:
        raise UnsupportedFileTypeError(
            f"Unsupported file type {key!r}. "
            f"Supported: {', '.join(supported_file_types())}"
        )
    return cls()


def register_handler(file_type: str, cls: type[BaseFormatHandler]) -> None:
    """Register a custom handler for a file type."""
    _HANDLER_REGISTRY[file_type.lower().lstrip(".")] = cls


def supported_file_types() -> list[str]:
    return sorted(_HANDLER_REGISTRY)
