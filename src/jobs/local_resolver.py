# src/jobs/local_resolver.py - v1
"""File resolver for local paths and file:// URLs."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import unquote, urlparse

from transbatch.batch.collaborators import (
    BaseFileResolver,
    FileResolutionError,
    ResolvedFile,
)
from transbatch.formats.handler_factory import supported_file_types


def path_from_url(url: str) -> Path:
    """Map a local path or file:// URL to a Path.

    Raises:
        FileResolutionError: For other URL schemes.
    """
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path)).expanduser()
    # Single letters are Windows drive letters, not schemes.
    if parsed.scheme and len(parsed.scheme) > 1:
        raise FileResolutionError(f"Invalid URL: unsupported scheme {parsed.scheme!r}")
    return Path(url).expanduser()


class LocalFileResolver(BaseFileResolver):
    """Resolves files on the local filesystem; file_type is the extension."""

    def __init__(self, file_types: list[str] | None = None) -> None:
        self.file_types = set(file_types or supported_file_types())

    async def validate(self, url: str) -> bool:
        if not url or not url.strip():
            return False
        try:
            path_from_url(url.strip())
        except FileResolutionError:
            return False
        return True

    async def resolve(self, url: str) -> ResolvedFile:
        path = path_from_url(url.strip())
        if not path.exists():
            raise FileResolutionError(f"File not found: {path}")
        if not path.is_file():
            raise FileResolutionError(f"Not a file: {path}")
        file_type = path.suffix.lower().lstrip(".")
        if file_type not in self.file_types:
            raise FileResolutionError(
                f"Unsupported file type {file_type or '(none)'!r} for {path.name}"
            )
        return ResolvedFile(
            source_url=url,
            file_id=str(path.resolve()),
            file_name=path.name,
            file_type=file_type,
        )
