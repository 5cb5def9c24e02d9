"""Ephemeral handles that let a renderer load an uploaded file's original bytes."""
from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Final, Optional
from uuid import uuid4

LOGGER = logging.getLogger(__name__)

_FILENAME_SAFE_CHARS_RE: Final[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9._-]+")


def _sanitize_filename(filename: str) -> str:
    """Return a filesystem-safe filename preserving the extension when possible."""
    sanitized = Path(filename or "upload").name
    sanitized = _FILENAME_SAFE_CHARS_RE.sub("_", sanitized)
    return sanitized.strip("._") or "upload"


class ViewableResource:
    """Temporary file holding one upload's bytes.

    Handles are owned by a single topic and must be released explicitly;
    they are never rebuilt from persisted state.
    """

    def __init__(self, file_name: str, path: Path, mime_type: Optional[str] = None) -> None:
        self.file_name = file_name
        self.mime_type = mime_type
        self._path: Optional[Path] = path

    @classmethod
    def from_bytes(
        cls,
        file_name: str,
        data: bytes,
        mime_type: Optional[str] = None,
        directory: Optional[Path] = None,
    ) -> "ViewableResource":
        sanitized = _sanitize_filename(file_name)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f"citechat-{uuid4().hex[:8]}-",
            suffix=f"-{sanitized}",
            dir=str(directory) if directory else None,
        )
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        return cls(file_name, Path(tmp_name), mime_type)

    @property
    def released(self) -> bool:
        return self._path is None

    @property
    def path(self) -> Path:
        if self._path is None:
            raise RuntimeError(f"Resource for {self.file_name} has been released")
        return self._path

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def release(self) -> None:
        """Delete the backing file. Safe to call more than once."""
        if self._path is None:
            return
        try:
            self._path.unlink(missing_ok=True)
        except OSError as error:
            LOGGER.warning("Failed to delete resource file %s: %s", self._path, error)
        self._path = None

    def __repr__(self) -> str:
        state = "released" if self.released else str(self._path)
        return f"ViewableResource({self.file_name!r}, {state})"
