"""Durable key-value persistence of a topic's source text and file names."""
from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Final, List, Optional, Protocol, Sequence

from citechat.errors import PersistenceError
from citechat.telemetry import emit_persistence_error

LOGGER = logging.getLogger(__name__)

_SOURCE_TEXT_PREFIX: Final[str] = "source_text_"
_FILE_NAMES_PREFIX: Final[str] = "file_names_"
FILE_NAME_SEPARATOR: Final[str] = ", "
_KEY_SAFE_CHARS_RE: Final[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9._-]+")


class KeyValueBackend(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryKeyValueBackend:
    """Dictionary backed storage for tests and ephemeral runs."""

    def __init__(self) -> None:
        self.values: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def delete(self, key: str) -> None:
        self.values.pop(key, None)


def _sanitize_key(key: str) -> str:
    """Return a filesystem-safe file name for a storage key."""
    sanitized = _KEY_SAFE_CHARS_RE.sub("_", key).strip("._")
    if not sanitized:
        raise ValueError(f"Invalid storage key: {key!r}")
    return sanitized


class FileKeyValueBackend:
    """Stores each key as a UTF-8 file inside ``root``."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        return self._root / f"{_sanitize_key(key)}.txt"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            # Bytes, not read_text: universal newlines would rewrite "\r\n".
            return path.read_bytes().decode("utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        destination = self._path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self._root, prefix=".tmp-", suffix=".txt")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(value)
            os.replace(tmp_name, destination)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


@dataclass(slots=True, frozen=True)
class StoredTopic:
    """Persisted grounding of a topic."""

    source_text: str
    file_names: List[str]


class TopicStore:
    """Last-write-wins persistence keyed by topic identifier.

    Writes are best effort: failures are logged and handed back as a
    :class:`PersistenceError` value instead of being raised, because the
    in-memory topic state stays authoritative for the running process.
    """

    def __init__(self, backend: KeyValueBackend) -> None:
        self._backend = backend

    def save(self, topic_id: str, source_text: str, file_names: Sequence[str]) -> Optional[PersistenceError]:
        try:
            self._backend.set(_SOURCE_TEXT_PREFIX + topic_id, source_text)
            self._backend.set(_FILE_NAMES_PREFIX + topic_id, FILE_NAME_SEPARATOR.join(file_names))
        except (OSError, ValueError) as error:
            emit_persistence_error(topic_id=topic_id, operation="save", error=error)
            return PersistenceError(f"Could not persist topic {topic_id}: {error}", cause=error)
        LOGGER.debug("Persisted topic %s (%d chars)", topic_id, len(source_text))
        return None

    def load(self, topic_id: str) -> Optional[StoredTopic]:
        try:
            source_text = self._backend.get(_SOURCE_TEXT_PREFIX + topic_id)
            file_names = self._backend.get(_FILE_NAMES_PREFIX + topic_id)
        except (OSError, ValueError) as error:
            emit_persistence_error(topic_id=topic_id, operation="load", error=error)
            return None
        if not source_text or not file_names:
            return None
        return StoredTopic(source_text=source_text, file_names=file_names.split(FILE_NAME_SEPARATOR))

    def clear(self, topic_id: str) -> Optional[PersistenceError]:
        try:
            self._backend.delete(_SOURCE_TEXT_PREFIX + topic_id)
            self._backend.delete(_FILE_NAMES_PREFIX + topic_id)
        except (OSError, ValueError) as error:
            emit_persistence_error(topic_id=topic_id, operation="clear", error=error)
            return PersistenceError(f"Could not clear topic {topic_id}: {error}", cause=error)
        return None


__all__ = [
    "FILE_NAME_SEPARATOR",
    "FileKeyValueBackend",
    "KeyValueBackend",
    "MemoryKeyValueBackend",
    "StoredTopic",
    "TopicStore",
]
