from pathlib import Path

from citechat.errors import PersistenceError
from citechat.store import FileKeyValueBackend, MemoryKeyValueBackend, StoredTopic, TopicStore


class _FullDisk(MemoryKeyValueBackend):
    def set(self, key: str, value: str) -> None:
        raise OSError(28, "No space left on device")


def test_save_and_load_round_trip(store: TopicStore) -> None:
    assert store.save("glazing", "Page 1:\nText", ["a.pdf", "b.pdf"]) is None

    assert store.load("glazing") == StoredTopic(source_text="Page 1:\nText", file_names=["a.pdf", "b.pdf"])


def test_entries_are_comma_joined(store: TopicStore, backend: MemoryKeyValueBackend) -> None:
    store.save("cnc", "text", ["one.pdf", "two.pdf"])

    assert backend.values == {"source_text_cnc": "text", "file_names_cnc": "one.pdf, two.pdf"}


def test_missing_key_means_absent(store: TopicStore, backend: MemoryKeyValueBackend) -> None:
    assert store.load("glazing") is None

    backend.set("source_text_glazing", "orphaned text")
    assert store.load("glazing") is None


def test_last_write_wins(store: TopicStore) -> None:
    store.save("glazing", "first", ["old.pdf"])
    store.save("glazing", "second", ["new.pdf"])

    assert store.load("glazing") == StoredTopic(source_text="second", file_names=["new.pdf"])


def test_clear_removes_both_entries(store: TopicStore, backend: MemoryKeyValueBackend) -> None:
    store.save("glazing", "text", ["a.pdf"])

    assert store.clear("glazing") is None
    assert store.load("glazing") is None
    assert backend.values == {}


def test_save_failure_is_returned_not_raised() -> None:
    store = TopicStore(_FullDisk())

    result = store.save("glazing", "text", ["a.pdf"])

    assert isinstance(result, PersistenceError)
    assert isinstance(result.__cause__, OSError)


def test_file_backend_survives_a_new_instance(tmp_path: Path) -> None:
    source_text = "Document start: a.pdf\n---\nPage 1:\nline\r\nwith  spacing\n---\nDocument end: a.pdf"
    TopicStore(FileKeyValueBackend(tmp_path)).save("doubleGlazing", source_text, ["a.pdf"])

    reopened = TopicStore(FileKeyValueBackend(tmp_path))

    assert reopened.load("doubleGlazing") == StoredTopic(source_text=source_text, file_names=["a.pdf"])


def test_file_backend_clear(tmp_path: Path) -> None:
    store = TopicStore(FileKeyValueBackend(tmp_path))
    store.save("cnc", "text", ["a.pdf"])

    store.clear("cnc")

    assert store.load("cnc") is None
    assert list(tmp_path.iterdir()) == []
