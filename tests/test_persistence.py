"""Tests for the durable key-value stores."""

from __future__ import annotations

import json
import os
from pathlib import Path
import stat
import tempfile
import unittest

from ai_playground.persistence import JsonFileStore, MemoryStore


class MemoryStoreTests(unittest.TestCase):
    """Validate the in-process store."""

    def test_set_get_remove(self) -> None:
        store = MemoryStore()
        self.assertIsNone(store.get("k"))
        store.set("k", "v")
        self.assertEqual(store.get("k"), "v")
        store.remove("k")
        self.assertIsNone(store.get("k"))

    def test_remove_missing_key_is_noop(self) -> None:
        store = MemoryStore({"a": "1"})
        store.remove("missing")
        self.assertEqual(store.get("a"), "1")


class JsonFileStoreTests(unittest.TestCase):
    """Validate file-backed storage and corruption handling."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "state" / "storage.json"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_values_survive_a_new_instance(self) -> None:
        JsonFileStore(self.path).set("greeting", "hello")
        self.assertEqual(JsonFileStore(self.path).get("greeting"), "hello")

    def test_missing_file_reads_as_empty(self) -> None:
        store = JsonFileStore(self.path)
        self.assertIsNone(store.get("anything"))
        self.assertFalse(self.path.exists())

    def test_remove_deletes_only_that_key(self) -> None:
        store = JsonFileStore(self.path)
        store.set("a", "1")
        store.set("b", "2")
        store.remove("a")
        self.assertEqual(
            json.loads(self.path.read_text(encoding="utf-8")), {"b": "2"}
        )

    def test_corrupt_file_reads_as_empty(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")
        store = JsonFileStore(self.path)
        with self.assertLogs("ai_playground.persistence", level="WARNING"):
            self.assertIsNone(store.get("a"))

    def test_non_string_values_are_ignored(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps({"a": 1, "b": "two"}), encoding="utf-8")
        store = JsonFileStore(self.path)
        self.assertIsNone(store.get("a"))
        self.assertEqual(store.get("b"), "two")

    @unittest.skipUnless(os.name == "posix", "POSIX permissions only")
    def test_file_and_directory_are_private(self) -> None:
        JsonFileStore(self.path).set("a", "1")
        self.assertEqual(stat.S_IMODE(self.path.stat().st_mode), 0o600)
        self.assertEqual(stat.S_IMODE(self.path.parent.stat().st_mode), 0o700)


if __name__ == "__main__":
    unittest.main()
