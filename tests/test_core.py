from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from pydantic import ValidationError

from tooldiff.config.store import SettingsStore
from tooldiff.runtime_logging import configure_runtime_logging


class SettingsStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        configure_runtime_logging(level="warning", log_file=self.root / "runtime.jsonl")

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_load_save_update_roundtrip(self) -> None:
        path = self.root / "settings.json"
        store = SettingsStore(path)

        settings = store.load()
        self.assertTrue(path.exists())
        self.assertEqual(settings.schema_version, 1)
        self.assertEqual(settings.diff.default_view_mode, "unified")
        self.assertFalse(settings.diff.confirm_actions)

        updated = store.update("diff.default_view_mode", "split")
        self.assertEqual(updated.diff.default_view_mode, "split")

        reloaded = store.load()
        self.assertEqual(reloaded.diff.default_view_mode, "split")

    def test_update_rejects_unknown_paths_and_bad_values(self) -> None:
        store = SettingsStore(self.root / "settings.json")
        with self.assertRaises(KeyError):
            store.update("diff.colour", "red")
        with self.assertRaises(KeyError):
            store.update("sidebar.mode", "auto")
        with self.assertRaises(ValidationError):
            store.update("diff.variant", "floating")

    def test_corrupt_file_is_preserved_and_defaults_used(self) -> None:
        path = self.root / "settings.json"
        path.write_text("{broken", encoding="utf-8")
        store = SettingsStore(path)

        settings = store.load()
        self.assertEqual(settings.diff.variant, "full")
        self.assertEqual(store.backup_path.read_text(encoding="utf-8"), "{broken")
        self.assertEqual(json.loads(path.read_text(encoding="utf-8"))["schema_version"], 1)

        events = [json.loads(line)["event"] for line in (self.root / "runtime.jsonl").read_text(encoding="utf-8").splitlines()]
        self.assertIn("settings.corrupt", events)

    def test_setting_items_are_flattened(self) -> None:
        settings = SettingsStore(self.root / "settings.json").load()
        items = dict(settings.setting_items())
        self.assertEqual(items["appearance.theme"], "textual-dark")
        self.assertEqual(items["diff.show_line_numbers"], "True")
        self.assertEqual(items["diff.max_height"], "None")


if __name__ == "__main__":
    unittest.main()
