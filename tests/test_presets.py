from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from tooldiff.diff.presets import PresetRegistry, build_streaming_stages
from tooldiff.diff.receipt import is_frozen
from tooldiff.diff.schema import parse_code_diff
from tooldiff.runtime_logging import configure_runtime_logging


class PresetRegistryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.custom_dir = Path(self.tmp.name) / "presets"
        configure_runtime_logging(level="warning", log_file=Path(self.tmp.name) / "runtime.jsonl")

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_packaged_presets_load(self) -> None:
        loaded = PresetRegistry(custom_dir=self.custom_dir).load()
        self.assertEqual(loaded.warnings, [])
        self.assertEqual(loaded.names, ["receipt-state", "workspace-sync"])

        workspace = loaded.get("workspace-sync")
        assert workspace is not None
        self.assertFalse(is_frozen(workspace.diff))
        self.assertEqual(workspace.controls.default_view_mode, "unified")
        self.assertEqual(workspace.diff.emphasized, frozenset({"file-session-store"}))

        receipt = loaded.get("receipt-state")
        assert receipt is not None
        self.assertTrue(is_frozen(receipt.diff))
        self.assertEqual(receipt.diff.receipt.summary, "Applied cleanly to working tree")

    def test_custom_preset_overrides_by_name(self) -> None:
        self.custom_dir.mkdir(parents=True)
        payload = {"description": "mine", "diff": {"id": "custom", "files": []}}
        (self.custom_dir / "workspace-sync.json").write_text(json.dumps(payload), encoding="utf-8")

        loaded = PresetRegistry(custom_dir=self.custom_dir).load()
        preset = loaded.get("workspace-sync")
        assert preset is not None
        self.assertEqual(preset.description, "mine")
        self.assertEqual(preset.diff.id, "custom")
        self.assertEqual(preset.controls.variant, "full")

    def test_invalid_custom_preset_is_a_warning(self) -> None:
        self.custom_dir.mkdir(parents=True)
        (self.custom_dir / "broken.json").write_text('{"diff": {"files": []}}', encoding="utf-8")
        (self.custom_dir / "garbled.json").write_text("{", encoding="utf-8")

        loaded = PresetRegistry(custom_dir=self.custom_dir).load()
        self.assertIsNone(loaded.get("broken"))
        self.assertEqual(len(loaded.warnings), 2)
        self.assertTrue(any(warning.startswith("broken.json:") for warning in loaded.warnings))
        self.assertIn("workspace-sync", loaded.names)


class StreamingStageTests(unittest.TestCase):
    def setUp(self) -> None:
        registry = PresetRegistry(custom_dir=Path(tempfile.gettempdir()) / "tooldiff-no-presets")
        loaded = registry.load()
        self.workspace = loaded.get("workspace-sync").diff  # type: ignore[union-attr]
        self.receipt = loaded.get("receipt-state").diff  # type: ignore[union-attr]

    def test_stage_sequence(self) -> None:
        diff = self.workspace
        stages = build_streaming_stages(diff)

        hunks = sum(len(file.hunks) for file in diff.files)
        lines = sum(len(hunk.lines) for file in diff.files for hunk in file.hunks)
        expected = 2 + len(diff.files) + hunks + lines + 1 + 1
        self.assertEqual(len(stages), expected)

        self.assertFalse(stages[0].is_streaming)
        self.assertEqual(stages[0].snapshot.files, [])
        self.assertIsNone(stages[0].snapshot.title)
        self.assertTrue(stages[1].is_streaming)
        self.assertEqual(stages[1].snapshot.files, [])

        self.assertEqual(stages[2].snapshot.title, diff.title)
        self.assertEqual(len(stages[2].snapshot.files), 1)
        self.assertEqual(stages[2].snapshot.files[0].hunks, [])
        self.assertEqual(stages[3].snapshot.files[0].hunks[0].lines, [])

        self.assertIsNone(stages[-3].snapshot.summary)
        self.assertIsNotNone(stages[-2].snapshot.summary)
        self.assertIs(stages[-1].snapshot, diff)
        self.assertFalse(stages[-1].is_streaming)

    def test_intermediate_stages_are_incomplete_and_share_id(self) -> None:
        stages = build_streaming_stages(self.workspace)
        for stage in stages[:-1]:
            self.assertEqual(stage.snapshot.id, self.workspace.id)
            self.assertIs(stage.snapshot.meta.is_complete, False)
        self.assertTrue(stages[-1].snapshot.meta.is_complete)

    def test_receipt_arrives_last(self) -> None:
        stages = build_streaming_stages(self.receipt)
        self.assertIsNone(stages[-3].snapshot.receipt)
        self.assertIsNotNone(stages[-2].snapshot.receipt)
        self.assertTrue(stages[-2].is_streaming)

    def test_empty_diff(self) -> None:
        stages = build_streaming_stages(parse_code_diff({"id": "empty"}))
        self.assertEqual(len(stages), 3)
        self.assertEqual([stage.is_streaming for stage in stages], [False, True, False])
        self.assertIsNone(stages[-1].snapshot.meta)


if __name__ == "__main__":
    unittest.main()
