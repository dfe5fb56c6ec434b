from __future__ import annotations

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from tooldiff.cli import main
from tooldiff.config.models import AppSettings
from tooldiff.runtime_logging import configure_runtime_logging

VALID = {
    "id": "cli-diff",
    "title": "CLI sample",
    "files": [
        {
            "id": "f1",
            "path": "pkg/core.py",
            "status": "modified",
            "hunks": [
                {
                    "id": "h1",
                    "lines": [
                        {"id": "l1", "kind": "context", "content": "def run():"},
                        {"id": "l2", "kind": "remove", "content": "    return old()"},
                        {"id": "l3", "kind": "add", "content": "    return new()"},
                    ],
                }
            ],
        }
    ],
}


class CliE2ETests(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = CliRunner()
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        configure_runtime_logging(level="warning", log_file=self.root / "runtime.jsonl")
        patcher = patch("tooldiff.diff.presets.user_presets_dir", return_value=self.root / "presets")
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def _write(self, name: str, payload: object) -> str:
        path = self.root / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return str(path)

    def test_help(self) -> None:
        result = self.runner.invoke(main, ["--help"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Commands:", result.output)
        for command in ("view", "render", "validate", "presets"):
            self.assertIn(command, result.output)

    def test_about(self) -> None:
        result = self.runner.invoke(main, ["about"])
        self.assertEqual(result.exit_code, 0)
        payload = json.loads(result.output)
        self.assertEqual(payload["name"], "tooldiff")
        self.assertIn("version", payload)

    def test_settings_path(self) -> None:
        result = self.runner.invoke(main, ["settings-path"])
        self.assertEqual(result.exit_code, 0)
        self.assertTrue(result.output.strip().endswith("settings.json"))

    def test_presets_lists_packaged_names(self) -> None:
        result = self.runner.invoke(main, ["presets"])
        self.assertEqual(result.exit_code, 0)
        names = [line.split("\t")[0] for line in result.output.strip().splitlines()]
        self.assertEqual(names, ["receipt-state", "workspace-sync"])

    def test_validate_accepts_good_payload(self) -> None:
        result = self.runner.invoke(main, ["validate", self._write("good.json", VALID)])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.output.strip(), "ok: cli-diff (1 file(s), 3 line(s), interactive)")

    def test_validate_lists_every_issue(self) -> None:
        bad = json.loads(json.dumps(VALID))
        del bad["files"][0]["path"]
        bad["files"][0]["hunks"][0]["lines"][1]["kind"] = "moved"
        result = self.runner.invoke(main, ["validate", self._write("bad.json", bad)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("files.0.path", result.output)
        self.assertIn("files.0.hunks.0.lines.1.kind", result.output)

    def test_validate_missing_file(self) -> None:
        result = self.runner.invoke(main, ["validate", str(self.root / "nope.json")])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("File not found", result.output)

    def test_render_payload_in_both_modes(self) -> None:
        path = self._write("good.json", VALID)
        unified = self.runner.invoke(main, ["render", path, "--width", "120"])
        self.assertEqual(unified.exit_code, 0)
        self.assertIn("CLI sample", unified.output)
        self.assertIn("return new()", unified.output)

        split = self.runner.invoke(main, ["render", path, "--mode", "split", "--width", "160"])
        self.assertEqual(split.exit_code, 0)
        paired = next(line for line in split.output.splitlines() if "return old()" in line)
        self.assertIn("return new()", paired)

    def test_render_preset(self) -> None:
        result = self.runner.invoke(main, ["render", "--preset", "receipt-state", "--width", "160"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Applied cleanly to working tree", result.output)
        self.assertIn("Diff is now read-only.", result.output)

    def test_render_layout_fault_is_reported_on_one_line(self) -> None:
        class Broken:
            def __rich_console__(self, console, options):  # noqa: ANN001, ANN204
                raise ZeroDivisionError("layout")

        path = self._write("good.json", VALID)
        with patch("tooldiff.cli.render_code_diff", return_value=Broken()):
            result = self.runner.invoke(main, ["render", path, "--width", "120"])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error: failed to render diff cli-diff: layout", result.output)
        self.assertNotIn("Traceback", result.output)
        log = (self.root / "runtime.jsonl").read_text(encoding="utf-8")
        self.assertIn('"event": "render.fault"', log)

    def test_render_rejects_path_and_preset_together(self) -> None:
        path = self._write("good.json", VALID)
        result = self.runner.invoke(main, ["render", path, "--preset", "workspace-sync"])
        self.assertEqual(result.exit_code, 2)

    def test_unknown_preset(self) -> None:
        result = self.runner.invoke(main, ["render", "--preset", "nope"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Unknown preset: nope", result.output)

    def test_view_constructs_app(self) -> None:
        with (
            patch.dict(os.environ, {"TOOLDIFF_LOG_LEVEL": "off"}),
            patch("tooldiff.app.SettingsStore.load", return_value=AppSettings()),
            patch("tooldiff.app.DiffWorkbenchApp.run", return_value=None) as run_mock,
        ):
            result = self.runner.invoke(main, ["view", self._write("good.json", VALID), "--split", "--confirm"])

        self.assertEqual(result.exit_code, 0)
        run_mock.assert_called_once()

    def test_view_unknown_preset_fails(self) -> None:
        with (
            patch.dict(os.environ, {"TOOLDIFF_LOG_LEVEL": "off"}),
            patch("tooldiff.app.SettingsStore.load", return_value=AppSettings()),
        ):
            result = self.runner.invoke(main, ["view", "--preset", "nope"])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Unknown preset: nope", result.output)


if __name__ == "__main__":
    unittest.main()
