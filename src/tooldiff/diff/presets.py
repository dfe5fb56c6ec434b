"""Sample diff payloads and progressive streaming snapshots."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from pydantic import BaseModel, Field

from tooldiff.diff.schema import CodeDiff, ViewMode, parse_code_diff
from tooldiff.paths import package_presets_dir, user_presets_dir
from tooldiff.ui.diff import Variant


class PresetControls(BaseModel):
    variant: Variant = "full"
    default_view_mode: ViewMode = Field(default="unified", alias="defaultViewMode")


class DiffPreset(BaseModel):
    name: str
    description: str = ""
    controls: PresetControls = Field(default_factory=PresetControls)
    diff: CodeDiff


@dataclass(slots=True)
class PresetLoadResult:
    presets: list[DiffPreset]
    warnings: list[str]

    def get(self, name: str) -> DiffPreset | None:
        for preset in self.presets:
            if preset.name == name:
                return preset
        return None

    @property
    def names(self) -> list[str]:
        return [preset.name for preset in self.presets]


class PresetRegistry:
    """Packaged presets, overridden by same-named files in the user presets dir."""

    def __init__(self, package_data_dir: Path | None = None, custom_dir: Path | None = None) -> None:
        self.package_data_dir = package_data_dir or package_presets_dir()
        self.custom_dir = custom_dir or user_presets_dir()

    def load(self) -> PresetLoadResult:
        warnings: list[str] = []
        by_name: dict[str, DiffPreset] = {}

        for preset in self._iter_presets(self.package_data_dir, warnings):
            by_name[preset.name] = preset

        for preset in self._iter_presets(self.custom_dir, warnings):
            by_name[preset.name] = preset

        presets = sorted(by_name.values(), key=lambda item: item.name)
        return PresetLoadResult(presets=presets, warnings=warnings)

    def _iter_presets(self, root: Path, warnings: list[str]) -> Iterable[DiffPreset]:
        if not root.exists():
            return []

        loaded: list[DiffPreset] = []
        for path in sorted(root.glob("*.json")):
            try:
                payload = json.loads(path.read_text(encoding="utf-8"))
                loaded.append(_preset_from_payload(path.stem, payload))
            except Exception as exc:
                warnings.append(f"{path.name}: {exc}")
        return loaded


def _preset_from_payload(name: str, payload: dict[str, Any]) -> DiffPreset:
    return DiffPreset(
        name=name,
        description=str(payload.get("description", "")),
        controls=PresetControls.model_validate(payload.get("controls") or {}),
        diff=parse_code_diff(payload.get("diff")),
    )


@dataclass(frozen=True, slots=True)
class StreamingStage:
    snapshot: CodeDiff
    is_streaming: bool


def build_streaming_stages(diff: CodeDiff) -> list[StreamingStage]:
    """Replay how a diff arrives piece by piece.

    Stages: idle empty, streaming empty, then with header metadata revealed
    one stage per file, hunk and line appended, then summary, then receipt,
    then the finished diff with streaming off. Every intermediate snapshot
    is marked incomplete and keeps the diff id.
    """
    stages: list[StreamingStage] = []
    final = diff.to_wire()
    meta = {**final.get("meta", {}), "isComplete": False}

    working: dict[str, Any] = {"id": diff.id, "meta": meta, "files": []}

    def push(is_streaming: bool) -> None:
        snapshot = parse_code_diff(json.loads(json.dumps(working)))
        stages.append(StreamingStage(snapshot=snapshot, is_streaming=is_streaming))

    push(False)
    push(True)

    for key in ("title", "description", "capturedAtISO", "actions", "emphasisFileIds"):
        if key in final:
            working[key] = final[key]

    for file in final.get("files", []):
        file_working = {**file, "hunks": []}
        working["files"].append(file_working)
        push(True)

        for hunk in file.get("hunks", []):
            hunk_working = {**hunk, "lines": []}
            file_working["hunks"].append(hunk_working)
            push(True)

            for line in hunk.get("lines", []):
                hunk_working["lines"].append(line)
                push(True)

    if "summary" in final:
        working["summary"] = final["summary"]
        push(True)

    if "receipt" in final:
        working["receipt"] = final["receipt"]
        push(True)

    stages.append(StreamingStage(snapshot=diff, is_streaming=False))
    return stages

