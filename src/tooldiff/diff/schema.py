"""Wire contract for code-diff payloads produced by tools and LLMs."""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from tooldiff.runtime_logging import get_runtime_logger

LineKind = Literal["context", "add", "remove"]
HighlightKind = Literal["add", "remove", "change"]
FileStatus = Literal["modified", "added", "deleted", "renamed"]
ActionTone = Literal["primary", "neutral", "danger"]
ReceiptKind = Literal["apply", "revert", "comment", "custom"]
ReceiptStatus = Literal["success", "partial", "failed", "cancelled"]
ViewMode = Literal["unified", "split"]


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class DiffAction(_WireModel):
    id: str
    label: str
    tone: ActionTone | None = None
    shortcut: str | None = None


class HighlightRange(_WireModel):
    start: StrictInt = Field(ge=0)
    length: StrictInt = Field(ge=0)
    kind: HighlightKind | None = None


class DiffLine(_WireModel):
    id: str
    kind: LineKind
    line_number: StrictInt | None = Field(default=None, gt=0)
    content: str
    highlight_ranges: list[HighlightRange] | None = None
    meta: dict[str, str] | None = None
    actions: list[DiffAction] | None = None


class DiffHunk(_WireModel):
    id: str
    header: str | None = None
    old_start_line: StrictInt | None = Field(default=None, gt=0)
    new_start_line: StrictInt | None = Field(default=None, gt=0)
    summary: str | None = None
    is_collapsed: bool | None = None
    lines: list[DiffLine] = Field(default_factory=list)
    actions: list[DiffAction] | None = None

    @field_validator("lines")
    @classmethod
    def _unique_line_ids(cls, lines: list[DiffLine]) -> list[DiffLine]:
        _ensure_unique("line", [line.id for line in lines])
        return lines


class DiffFile(_WireModel):
    id: str
    path: str
    old_path: str | None = None
    status: FileStatus
    language: str | None = None
    insertions: StrictInt | None = Field(default=None, ge=0)
    deletions: StrictInt | None = Field(default=None, ge=0)
    is_collapsed: bool | None = None
    hunks: list[DiffHunk] = Field(default_factory=list)
    actions: list[DiffAction] | None = None

    @field_validator("hunks")
    @classmethod
    def _unique_hunk_ids(cls, hunks: list[DiffHunk]) -> list[DiffHunk]:
        _ensure_unique("hunk", [hunk.id for hunk in hunks])
        return hunks


class DiffReceipt(_WireModel):
    kind: ReceiptKind | None = None
    status: ReceiptStatus
    summary: str
    created_at_iso: str = Field(alias="createdAtISO")
    file_ids: list[str] | None = None
    hunk_ids: list[str] | None = None


class DiffMeta(_WireModel):
    base_label: str | None = None
    head_label: str | None = None
    base_commit: str | None = None
    head_commit: str | None = None
    repository: str | None = None
    is_complete: bool | None = None


class DiffSummary(_WireModel):
    files_changed: StrictInt = Field(ge=0)
    insertions: StrictInt = Field(ge=0)
    deletions: StrictInt = Field(ge=0)


class CodeDiff(_WireModel):
    id: str
    title: str | None = None
    description: str | None = None
    meta: DiffMeta | None = None
    captured_at_iso: str | None = Field(default=None, alias="capturedAtISO")
    summary: DiffSummary | None = None
    files: list[DiffFile] = Field(default_factory=list)
    actions: list[DiffAction] | None = None
    receipt: DiffReceipt | None = None
    emphasis_file_ids: list[str] | None = None

    @field_validator("files")
    @classmethod
    def _unique_file_ids(cls, files: list[DiffFile]) -> list[DiffFile]:
        _ensure_unique("file", [file.id for file in files])
        return files

    def file_by_id(self, file_id: str) -> DiffFile | None:
        for file in self.files:
            if file.id == file_id:
                return file
        return None

    @property
    def emphasized(self) -> frozenset[str]:
        return frozenset(self.emphasis_file_ids or ())


def _ensure_unique(entity: str, ids: list[str]) -> None:
    duplicates = sorted(item for item, count in Counter(ids).items() if count > 1)
    if duplicates:
        raise ValueError(f"duplicate {entity} id(s): {', '.join(duplicates)}")


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    location: str
    message: str

    def __str__(self) -> str:
        return f"{self.location}: {self.message}"


class DiffValidationError(ValueError):
    """Raised once at the trust boundary with every violation found."""

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = issues
        count = len(issues)
        lines = [f"invalid code diff payload ({count} issue{'' if count == 1 else 's'})"]
        lines.extend(f"  - {issue}" for issue in issues)
        super().__init__("\n".join(lines))

    @property
    def locations(self) -> list[str]:
        return [issue.location for issue in self.issues]

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "DiffValidationError":
        issues = []
        for error in exc.errors(include_url=False):
            location = ".".join(str(part) for part in error["loc"]) or "<root>"
            message = error["msg"]
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            issues.append(ValidationIssue(location=location, message=message))
        return cls(issues)


def parse_code_diff(raw: Any) -> CodeDiff:
    """Validate an untrusted payload (already decoded from JSON)."""
    if isinstance(raw, CodeDiff):
        return raw
    try:
        return CodeDiff.model_validate(raw)
    except PydanticValidationError as exc:
        error = DiffValidationError.from_pydantic(exc)
        get_runtime_logger().warning(
            "validation.failed",
            issue_count=len(error.issues),
            locations=error.locations,
        )
        raise error from exc


def parse_code_diff_json(text: str | bytes) -> CodeDiff:
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        get_runtime_logger().warning("validation.failed", issue_count=1, locations=["<root>"])
        raise DiffValidationError(
            [ValidationIssue(location="<root>", message=f"invalid JSON: {exc.msg}")]
        ) from exc
    return parse_code_diff(raw)


def load_code_diff(path: str | Path) -> CodeDiff:
    return parse_code_diff_json(Path(path).expanduser().read_text(encoding="utf-8"))
