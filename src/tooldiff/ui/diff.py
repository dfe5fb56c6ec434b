"""Rich rendering of validated code diffs in unified and split layouts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Literal, Sequence, TypeVar, assert_never

from rich import box
from rich.console import Group, RenderableType
from rich.padding import Padding
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tooldiff.diff.highlight import render_highlights
from tooldiff.diff.pairing import build_split_rows
from tooldiff.diff.receipt import describe_receipt, format_iso_timestamp, is_frozen
from tooldiff.diff.schema import (
    ActionTone,
    CodeDiff,
    DiffAction,
    DiffFile,
    DiffHunk,
    DiffLine,
    DiffReceipt,
    FileStatus,
    HighlightKind,
    HighlightRange,
    LineKind,
    ReceiptStatus,
    ViewMode,
)
from tooldiff.diff.view_state import DiffViewState
from tooldiff.runtime_logging import RuntimeLogger, get_runtime_logger

T = TypeVar("T")
Variant = Literal["inline", "full"]

VIEW_MODE_LABELS: dict[ViewMode, str] = {
    "unified": "Unified",
    "split": "Split",
}

FILE_STATUS_DETAILS: dict[FileStatus, tuple[str, str]] = {
    "added": ("Added", "bold green"),
    "deleted": ("Deleted", "bold red"),
    "modified": ("Modified", "bold"),
    "renamed": ("Renamed", "bold cyan"),
}

ACTION_TONE_STYLES: dict[ActionTone | None, str] = {
    "primary": "bold white on dark_blue",
    "neutral": "white on grey30",
    "danger": "bold white on dark_red",
    None: "white on grey23",
}

RECEIPT_STATUS_STYLES: dict[ReceiptStatus, str] = {
    "success": "bold green",
    "partial": "bold yellow",
    "failed": "bold red",
    "cancelled": "dim",
}

HIGHLIGHT_STYLES: dict[HighlightKind | None, str] = {
    "add": "on #2f6f3f",
    "remove": "on #7a2d35",
    "change": "on #7a6418",
    None: "on #8a7a2a",
}

SKELETON_ROWS = 5


@dataclass(frozen=True, slots=True)
class LineMarker:
    symbol: str
    style: str
    background: str
    label: str


def line_marker(kind: LineKind) -> LineMarker:
    if kind == "add":
        return LineMarker(symbol="+", style="bold green", background="on #12261e", label="Added")
    if kind == "remove":
        return LineMarker(symbol="−", style="bold red", background="on #2d1517", label="Removed")
    if kind == "context":
        return LineMarker(symbol=" ", style="dim", background="", label="Context")
    assert_never(kind)


@dataclass(slots=True)
class DiffDisplayOptions:
    view_mode: ViewMode = "unified"
    show_line_numbers: bool = True
    wrap_lines: bool = False
    max_height: int | None = None
    is_streaming: bool = False
    variant: Variant = "inline"


def is_loading_more(diff: CodeDiff, options: DiffDisplayOptions) -> bool:
    return options.is_streaming and not (diff.meta is not None and diff.meta.is_complete is True)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def highlight_text(content: str, ranges: Sequence[HighlightRange] | None, style: str = "") -> Text:
    text = Text(style=style)
    for segment in render_highlights(content, ranges):
        if segment.highlighted:
            text.append(segment.text, style=HIGHLIGHT_STYLES[segment.kind])
        else:
            text.append(segment.text)
    return text


def line_label(line: DiffLine) -> str:
    marker = line_marker(line.kind)
    number = f" {line.line_number}" if line.line_number else ""
    content = line.content if len(line.content) <= 140 else f"{line.content[:137]}…"
    return f"{marker.label} line{number}: {content}"


def header_meta_parts(diff: CodeDiff) -> list[str]:
    parts: list[str] = []
    meta = diff.meta
    if meta is not None and (meta.base_label or meta.head_label):
        parts.append(" → ".join(label for label in (meta.base_label, meta.head_label) if label))
    if meta is not None and meta.repository:
        parts.append(meta.repository)
    captured = format_iso_timestamp(diff.captured_at_iso)
    if captured:
        parts.append(f"As of {captured}")
    return parts


def view_mode_indicator(current: ViewMode, *, disabled: bool = False) -> Text:
    text = Text()
    for mode, label in VIEW_MODE_LABELS.items():
        if mode == current:
            style = "dim reverse" if disabled else "bold reverse"
        else:
            style = "dim"
        text.append(f" {label} ", style=style)
    return text


def render_header(
    diff: CodeDiff,
    options: DiffDisplayOptions,
    *,
    with_view_mode: bool = True,
) -> RenderableType:
    title = Table.grid(expand=True)
    title.add_column(ratio=1)
    title.add_column(justify="right")
    title.add_row(
        Text(diff.title or "Code changes", style="bold"),
        view_mode_indicator(options.view_mode, disabled=is_frozen(diff)) if with_view_mode else Text(""),
    )

    rows: list[RenderableType] = [title]
    if diff.description:
        rows.append(Text(diff.description, style="dim"))
    meta_parts = header_meta_parts(diff)
    if meta_parts:
        rows.append(Text(" · ".join(meta_parts), style="dim italic"))
    if is_loading_more(diff, options):
        rows.append(Text("Still loading more changes…", style="dim"))
    return Group(*rows)


def render_receipt_banner(receipt: DiffReceipt) -> RenderableType:
    description = describe_receipt(receipt)
    text = Text()
    text.append(f" {description.status_label} ", style=f"{RECEIPT_STATUS_STYLES[receipt.status]} reverse")
    text.append(f" {description.headline} ", style="bold")
    text.append(description.summary)
    if description.affected_label:
        text.append(f" · {description.affected_label}", style="dim")
    text.append(" · Diff is now read-only.", style="dim")
    if description.created_at:
        text.append(f" · {description.created_at}", style="dim")
    return Panel(text, border_style="yellow", box=box.ROUNDED)


def render_summary(diff: CodeDiff, options: DiffDisplayOptions) -> Text | None:
    text = Text()
    if diff.summary is not None:
        text.append(f"{_plural(diff.summary.files_changed, 'file')} changed", style="bold")
        text.append(f" +{diff.summary.insertions}", style="bold green")
        text.append(f" −{diff.summary.deletions}", style="bold red")
    elif is_loading_more(diff, options):
        text.append("░░░░░░ ", style="dim")
        text.append("Calculating summary…", style="dim")
    if diff.receipt is not None and diff.receipt.summary:
        if text:
            text.append("  ")
        text.append(diff.receipt.summary, style="dim")
    return text if text else None


def render_action_strip(actions: Sequence[DiffAction] | None, *, frozen: bool) -> Text | None:
    if not actions:
        return None
    text = Text()
    for index, action in enumerate(actions):
        if index:
            text.append(" ")
        style = "dim strike" if frozen else ACTION_TONE_STYLES[action.tone]
        text.append(f" {action.label} ", style=style)
        if action.shortcut:
            text.append(f" {action.shortcut}", style="dim")
    if frozen:
        text.append("  (disabled)", style="dim")
    return text


def file_summary(file: DiffFile, *, loading: bool) -> str:
    if file.hunks:
        summary = _plural(len(file.hunks), "hunk")
    elif loading:
        summary = "Loading hunks…"
    else:
        summary = "No hunks"
    if (file.insertions or 0) > 0:
        summary += f" · +{file.insertions}"
    if (file.deletions or 0) > 0:
        summary += f" · −{file.deletions}"
    return summary


def render_file_title(file: DiffFile, *, collapsed: bool) -> Text:
    label, style = FILE_STATUS_DETAILS[file.status]
    text = Text()
    text.append("▸ " if collapsed else "▾ ")
    text.append(f"[{label}] ", style=style)
    text.append(file.path, style="bold")
    if file.old_path and file.old_path != file.path:
        text.append(f" ← {file.old_path}", style="dim")
    return text


def render_hunk_title(hunk: DiffHunk, *, collapsed: bool) -> Text:
    text = Text()
    text.append("▸ " if collapsed else "▾ ")
    text.append(hunk.header or "Hunk", style="cyan")
    if hunk.summary:
        text.append(f"  {hunk.summary}")
    return text


def skeleton(rows: int = SKELETON_ROWS) -> Text:
    return Text("\n".join("░" * 48 for _ in range(rows)), style="dim")


def line_action_hint(line: DiffLine | None, *, frozen: bool) -> Text | None:
    if line is None or not line.actions:
        return None
    text = Text()
    for action in line.actions:
        text.append(f" ⋯ {action.label}", style="dim strike" if frozen else "italic")
        if action.shortcut:
            text.append(f" [{action.shortcut}]", style="dim")
    return text


def _content_cell(line: DiffLine | None, *, frozen: bool) -> Text:
    if line is None:
        return Text(" ", style="on grey11")
    text = highlight_text(line.content, line.highlight_ranges, style=line_marker(line.kind).background)
    hint = line_action_hint(line, frozen=frozen)
    if hint is not None:
        text.append_text(hint)
    return text


def _lines_table() -> Table:
    return Table(
        box=None,
        show_header=False,
        show_edge=False,
        pad_edge=False,
        padding=(0, 1),
        expand=True,
    )


def _add_side_columns(table: Table, options: DiffDisplayOptions) -> None:
    table.add_column(width=1, no_wrap=True)
    if options.show_line_numbers:
        table.add_column(width=5, justify="right", style="dim", no_wrap=True)
    table.add_column(
        ratio=1,
        no_wrap=not options.wrap_lines,
        overflow="fold" if options.wrap_lines else "ellipsis",
    )


def _side_cells(line: DiffLine | None, options: DiffDisplayOptions, *, frozen: bool) -> list[RenderableType]:
    marker = line_marker(line.kind) if line is not None else None
    cells: list[RenderableType] = [Text(marker.symbol if marker else " ", style=marker.style if marker else "dim")]
    if options.show_line_numbers:
        number = line.line_number if line is not None and line.line_number else ""
        cells.append(Text(str(number)))
    cells.append(_content_cell(line, frozen=frozen))
    return cells


def render_unified_lines(lines: Sequence[DiffLine], options: DiffDisplayOptions, *, frozen: bool) -> Table:
    table = _lines_table()
    _add_side_columns(table, options)
    for line in lines:
        table.add_row(*_side_cells(line, options, frozen=frozen))
    return table


def render_split_lines(lines: Sequence[DiffLine], options: DiffDisplayOptions, *, frozen: bool) -> Table:
    table = _lines_table()
    _add_side_columns(table, options)
    _add_side_columns(table, options)
    for row in build_split_rows(lines):
        table.add_row(
            *_side_cells(row.left, options, frozen=frozen),
            *_side_cells(row.right, options, frozen=frozen),
        )
    return table


def render_hunk_lines(
    hunk: DiffHunk,
    options: DiffDisplayOptions,
    *,
    frozen: bool,
    loading: bool,
) -> RenderableType:
    if hunk.lines:
        if options.view_mode == "split":
            return render_split_lines(hunk.lines, options, frozen=frozen)
        return render_unified_lines(hunk.lines, options, frozen=frozen)
    if loading:
        return skeleton()
    return Text("No lines in this hunk.", style="dim")


def render_hunk(
    file: DiffFile,
    hunk: DiffHunk,
    state: DiffViewState,
    options: DiffDisplayOptions,
    *,
    frozen: bool,
    loading: bool,
) -> RenderableType:
    collapsed = state.is_hunk_collapsed(file, hunk)
    parts: list[RenderableType] = [render_hunk_title(hunk, collapsed=collapsed)]
    strip = render_action_strip(hunk.actions, frozen=frozen)
    if strip is not None:
        parts.append(strip)
    if not collapsed:
        parts.append(render_hunk_lines(hunk, options, frozen=frozen, loading=loading))
    return Group(*parts)


def render_file(
    diff: CodeDiff,
    file: DiffFile,
    state: DiffViewState,
    options: DiffDisplayOptions,
) -> RenderableType:
    frozen = is_frozen(diff)
    loading = is_loading_more(diff, options)
    collapsed = state.is_file_collapsed(file)

    parts: list[RenderableType] = [Text(file_summary(file, loading=loading), style="dim")]
    strip = render_action_strip(file.actions, frozen=frozen)
    if strip is not None:
        parts.append(strip)
    if not collapsed:
        if file.hunks:
            for hunk in file.hunks:
                parts.append(Text(""))
                parts.append(render_hunk(file, hunk, state, options, frozen=frozen, loading=loading))
        elif loading:
            parts.append(skeleton(2))
        else:
            parts.append(Text("No hunks available.", style="dim"))

    emphasized = file.id in diff.emphasized
    return Panel(
        Group(*parts),
        title=render_file_title(file, collapsed=collapsed),
        title_align="left",
        border_style="magenta" if emphasized else "grey37",
        box=box.HEAVY if emphasized else box.ROUNDED,
    )


def render_empty(diff: CodeDiff, options: DiffDisplayOptions) -> RenderableType:
    if is_loading_more(diff, options):
        body = Text.assemble(("░░░░░░░░\n", "dim"), ("Looking for changes…", "dim"), justify="center")
    else:
        body = Text("No changes to show.", style="dim", justify="center")
    return Panel(body, box=box.ROUNDED, border_style="dim")


def render_code_diff(
    diff: CodeDiff,
    state: DiffViewState | None = None,
    options: DiffDisplayOptions | None = None,
) -> RenderableType:
    """Assemble the full diff tree. Pure; may raise on inconsistent input."""
    options = options or DiffDisplayOptions()
    state = state or DiffViewState(diff.id, default_view_mode=options.view_mode)

    sections: list[RenderableType] = [render_header(diff, options)]
    if diff.receipt is not None:
        sections.append(render_receipt_banner(diff.receipt))
    summary = render_summary(diff, options)
    if summary is not None:
        sections.append(summary)
    strip = render_action_strip(diff.actions, frozen=is_frozen(diff))
    if strip is not None:
        sections.append(strip)

    if diff.files:
        body: RenderableType = Group(*(render_file(diff, file, state, options) for file in diff.files))
    else:
        body = render_empty(diff, options)
    if options.max_height:
        body = Panel(body, height=options.max_height, box=box.SIMPLE, padding=0)
    sections.append(body)

    padding = (0, 1) if options.variant == "inline" else (1, 2)
    return Padding(Group(*sections), padding)


class RenderFault(RuntimeError):
    """An unexpected failure while assembling a diff tree."""

    def __init__(self, cause: BaseException, *, diff_id: str | None = None) -> None:
        self.cause = cause
        self.diff_id = diff_id
        super().__init__(f"failed to render diff {diff_id or '<unknown>'}: {cause}")


@dataclass(frozen=True, slots=True)
class RenderOk(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class RenderErr:
    fault: RenderFault


def isolated(
    render: Callable[[], T],
    *,
    diff_id: str | None = None,
    logger: RuntimeLogger | None = None,
) -> RenderOk[T] | RenderErr:
    try:
        return RenderOk(render())
    except Exception as exc:
        fault = RenderFault(exc, diff_id=diff_id)
        (logger or get_runtime_logger()).error(
            "render.fault",
            diff_id=diff_id,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return RenderErr(fault)


def fallback_renderable(fault: RenderFault) -> Text:
    text = Text("⚠ Failed to render diff.", style="bold red")
    text.append(f" ({type(fault.cause).__name__})", style="dim")
    return text


def render_diff_safely(
    diff: CodeDiff,
    state: DiffViewState | None = None,
    options: DiffDisplayOptions | None = None,
) -> RenderOk[RenderableType] | RenderErr:
    return isolated(lambda: render_code_diff(diff, state, options), diff_id=diff.id)
