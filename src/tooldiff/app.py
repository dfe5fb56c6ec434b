"""tooldiff Textual workbench."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from pathlib import Path

from rich.text import Text
from textual.app import App, ComposeResult
from textual.timer import Timer
from textual.widgets import Footer, Header, Static

from tooldiff.config.models import AppSettings
from tooldiff.config.store import SettingsStore
from tooldiff.diff.actions import ActionEvent, iter_action_events
from tooldiff.diff.presets import DiffPreset, PresetRegistry, StreamingStage, build_streaming_stages
from tooldiff.diff.schema import CodeDiff, DiffReceipt, ReceiptKind, ViewMode
from tooldiff.messages import ActionDispatched, FreezeTransitioned
from tooldiff.runtime_logging import configure_runtime_logging
from tooldiff.screens.modals import ConfirmActionModal, describe_action_event
from tooldiff.ui.diff import Variant
from tooldiff.widgets.code_diff import CodeDiffView

DEFAULT_PRESET = "workspace-sync"

_RECEIPT_KIND_PREFIXES: tuple[tuple[str, ReceiptKind], ...] = (
    ("apply", "apply"),
    ("revert", "revert"),
    ("discard", "revert"),
    ("comment", "comment"),
)


def infer_receipt_kind(action_id: str) -> ReceiptKind:
    lowered = action_id.lower()
    for prefix, kind in _RECEIPT_KIND_PREFIXES:
        if lowered.startswith(prefix):
            return kind
    return "custom"


def action_label(event: ActionEvent) -> str:
    for action, candidate in iter_action_events(event.diff):
        if candidate.target_id == event.target_id and action.id == event.action_id:
            return action.label
    return event.action_id


def receipt_for_event(event: ActionEvent, *, now: datetime | None = None) -> CodeDiff:
    """Answer a committed action the way a host would: same diff, now carrying a receipt."""
    moment = now or datetime.now(UTC)
    receipt = DiffReceipt(
        kind=infer_receipt_kind(event.action_id),
        status="success",
        summary=f"{action_label(event)} ({event.scope})",
        created_at_iso=moment.isoformat(timespec="seconds"),
        file_ids=[event.file.id] if event.file is not None else None,
        hunk_ids=[event.hunk.id] if event.hunk is not None else None,
    )
    return event.diff.model_copy(update={"receipt": receipt})


class DiffWorkbenchApp(App[None]):
    TITLE = "tooldiff"
    SUB_TITLE = "Code diff workbench"

    BINDINGS = [
        ("v", "toggle_view_mode", "Toggle view"),
        ("s", "replay_stream", "Replay stream"),
        ("r", "reset_diff", "Reset"),
        ("q", "quit", "Quit"),
    ]

    CSS = """
    Screen {
        layout: vertical;
    }

    #status {
        height: 1;
        color: $text-muted;
        padding: 0 1;
    }
    """

    def __init__(
        self,
        *,
        diff: CodeDiff | None = None,
        preset: str | None = None,
        settings: AppSettings | None = None,
        preset_registry: PresetRegistry | None = None,
        split: bool = False,
        stream: bool = False,
        confirm: bool | None = None,
        freeze_on_action: bool = False,
        stream_interval: float = 0.15,
        log_level: str | None = None,
        log_file: str | Path | None = None,
    ) -> None:
        self.logger = configure_runtime_logging(level=log_level, log_file=log_file)
        self.settings = settings if settings is not None else SettingsStore().load()

        self.preset: DiffPreset | None = None
        if diff is None:
            loaded = (preset_registry or PresetRegistry()).load()
            for warning in loaded.warnings:
                self.logger.warning("app.preset_warning", warning=warning)
            name = preset or DEFAULT_PRESET
            self.preset = loaded.get(name)
            if self.preset is None:
                raise LookupError(f"Unknown preset: {name}")
            diff = self.preset.diff

        self.base_diff = diff
        diff_settings = self.settings.diff
        default_view_mode: ViewMode = diff_settings.default_view_mode
        variant: Variant = diff_settings.variant
        if self.preset is not None:
            default_view_mode = self.preset.controls.default_view_mode
            variant = self.preset.controls.variant
        self.default_view_mode: ViewMode = "split" if split else default_view_mode
        self.variant: Variant = variant
        self.confirm_actions = diff_settings.confirm_actions if confirm is None else confirm
        self.freeze_on_action = freeze_on_action
        self.stream_on_start = stream
        self.stream_interval = stream_interval

        self.committed_actions: list[ActionEvent] = []
        self._stages: list[StreamingStage] = []
        self._stage_index = 0
        self._stream_timer: Timer | None = None

        self.logger.info(
            "app.initialized",
            diff_id=diff.id,
            preset=self.preset.name if self.preset else None,
            confirm_actions=self.confirm_actions,
            freeze_on_action=freeze_on_action,
        )
        super().__init__()

    def compose(self) -> ComposeResult:
        diff_settings = self.settings.diff
        yield Header()
        yield CodeDiffView(
            self.base_diff,
            default_view_mode=self.default_view_mode,
            show_line_numbers=diff_settings.show_line_numbers,
            wrap_lines=diff_settings.wrap_lines,
            max_height=diff_settings.max_height,
            variant=self.variant,
            on_before_action=self.confirm_action,
            on_action=self.commit_action,
            id="code-diff",
        )
        yield Static("Ready.", id="status")
        yield Footer()

    @property
    def code_diff(self) -> CodeDiffView:
        return self.query_one("#code-diff", CodeDiffView)

    async def on_mount(self) -> None:
        self.theme = self.settings.appearance.theme
        if self.stream_on_start:
            self.action_replay_stream()

    async def confirm_action(self, event: ActionEvent) -> bool:
        if not self.confirm_actions:
            return True

        answer: asyncio.Future[bool] = asyncio.get_running_loop().create_future()

        def _resolve(result: bool | None) -> None:
            if not answer.done():
                answer.set_result(bool(result))

        self.push_screen(
            ConfirmActionModal(
                title="Confirm action",
                detail=describe_action_event(event, action_label(event)),
            ),
            callback=_resolve,
        )
        return await answer

    async def commit_action(self, event: ActionEvent) -> None:
        self.committed_actions.append(event)
        if self.freeze_on_action:
            await self.code_diff.update_diff(receipt_for_event(event), is_streaming=False)

    def on_action_dispatched(self, message: ActionDispatched) -> None:
        label = action_label(message.event)
        self._set_status(f"{label}: {message.outcome}")

    def on_freeze_transitioned(self, message: FreezeTransitioned) -> None:
        if message.transition == "froze":
            self.notify("Diff is now read-only.", title="tooldiff")
        else:
            self.notify("Diff is interactive again.", title="tooldiff")

    async def action_toggle_view_mode(self) -> None:
        await self.code_diff.toggle_view_mode()

    async def action_reset_diff(self) -> None:
        self._stop_stream()
        await self.code_diff.update_diff(self.base_diff, is_streaming=False)
        self._set_status("Reset.")

    def action_replay_stream(self) -> None:
        self._stop_stream()
        self._stages = build_streaming_stages(self.base_diff)
        self._stage_index = 0
        self.logger.debug("app.stream.start", diff_id=self.base_diff.id, stages=len(self._stages))
        self._stream_timer = self.set_interval(self.stream_interval, self._advance_stream)

    async def _advance_stream(self) -> None:
        if self._stage_index >= len(self._stages):
            self._stop_stream()
            return
        stage = self._stages[self._stage_index]
        self._stage_index += 1
        await self.code_diff.update_diff(stage.snapshot, is_streaming=stage.is_streaming)
        self._set_status(f"Streaming stage {self._stage_index}/{len(self._stages)}")
        if self._stage_index >= len(self._stages):
            self._stop_stream()

    def _stop_stream(self) -> None:
        if self._stream_timer is not None:
            self._stream_timer.stop()
            self._stream_timer = None

    @property
    def is_replaying(self) -> bool:
        return self._stream_timer is not None

    def _set_status(self, text: str) -> None:
        self.query_one("#status", Static).update(Text(text))

    def on_exit(self) -> None:
        self.logger.info("app.exit", actions=len(self.committed_actions))
