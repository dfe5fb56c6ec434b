"""Interactive code-diff widget: view mode, collapse toggles and scoped actions."""

from __future__ import annotations

from typing import Callable

from rich.console import Group
from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.widget import Widget
from textual.widgets import Button, Static

from tooldiff.diff.actions import (
    ActionDispatcher,
    ActionEvent,
    CommitHandler,
    DispatchOutcome,
    GateHandler,
)
from tooldiff.diff.receipt import freeze_transition, is_frozen
from tooldiff.diff.schema import ActionTone, CodeDiff, DiffAction, DiffFile, DiffHunk, ViewMode
from tooldiff.diff.view_state import DiffViewState, reconcile_view_state
from tooldiff.messages import ActionDispatched, FreezeTransitioned, ViewModeChangeRequested
from tooldiff.runtime_logging import get_runtime_logger
from tooldiff.ui.diff import (
    VIEW_MODE_LABELS,
    DiffDisplayOptions,
    RenderErr,
    RenderFault,
    Variant,
    fallback_renderable,
    file_summary,
    is_loading_more,
    isolated,
    line_label,
    render_empty,
    render_file_title,
    render_header,
    render_hunk_lines,
    render_hunk_title,
    render_receipt_banner,
    render_summary,
    skeleton,
)

_BUTTON_VARIANTS: dict[ActionTone | None, str] = {
    "primary": "primary",
    "neutral": "default",
    "danger": "error",
    None: "default",
}

_VIEW_BUTTONS: dict[str, ViewMode] = {f"view-{mode}": mode for mode in VIEW_MODE_LABELS}


class CodeDiffView(Vertical):
    DEFAULT_CSS = """
    CodeDiffView {
        height: auto;
        border: round $surface-lighten-2;
        padding: 0 1;
    }

    CodeDiffView.-full {
        padding: 1 2;
    }

    CodeDiffView Horizontal {
        height: auto;
    }

    CodeDiffView Button {
        height: 1;
        min-width: 5;
        border: none;
        margin: 0 1 0 0;
    }

    CodeDiffView .grow {
        width: 1fr;
    }

    CodeDiffView #diff-body {
        height: auto;
    }

    CodeDiffView .diff-file {
        height: auto;
        border: round $surface-lighten-2;
        margin-top: 1;
        padding: 0 1;
    }

    CodeDiffView .diff-file.emphasized {
        border: heavy $accent;
    }

    CodeDiffView .diff-hunk {
        height: auto;
        margin-top: 1;
    }
    """

    def __init__(
        self,
        diff: CodeDiff,
        *,
        view_mode: ViewMode | None = None,
        default_view_mode: ViewMode = "unified",
        is_streaming: bool = False,
        show_line_numbers: bool = True,
        wrap_lines: bool = False,
        max_height: int | None = None,
        variant: Variant = "inline",
        on_before_action: GateHandler | None = None,
        on_action: CommitHandler | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        self.diff = diff
        self.view_state: DiffViewState = reconcile_view_state(
            None,
            diff,
            default_view_mode=default_view_mode,
            controlled_view_mode=view_mode,
        )
        self.is_streaming = is_streaming
        self.show_line_numbers = show_line_numbers
        self.wrap_lines = wrap_lines
        self.max_height = max_height
        self.variant: Variant = variant
        self.logger = get_runtime_logger().bind(widget="code_diff")
        self.dispatcher = ActionDispatcher(
            on_before_action=on_before_action,
            on_action=on_action,
            is_frozen=lambda: self.frozen,
            logger=self.logger,
        )
        self.render_fault: RenderFault | None = None
        self._toggles: dict[str, Callable[[], bool]] = {}
        self._action_events: dict[str, ActionEvent] = {}
        self._control_seq = 0
        super().__init__(id=id, classes=classes)
        self.set_class(variant == "full", "-full")

    @property
    def frozen(self) -> bool:
        return is_frozen(self.diff)

    @property
    def options(self) -> DiffDisplayOptions:
        return DiffDisplayOptions(
            view_mode=self.view_state.view_mode,
            show_line_numbers=self.show_line_numbers,
            wrap_lines=self.wrap_lines,
            max_height=None,
            is_streaming=self.is_streaming,
            variant=self.variant,
        )

    def compose(self) -> ComposeResult:
        self._toggles.clear()
        self._action_events.clear()
        self._control_seq = 0

        result = isolated(self._build_children, diff_id=self.diff.id, logger=self.logger)
        if isinstance(result, RenderErr):
            self.render_fault = result.fault
            yield Static(fallback_renderable(result.fault), id="render-fault")
            return
        self.render_fault = None
        yield from result.value

    def _build_children(self) -> list[Widget]:
        diff = self.diff
        options = self.options
        frozen = self.frozen

        header = Horizontal(
            Static(render_header(diff, options, with_view_mode=False), classes="grow"),
            *(
                Button(
                    label,
                    id=f"view-{mode}",
                    classes="view-mode",
                    variant="primary" if mode == options.view_mode else "default",
                    disabled=frozen,
                )
                for mode, label in VIEW_MODE_LABELS.items()
            ),
            id="diff-header",
        )
        children: list[Widget] = [header]

        if diff.receipt is not None:
            children.append(Static(render_receipt_banner(diff.receipt), id="receipt-banner"))
        summary = render_summary(diff, options)
        if summary is not None:
            children.append(Static(summary, id="summary"))
        if diff.actions:
            children.append(
                Horizontal(
                    *self._action_buttons(diff.actions, ActionEvent(scope="diff", action_id="", diff=diff)),
                    id="diff-actions",
                )
            )

        if diff.files:
            files = [self._build_file(file, options) for file in diff.files]
        else:
            files = [Static(render_empty(diff, options), id="empty-state")]
        body = VerticalScroll(*files, id="diff-body")
        if self.max_height:
            body.styles.max_height = self.max_height
        children.append(body)
        return children

    def _build_file(self, file: DiffFile, options: DiffDisplayOptions) -> Widget:
        diff = self.diff
        loading = is_loading_more(diff, options)
        collapsed = self.view_state.is_file_collapsed(file)

        toggle_id = self._next_control_id("toggle-file")
        self._toggles[toggle_id] = lambda: self.view_state.toggle_file(file)
        title = Group(
            render_file_title(file, collapsed=collapsed),
            Text(file_summary(file, loading=loading), style="dim"),
        )
        parts: list[Widget] = [
            Horizontal(
                Static(title, classes="grow file-title"),
                *self._action_buttons(file.actions, ActionEvent(scope="file", action_id="", diff=diff, file=file)),
                Button("▸" if collapsed else "▾", id=toggle_id, classes="file-toggle"),
            )
        ]

        if not collapsed:
            if file.hunks:
                parts.extend(self._build_hunk(file, hunk, options) for hunk in file.hunks)
            elif loading:
                parts.append(Static(skeleton(2), classes="placeholder"))
            else:
                parts.append(Static(Text("No hunks available.", style="dim"), classes="placeholder"))

        classes = "diff-file emphasized" if file.id in diff.emphasized else "diff-file"
        return Vertical(*parts, classes=classes)

    def _build_hunk(self, file: DiffFile, hunk: DiffHunk, options: DiffDisplayOptions) -> Widget:
        diff = self.diff
        frozen = self.frozen
        collapsed = self.view_state.is_hunk_collapsed(file, hunk)

        toggle_id = self._next_control_id("toggle-hunk")
        self._toggles[toggle_id] = lambda: self.view_state.toggle_hunk(file, hunk)
        hunk_event = ActionEvent(scope="hunk", action_id="", diff=diff, file=file, hunk=hunk)
        parts: list[Widget] = [
            Horizontal(
                Static(render_hunk_title(hunk, collapsed=collapsed), classes="grow hunk-title"),
                *self._action_buttons(hunk.actions, hunk_event),
                Button("▸" if collapsed else "▾", id=toggle_id, classes="hunk-toggle"),
            )
        ]
        if collapsed:
            return Vertical(*parts, classes="diff-hunk")

        loading = is_loading_more(diff, options)
        parts.append(Static(render_hunk_lines(hunk, options, frozen=frozen, loading=loading), classes="hunk-lines"))

        line_buttons: list[Widget] = []
        for line in hunk.lines:
            if not line.actions:
                continue
            line_event = ActionEvent(scope="line", action_id="", diff=diff, file=file, hunk=hunk, line=line)
            suffix = f" · L{line.line_number}" if line.line_number else ""
            for button in self._action_buttons(line.actions, line_event, suffix=suffix):
                button.tooltip = Text(line_label(line))
                line_buttons.append(button)
        if line_buttons:
            parts.append(Horizontal(*line_buttons, classes="line-actions"))
        return Vertical(*parts, classes="diff-hunk")

    def _action_buttons(
        self,
        actions: list[DiffAction] | None,
        template: ActionEvent,
        *,
        suffix: str = "",
    ) -> list[Button]:
        buttons: list[Button] = []
        for action in actions or ():
            control_id = self._next_control_id(f"{template.scope}-action")
            self._action_events[control_id] = ActionEvent(
                scope=template.scope,
                action_id=action.id,
                diff=template.diff,
                file=template.file,
                hunk=template.hunk,
                line=template.line,
            )
            label = f"{action.label}{suffix}"
            if action.shortcut:
                label = f"{label} [{action.shortcut}]"
            buttons.append(
                Button(
                    Text(label),
                    id=control_id,
                    classes=f"{template.scope}-action",
                    variant=_BUTTON_VARIANTS[action.tone],
                    disabled=self.frozen,
                )
            )
        return buttons

    def _next_control_id(self, prefix: str) -> str:
        self._control_seq += 1
        return f"{prefix}-{self._control_seq}"

    def action_event_for(self, button_id: str) -> ActionEvent | None:
        return self._action_events.get(button_id)

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""

        mode = _VIEW_BUTTONS.get(button_id)
        if mode is not None:
            event.stop()
            await self.request_view_mode(mode)
            return

        toggle = self._toggles.get(button_id)
        if toggle is not None:
            event.stop()
            toggle()
            await self.recompose()
            return

        action_event = self._action_events.get(button_id)
        if action_event is not None:
            event.stop()
            self._start_action(action_event, event.button)

    def _start_action(self, action_event: ActionEvent, button: Button) -> None:
        if self.frozen:
            return
        button.disabled = True
        self.run_worker(
            self._run_action(action_event, button),
            group="code-diff-actions",
            exclusive=False,
        )

    async def _run_action(self, action_event: ActionEvent, button: Button | None = None) -> DispatchOutcome:
        try:
            outcome = await self.dispatcher.dispatch(action_event)
        finally:
            if button is not None and button.is_attached:
                button.disabled = self.frozen
        self.post_message(ActionDispatched(event=action_event, outcome=outcome))
        return outcome

    async def dispatch_action(self, action_event: ActionEvent) -> DispatchOutcome:
        """Run an action through the same gate-then-commit path as a button press."""
        return await self._run_action(action_event)

    async def request_view_mode(self, mode: ViewMode) -> None:
        if self.frozen or mode == self.view_state.view_mode:
            return
        if not self.view_state.set_view_mode(mode):
            self.post_message(ViewModeChangeRequested(diff_id=self.diff.id, mode=mode))
            return
        await self.recompose()

    async def toggle_view_mode(self) -> None:
        await self.request_view_mode("split" if self.view_state.view_mode == "unified" else "unified")

    async def set_view_mode(self, mode: ViewMode | None) -> None:
        """Controlling entry point; ``None`` hands the view mode back to the widget."""
        self.view_state.controlled_view_mode = mode
        await self.recompose()

    async def set_display(
        self,
        *,
        show_line_numbers: bool | None = None,
        wrap_lines: bool | None = None,
        max_height: int | None = None,
    ) -> None:
        if show_line_numbers is not None:
            self.show_line_numbers = show_line_numbers
        if wrap_lines is not None:
            self.wrap_lines = wrap_lines
        if max_height is not None:
            self.max_height = max_height or None
        await self.recompose()

    async def update_diff(self, diff: CodeDiff, *, is_streaming: bool | None = None) -> None:
        """Replace the payload and re-render; collapse state survives only for the same id."""
        previous = self.diff
        self.view_state = reconcile_view_state(self.view_state, diff)
        self.diff = diff
        if is_streaming is not None:
            self.is_streaming = is_streaming

        transition = freeze_transition(previous, diff)
        if transition is not None:
            self.logger.info(
                "receipt.transition",
                diff_id=diff.id,
                transition=transition,
                same_id=previous.id == diff.id,
            )
            self.post_message(FreezeTransitioned(diff_id=diff.id, transition=transition))
        await self.recompose()
