"""Modal screens used by the workbench host."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Static

from tooldiff.diff.actions import ActionEvent


def describe_action_event(event: ActionEvent, label: str | None = None) -> str:
    lines = [f"Action: {label or event.action_id}", f"Scope: {event.scope}", f"Diff: {event.diff.title or event.diff.id}"]
    if event.file is not None:
        lines.append(f"File: {event.file.path}")
    if event.hunk is not None:
        lines.append(f"Hunk: {event.hunk.header or event.hunk.id}")
    if event.line is not None:
        lines.append(f"Line: {event.line.content.strip() or event.line.id}")
    return "\n".join(lines)


class ConfirmActionModal(ModalScreen[bool]):
    DEFAULT_CSS = """
    ConfirmActionModal {
        align: center middle;
    }

    ConfirmActionModal > Vertical {
        width: 80;
        height: auto;
        border: round $warning;
        background: $surface;
        padding: 1;
    }

    ConfirmActionModal Horizontal {
        height: auto;
    }

    ConfirmActionModal Button {
        width: 1fr;
        margin: 1 1 0 0;
    }
    """

    def __init__(self, title: str, detail: str) -> None:
        super().__init__()
        self.title = title
        self.detail = detail

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static(f"[b]{self.title}[/b]", markup=True)
            yield Static(self.detail, markup=False)
            with Horizontal():
                yield Button("Proceed", id="confirm", variant="success")
                yield Button("Cancel", id="cancel", variant="error")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "confirm")
