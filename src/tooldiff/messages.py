"""Textual message objects posted by the code-diff widget to its host."""

from __future__ import annotations

from textual.message import Message

from tooldiff.diff.actions import ActionEvent, DispatchOutcome
from tooldiff.diff.receipt import FreezeTransition
from tooldiff.diff.schema import ViewMode


class ActionDispatched(Message):
    def __init__(self, *, event: ActionEvent, outcome: DispatchOutcome) -> None:
        self.event = event
        self.outcome = outcome
        super().__init__()


class ViewModeChangeRequested(Message):
    """Posted instead of switching locally when the view mode is controlled."""

    def __init__(self, *, diff_id: str, mode: ViewMode) -> None:
        self.diff_id = diff_id
        self.mode = mode
        super().__init__()


class FreezeTransitioned(Message):
    def __init__(self, *, diff_id: str, transition: FreezeTransition) -> None:
        self.diff_id = diff_id
        self.transition = transition
        super().__init__()
