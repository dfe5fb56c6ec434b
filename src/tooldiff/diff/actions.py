"""Scoped gate-then-commit dispatch for diff actions."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator, Literal

from tooldiff.diff.receipt import is_frozen
from tooldiff.diff.schema import CodeDiff, DiffAction, DiffFile, DiffHunk, DiffLine
from tooldiff.runtime_logging import RuntimeLogger, get_runtime_logger

ActionScope = Literal["diff", "file", "hunk", "line"]
DispatchOutcome = Literal["frozen", "rejected", "committed"]

GateHandler = Callable[["ActionEvent"], "bool | None | Awaitable[bool | None]"]
CommitHandler = Callable[["ActionEvent"], "None | Awaitable[None]"]

_REQUIRED_ANCESTORS: dict[ActionScope, tuple[str, ...]] = {
    "diff": (),
    "file": ("file",),
    "hunk": ("file", "hunk"),
    "line": ("file", "hunk", "line"),
}


@dataclass(frozen=True, slots=True)
class ActionEvent:
    scope: ActionScope
    action_id: str
    diff: CodeDiff
    file: DiffFile | None = None
    hunk: DiffHunk | None = None
    line: DiffLine | None = None

    def __post_init__(self) -> None:
        required = _REQUIRED_ANCESTORS[self.scope]
        missing = [name for name in required if getattr(self, name) is None]
        if missing:
            raise ValueError(f"{self.scope}-scope action event requires {', '.join(missing)}")

    @property
    def target_id(self) -> str:
        parts = [self.diff.id]
        for entity in (self.file, self.hunk, self.line):
            if entity is not None:
                parts.append(entity.id)
        return "/".join(parts)

    def describe(self) -> dict[str, str]:
        return {"scope": self.scope, "action_id": self.action_id, "target": self.target_id}


async def _settle(value):  # noqa: ANN001, ANN202
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass(slots=True)
class ActionRequest:
    """First phase: may short-circuit the action."""

    event: ActionEvent
    gate: GateHandler | None = None

    async def approve(self) -> bool:
        if self.gate is None:
            return True
        verdict = await _settle(self.gate(self.event))
        return True if verdict is None else bool(verdict)


@dataclass(slots=True)
class ActionCommit:
    """Second phase: hands the event to the host."""

    event: ActionEvent
    handler: CommitHandler | None = None

    async def run(self) -> None:
        if self.handler is None:
            return
        await _settle(self.handler(self.event))


class ActionDispatcher:
    """Runs gate then commit for one event at a time.

    A diff carrying a receipt never reaches either handler. ``is_frozen``
    reports the host's current freeze state, which may differ from the
    payload captured in the event; it is consulted before the gate and
    again before the commit. Handler exceptions propagate to the caller;
    a failing gate means no commit. Concurrent dispatches are not
    serialized against each other.
    """

    def __init__(
        self,
        *,
        on_before_action: GateHandler | None = None,
        on_action: CommitHandler | None = None,
        is_frozen: Callable[[], bool] | None = None,
        logger: RuntimeLogger | None = None,
    ) -> None:
        self.on_before_action = on_before_action
        self.on_action = on_action
        self.is_frozen = is_frozen
        self.logger = logger or get_runtime_logger()

    def _frozen(self, event: ActionEvent) -> bool:
        if is_frozen(event.diff):
            return True
        return self.is_frozen is not None and self.is_frozen()

    async def dispatch(self, event: ActionEvent) -> DispatchOutcome:
        if self._frozen(event):
            self.logger.info("action.frozen", **event.describe())
            return "frozen"

        request = ActionRequest(event=event, gate=self.on_before_action)
        if not await request.approve():
            self.logger.info("action.rejected", **event.describe())
            return "rejected"

        # a receipt can land while the gate is pending
        if self._frozen(event):
            self.logger.info("action.frozen", phase="after_gate", **event.describe())
            return "frozen"

        await ActionCommit(event=event, handler=self.on_action).run()
        self.logger.info("action.committed", **event.describe())
        return "committed"


def _declares(actions: list[DiffAction] | None, action_id: str) -> bool:
    return any(action.id == action_id for action in actions or ())


def _find(items: list, item_id: str, kind: str):  # noqa: ANN001, ANN202
    for item in items:
        if item.id == item_id:
            return item
    raise LookupError(f"unknown {kind} id: {item_id}")


def resolve_action_event(
    diff: CodeDiff,
    action_id: str,
    *,
    file_id: str | None = None,
    hunk_id: str | None = None,
    line_id: str | None = None,
) -> ActionEvent:
    """Build the event for an action addressed by ids, checking it is declared there."""
    if file_id is None:
        if hunk_id is not None or line_id is not None:
            raise LookupError("hunk and line ids require a file id")
        if not _declares(diff.actions, action_id):
            raise LookupError(f"action {action_id!r} is not declared on the diff")
        return ActionEvent(scope="diff", action_id=action_id, diff=diff)

    file = _find(diff.files, file_id, "file")
    if hunk_id is None:
        if line_id is not None:
            raise LookupError("a line id requires a hunk id")
        if not _declares(file.actions, action_id):
            raise LookupError(f"action {action_id!r} is not declared on file {file_id!r}")
        return ActionEvent(scope="file", action_id=action_id, diff=diff, file=file)

    hunk = _find(file.hunks, hunk_id, "hunk")
    if line_id is None:
        if not _declares(hunk.actions, action_id):
            raise LookupError(f"action {action_id!r} is not declared on hunk {hunk_id!r}")
        return ActionEvent(scope="hunk", action_id=action_id, diff=diff, file=file, hunk=hunk)

    line = _find(hunk.lines, line_id, "line")
    if not _declares(line.actions, action_id):
        raise LookupError(f"action {action_id!r} is not declared on line {line_id!r}")
    return ActionEvent(scope="line", action_id=action_id, diff=diff, file=file, hunk=hunk, line=line)


def iter_action_events(diff: CodeDiff) -> Iterator[tuple[DiffAction, ActionEvent]]:
    """Every declared action in document order, paired with its event."""
    for action in diff.actions or ():
        yield action, ActionEvent(scope="diff", action_id=action.id, diff=diff)
    for file in diff.files:
        for action in file.actions or ():
            yield action, ActionEvent(scope="file", action_id=action.id, diff=diff, file=file)
        for hunk in file.hunks:
            for action in hunk.actions or ():
                yield action, ActionEvent(
                    scope="hunk", action_id=action.id, diff=diff, file=file, hunk=hunk
                )
            for line in hunk.lines:
                for action in line.actions or ():
                    yield action, ActionEvent(
                        scope="line",
                        action_id=action.id,
                        diff=diff,
                        file=file,
                        hunk=hunk,
                        line=line,
                    )
