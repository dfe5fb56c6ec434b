"""Per-diff view state: view mode plus file and hunk collapse flags."""

from __future__ import annotations

from tooldiff.diff.schema import CodeDiff, DiffFile, DiffHunk, ViewMode
from tooldiff.runtime_logging import get_runtime_logger


def hunk_key(file: DiffFile, hunk: DiffHunk) -> str:
    return f"{file.id}:{hunk.id}"


class DiffViewState:
    """Mutable state owned by one rendered diff.

    Collapse flags are keyed by file id and ``"fileId:hunkId"``. An explicit
    flag wins over the entity's own ``isCollapsed`` default, which wins over
    expanded. When ``controlled_view_mode`` is set, local view-mode changes
    are refused and the caller must change the controlled value instead.
    """

    def __init__(
        self,
        diff_id: str,
        *,
        default_view_mode: ViewMode = "unified",
        controlled_view_mode: ViewMode | None = None,
    ) -> None:
        self.diff_id = diff_id
        self.default_view_mode: ViewMode = default_view_mode
        self.controlled_view_mode: ViewMode | None = controlled_view_mode
        self._internal_view_mode: ViewMode = default_view_mode
        self.file_collapsed: dict[str, bool] = {}
        self.hunk_collapsed: dict[str, bool] = {}

    @property
    def view_mode(self) -> ViewMode:
        return self.controlled_view_mode or self._internal_view_mode

    @property
    def is_view_mode_controlled(self) -> bool:
        return self.controlled_view_mode is not None

    def set_view_mode(self, mode: ViewMode) -> bool:
        if self.is_view_mode_controlled:
            return False
        self._internal_view_mode = mode
        return True

    def set_default_view_mode(self, mode: ViewMode) -> None:
        self.default_view_mode = mode
        if not self.is_view_mode_controlled:
            self._internal_view_mode = mode

    def is_file_collapsed(self, file: DiffFile) -> bool:
        explicit = self.file_collapsed.get(file.id)
        if explicit is not None:
            return explicit
        return bool(file.is_collapsed)

    def is_hunk_collapsed(self, file: DiffFile, hunk: DiffHunk) -> bool:
        explicit = self.hunk_collapsed.get(hunk_key(file, hunk))
        if explicit is not None:
            return explicit
        return bool(hunk.is_collapsed)

    def toggle_file(self, file: DiffFile) -> bool:
        collapsed = not self.is_file_collapsed(file)
        self.file_collapsed[file.id] = collapsed
        return collapsed

    def toggle_hunk(self, file: DiffFile, hunk: DiffHunk) -> bool:
        collapsed = not self.is_hunk_collapsed(file, hunk)
        self.hunk_collapsed[hunk_key(file, hunk)] = collapsed
        return collapsed

    def spawn(self, diff_id: str) -> "DiffViewState":
        """Fresh collapse state for another diff; view-mode settings carry over."""
        state = DiffViewState(
            diff_id,
            default_view_mode=self.default_view_mode,
            controlled_view_mode=self.controlled_view_mode,
        )
        state._internal_view_mode = self._internal_view_mode
        return state


def reconcile_view_state(
    previous: DiffViewState | None,
    diff: CodeDiff,
    *,
    default_view_mode: ViewMode = "unified",
    controlled_view_mode: ViewMode | None = None,
) -> DiffViewState:
    if previous is None:
        return DiffViewState(
            diff.id,
            default_view_mode=default_view_mode,
            controlled_view_mode=controlled_view_mode,
        )
    if previous.diff_id == diff.id:
        return previous

    get_runtime_logger().debug(
        "view_state.reset",
        previous_diff_id=previous.diff_id,
        diff_id=diff.id,
        dropped_file_flags=len(previous.file_collapsed),
        dropped_hunk_flags=len(previous.hunk_collapsed),
    )
    return previous.spawn(diff.id)
