"""Align classified diff lines into left/right rows for the split view."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from tooldiff.diff.schema import DiffLine

_ABSENT = "none"


@dataclass(frozen=True, slots=True)
class SplitRow:
    key: str
    left: DiffLine | None = None
    right: DiffLine | None = None

    @property
    def is_context(self) -> bool:
        return self.left is not None and self.left is self.right


def build_split_rows(lines: Sequence[DiffLine]) -> list[SplitRow]:
    """Pair each remove run with the add run that directly follows it.

    Context lines occupy both sides of their own row. Inside a changed block
    row ``j`` holds the ``j``-th removed and ``j``-th added line, so a block
    yields ``max(removed, added)`` rows. Pairing is positional only.
    """
    rows: list[SplitRow] = []
    index = 0
    i = 0

    while i < len(lines):
        line = lines[i]

        if line.kind == "context":
            rows.append(SplitRow(key=f"ctx-{line.id}-{index}", left=line, right=line))
            index += 1
            i += 1
            continue

        if line.kind == "remove" or line.kind == "add":
            removed: list[DiffLine] = []
            added: list[DiffLine] = []
            while i < len(lines) and lines[i].kind == "remove":
                removed.append(lines[i])
                i += 1
            while i < len(lines) and lines[i].kind == "add":
                added.append(lines[i])
                i += 1

            for j in range(max(len(removed), len(added))):
                left = removed[j] if j < len(removed) else None
                right = added[j] if j < len(added) else None
                left_id = left.id if left is not None else _ABSENT
                right_id = right.id if right is not None else _ABSENT
                rows.append(SplitRow(key=f"split-{index}-{left_id}-{right_id}", left=left, right=right))
                index += 1
            continue

        # Unknown kinds produce no row.
        i += 1

    return rows
