"""Interactive/frozen lifecycle driven by the presence of a receipt."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from tooldiff.diff.schema import CodeDiff, DiffReceipt, ReceiptKind, ReceiptStatus

DiffPhase = Literal["interactive", "frozen"]
FreezeTransition = Literal["froze", "thawed"]

RECEIPT_STATUS_LABELS: dict[ReceiptStatus, str] = {
    "success": "Success",
    "partial": "Partial",
    "failed": "Failed",
    "cancelled": "Cancelled",
}

RECEIPT_KIND_HEADLINES: dict[ReceiptKind | None, str] = {
    "apply": "Changes applied",
    "revert": "Changes reverted",
    "comment": "Comment noted",
    "custom": "Action completed",
    None: "Action completed",
}


def diff_phase(diff: CodeDiff | None) -> DiffPhase:
    if diff is not None and diff.receipt is not None:
        return "frozen"
    return "interactive"


def is_frozen(diff: CodeDiff | None) -> bool:
    return diff_phase(diff) == "frozen"


def freeze_transition(previous: CodeDiff | None, current: CodeDiff) -> FreezeTransition | None:
    """Describe the phase change between two consecutive payloads, if any.

    The engine only observes receipts. A thaw happens solely because the host
    sent a payload without one, whether or not the diff id changed.
    """
    before = diff_phase(previous)
    after = diff_phase(current)
    if before == after:
        return None
    return "froze" if after == "frozen" else "thawed"


def format_iso_timestamp(value: str | None) -> str | None:
    if not value:
        return None
    try:
        moment = datetime.fromisoformat(value)
    except ValueError:
        return None
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return f"{moment:%b} {moment.day}, {moment.year}, {hour}:{moment:%M} {meridiem}"


@dataclass(frozen=True, slots=True)
class ReceiptDescription:
    status: ReceiptStatus
    status_label: str
    headline: str
    summary: str
    affected: int
    created_at: str | None

    @property
    def affected_label(self) -> str | None:
        if self.affected <= 0:
            return None
        return f"{self.affected} item{'' if self.affected == 1 else 's'} affected"


def describe_receipt(receipt: DiffReceipt) -> ReceiptDescription:
    return ReceiptDescription(
        status=receipt.status,
        status_label=RECEIPT_STATUS_LABELS[receipt.status],
        headline=RECEIPT_KIND_HEADLINES[receipt.kind],
        summary=receipt.summary,
        affected=len(receipt.file_ids or ()) + len(receipt.hunk_ids or ()),
        created_at=format_iso_timestamp(receipt.created_at_iso),
    )
