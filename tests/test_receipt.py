from __future__ import annotations

import unittest

from tooldiff.diff.receipt import (
    describe_receipt,
    diff_phase,
    format_iso_timestamp,
    freeze_transition,
    is_frozen,
)
from tooldiff.diff.schema import DiffReceipt, parse_code_diff

RECEIPT = {
    "kind": "apply",
    "status": "partial",
    "summary": "Applied 2 of 3 hunks; 1 conflicted",
    "createdAtISO": "2024-05-07T21:05:00-04:00",
    "fileIds": ["f1"],
    "hunkIds": ["h1", "h2"],
}


class FreezeStateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.live = parse_code_diff({"id": "d", "files": []})
        self.frozen = parse_code_diff({"id": "d", "files": [], "receipt": RECEIPT})

    def test_phase_follows_receipt_presence(self) -> None:
        self.assertEqual(diff_phase(self.live), "interactive")
        self.assertEqual(diff_phase(self.frozen), "frozen")
        self.assertEqual(diff_phase(None), "interactive")
        self.assertTrue(is_frozen(self.frozen))
        self.assertFalse(is_frozen(self.live))

    def test_transitions(self) -> None:
        self.assertEqual(freeze_transition(self.live, self.frozen), "froze")
        self.assertEqual(freeze_transition(self.frozen, self.live), "thawed")
        self.assertIsNone(freeze_transition(self.live, self.live))
        self.assertIsNone(freeze_transition(self.frozen, self.frozen))
        self.assertEqual(freeze_transition(None, self.frozen), "froze")


class ReceiptDescriptionTests(unittest.TestCase):
    def test_describe_renders_status_verbatim(self) -> None:
        description = describe_receipt(DiffReceipt.model_validate(RECEIPT))
        self.assertEqual(description.status_label, "Partial")
        self.assertEqual(description.headline, "Changes applied")
        self.assertEqual(description.summary, "Applied 2 of 3 hunks; 1 conflicted")
        self.assertEqual(description.affected, 3)
        self.assertEqual(description.affected_label, "3 items affected")
        self.assertEqual(description.created_at, "May 7, 2024, 9:05 PM")

    def test_kindless_receipt_has_generic_headline(self) -> None:
        receipt = DiffReceipt(status="cancelled", summary="User cancelled", created_at_iso="garbage")
        description = describe_receipt(receipt)
        self.assertEqual(description.headline, "Action completed")
        self.assertEqual(description.status_label, "Cancelled")
        self.assertIsNone(description.affected_label)
        self.assertIsNone(description.created_at)

    def test_single_item_label(self) -> None:
        receipt = DiffReceipt(kind="revert", status="success", summary="ok", created_at_iso="2024-01-01T00:00:00Z", file_ids=["f"])
        self.assertEqual(describe_receipt(receipt).affected_label, "1 item affected")

    def test_timestamp_format(self) -> None:
        self.assertEqual(format_iso_timestamp("2024-05-07T09:13:00+00:00"), "May 7, 2024, 9:13 AM")
        self.assertEqual(format_iso_timestamp("2024-12-25T00:30:00"), "Dec 25, 2024, 12:30 AM")
        self.assertEqual(format_iso_timestamp("2024-06-01T12:00:00Z"), "Jun 1, 2024, 12:00 PM")
        self.assertIsNone(format_iso_timestamp(None))
        self.assertIsNone(format_iso_timestamp("yesterday"))


if __name__ == "__main__":
    unittest.main()
