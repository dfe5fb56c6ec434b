from __future__ import annotations

import unittest
from collections import Counter

from tooldiff.diff.pairing import build_split_rows
from tooldiff.diff.schema import DiffLine


def line(line_id: str, kind: str, content: str | None = None) -> DiffLine:
    return DiffLine(id=line_id, kind=kind, content=content if content is not None else line_id)


class SplitRowTests(unittest.TestCase):
    def test_context_then_uneven_block(self) -> None:
        a, b, c, d = line("a", "context"), line("b", "remove"), line("c", "remove"), line("d", "add")
        rows = build_split_rows([a, b, c, d])

        self.assertEqual(len(rows), 3)
        self.assertIs(rows[0].left, a)
        self.assertIs(rows[0].right, a)
        self.assertTrue(rows[0].is_context)
        self.assertIs(rows[1].left, b)
        self.assertIs(rows[1].right, d)
        self.assertIs(rows[2].left, c)
        self.assertIsNone(rows[2].right)

    def test_row_keys(self) -> None:
        rows = build_split_rows([line("a", "context"), line("b", "remove"), line("c", "remove"), line("d", "add")])
        self.assertEqual([row.key for row in rows], ["ctx-a-0", "split-1-b-d", "split-2-c-none"])

    def test_only_additions(self) -> None:
        rows = build_split_rows([line("x", "add"), line("y", "add")])
        self.assertEqual([(row.left, row.right.id) for row in rows], [(None, "x"), (None, "y")])
        self.assertEqual(rows[0].key, "split-0-none-x")

    def test_only_removals(self) -> None:
        rows = build_split_rows([line("x", "remove")])
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].left.id, "x")
        self.assertIsNone(rows[0].right)

    def test_add_before_remove_forms_separate_blocks(self) -> None:
        rows = build_split_rows([line("a1", "add"), line("r1", "remove")])
        self.assertEqual([(row.left and row.left.id, row.right and row.right.id) for row in rows], [(None, "a1"), ("r1", None)])

    def test_context_breaks_blocks(self) -> None:
        lines = [line("r1", "remove"), line("c1", "context"), line("a1", "add")]
        rows = build_split_rows(lines)
        self.assertEqual(len(rows), 3)
        self.assertIsNone(rows[0].right)
        self.assertIsNone(rows[2].left)

    def test_block_row_count_is_max_of_runs(self) -> None:
        lines = [line(f"r{i}", "remove") for i in range(2)] + [line(f"a{i}", "add") for i in range(5)]
        rows = build_split_rows(lines)
        self.assertEqual(len(rows), 5)

    def test_every_line_appears_exactly_once(self) -> None:
        kinds = ["context", "remove", "add", "add", "context", "remove", "remove", "remove", "add", "context", "add"]
        lines = [line(f"l{index}", kind) for index, kind in enumerate(kinds)]
        rows = build_split_rows(lines)

        seen: Counter[str] = Counter()
        for row in rows:
            if row.is_context:
                seen[row.left.id] += 1
                continue
            for side in (row.left, row.right):
                if side is not None:
                    seen[side.id] += 1
        self.assertEqual(seen, Counter(item.id for item in lines))

    def test_keys_are_deterministic_and_unique(self) -> None:
        def build() -> list[str]:
            lines = [line("c", "context"), line("r", "remove"), line("a", "add"), line("c2", "context")]
            return [row.key for row in build_split_rows(lines)]

        first, second = build(), build()
        self.assertEqual(first, second)
        self.assertEqual(len(set(first)), len(first))

    def test_unknown_kind_is_skipped(self) -> None:
        odd = DiffLine.model_construct(id="m", kind="moved", content="x")
        rows = build_split_rows([line("c", "context"), odd, line("a", "add")])
        self.assertEqual(len(rows), 2)
        self.assertEqual([row.key for row in rows], ["ctx-c-0", "split-1-none-a"])

    def test_empty_input(self) -> None:
        self.assertEqual(build_split_rows([]), [])


if __name__ == "__main__":
    unittest.main()
