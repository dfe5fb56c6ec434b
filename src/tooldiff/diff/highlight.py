"""Split a line's content into plain and emphasized segments.

Ranges are clamped to the content, zero-length ranges are dropped and the
rest are stably sorted by start. Overlaps are then resolved so the emitted
segments never repeat a character:

* overlapping or touching ranges of the same kind merge into one span;
* where ranges of different kinds overlap, the range that starts first
  (declaration order on ties) keeps the shared characters and the later
  range keeps only its tail past that point, if any.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from tooldiff.diff.schema import HighlightKind, HighlightRange


@dataclass(frozen=True, slots=True)
class Segment:
    text: str
    highlighted: bool = False
    kind: HighlightKind | None = None


@dataclass(frozen=True, slots=True)
class Span:
    start: int
    end: int
    kind: HighlightKind | None = None


def clamp_range(content: str, item: HighlightRange) -> Span | None:
    start = max(0, min(len(content), item.start))
    length = max(0, min(len(content) - start, item.length))
    if length == 0:
        return None
    return Span(start=start, end=start + length, kind=item.kind)


def normalize_ranges(content: str, ranges: Iterable[HighlightRange] | None) -> list[Span]:
    clamped = [span for item in ranges or () if (span := clamp_range(content, item)) is not None]
    clamped.sort(key=lambda span: span.start)

    merged: list[Span] = []
    for span in clamped:
        if not merged:
            merged.append(span)
            continue
        last = merged[-1]
        if span.kind == last.kind and span.start <= last.end:
            merged[-1] = Span(start=last.start, end=max(last.end, span.end), kind=last.kind)
        elif span.start < last.end:
            if span.end > last.end:
                merged.append(Span(start=last.end, end=span.end, kind=span.kind))
        else:
            merged.append(span)
    return merged


def render_highlights(content: str, ranges: Iterable[HighlightRange] | None) -> list[Segment]:
    spans = normalize_ranges(content, ranges)
    if not spans:
        return [Segment(text=content or " ")]

    segments: list[Segment] = []
    cursor = 0
    for span in spans:
        if span.start > cursor:
            segments.append(Segment(text=content[cursor:span.start]))
        segments.append(Segment(text=content[span.start:span.end], highlighted=True, kind=span.kind))
        cursor = span.end
    if cursor < len(content):
        segments.append(Segment(text=content[cursor:]))
    return segments
