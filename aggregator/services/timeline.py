"""Gap-aware coordinate system for drawing itineraries on a horizontal axis.

Intervals are laid out between a padded minimum and maximum. Long idle
stretches between intervals become gaps that a collapsed axis leaves out, so
a two-week trip with two short flights still draws both flights legibly.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any

_HOUR_SECONDS = 3600


class CollapseMode(StrEnum):
    in_between = "in_between"
    trailing = "trailing"


@dataclass(slots=True, frozen=True)
class Interval:
    start: datetime
    end: datetime
    payload: Any = None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


@dataclass(slots=True, frozen=True)
class TimeSpan:
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, interval: Interval) -> bool:
        return self.start <= interval.start and interval.end <= self.end


@dataclass(slots=True, frozen=True)
class PlacedInterval:
    interval: Interval
    start_relative: float
    end_relative: float
    start_collapsed: float
    end_collapsed: float
    segment: TimeSpan | None


@dataclass(slots=True)
class TimelineLayout:
    start: datetime
    end: datetime
    step: timedelta
    total: timedelta
    collapsed_total: timedelta
    shortest: Interval
    gaps: list[TimeSpan] = field(default_factory=list)
    segments: list[TimeSpan] = field(default_factory=list)
    placed: list[PlacedInterval] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class _Boundary:
    instant: datetime
    is_start: bool
    interval: Interval

    def sort_key(self) -> tuple[datetime, int]:
        return (self.instant, 0 if self.is_start else 1)


def build_timeline(
    intervals: Sequence[Interval],
    collapse_threshold_minutes: float = 0,
    mode: CollapseMode = CollapseMode.trailing,
) -> TimelineLayout:
    """Lay ``intervals`` out on a padded axis, collapsing idle stretches.

    ``in_between`` opens a gap when an end boundary is directly followed by a
    start boundary more than the threshold later. ``trailing`` compares each
    start against the latest end seen so far, so an interval that is still
    running keeps the axis open. Fractions are placed in input order.
    """
    if not intervals:
        raise ValueError("cannot build a timeline from zero intervals")
    for interval in intervals:
        if interval.end < interval.start:
            raise ValueError(f"interval ends before it starts: {interval.start} > {interval.end}")

    boundaries = sorted(
        (
            boundary
            for interval in intervals
            for boundary in (
                _Boundary(interval.start, True, interval),
                _Boundary(interval.end, False, interval),
            )
        ),
        key=_Boundary.sort_key,
    )
    earliest = min(interval.start for interval in intervals)
    latest = max(interval.end for interval in intervals)
    shortest = min(intervals, key=lambda interval: interval.duration)
    step = _round_to_hours(shortest.duration)
    threshold = timedelta(minutes=collapse_threshold_minutes)

    if mode == CollapseMode.in_between:
        segments, gaps = _split_in_between(boundaries, threshold)
    else:
        segments, gaps = _split_trailing(boundaries, threshold)

    padded_start = earliest - step
    padded_end = latest + step
    total = padded_end - padded_start
    collapsed_total = total - sum((gap.duration for gap in gaps), timedelta())

    def relative(instant: datetime) -> float:
        return _fraction(instant - padded_start, total)

    def collapsed(instant: datetime) -> float:
        return _fraction(instant - padded_start - _gap_time_before(gaps, instant), collapsed_total)

    placed = [
        PlacedInterval(
            interval=interval,
            start_relative=relative(interval.start),
            end_relative=relative(interval.end),
            start_collapsed=collapsed(interval.start),
            end_collapsed=collapsed(interval.end),
            segment=next((segment for segment in segments if segment.contains(interval)), None),
        )
        for interval in intervals
    ]
    return TimelineLayout(
        start=padded_start,
        end=padded_end,
        step=step,
        total=total,
        collapsed_total=collapsed_total,
        shortest=shortest,
        gaps=gaps,
        segments=segments,
        placed=placed,
    )


def tick_marks(start: datetime, end: datetime, step: timedelta) -> list[datetime]:
    """Division instants from ``start`` (inclusive) to ``end`` (exclusive)."""
    if step <= timedelta():
        return []
    marks: list[datetime] = []
    current = start
    while current < end:
        marks.append(current)
        current += step
    return marks


def _split_in_between(
    boundaries: list[_Boundary], threshold: timedelta
) -> tuple[list[TimeSpan], list[TimeSpan]]:
    segments: list[TimeSpan] = []
    gaps: list[TimeSpan] = []
    segment_start = boundaries[0].instant
    for previous, current in zip(boundaries, boundaries[1:]):
        if (
            not previous.is_start
            and current.is_start
            and current.instant - previous.instant > threshold
        ):
            segments.append(TimeSpan(segment_start, previous.instant))
            gaps.append(TimeSpan(previous.instant, current.instant))
            segment_start = current.instant
    segments.append(TimeSpan(segment_start, boundaries[-1].instant))
    return segments, gaps


def _split_trailing(
    boundaries: list[_Boundary], threshold: timedelta
) -> tuple[list[TimeSpan], list[TimeSpan]]:
    segments: list[TimeSpan] = []
    gaps: list[TimeSpan] = []
    segment_start = boundaries[0].instant
    finish = boundaries[0].interval.end
    for boundary in boundaries:
        if boundary.is_start and boundary.instant - finish > threshold:
            segments.append(TimeSpan(segment_start, finish))
            gaps.append(TimeSpan(finish, boundary.instant))
            segment_start = boundary.instant
        finish = max(finish, boundary.interval.end)
    segments.append(TimeSpan(segment_start, boundaries[-1].instant))
    return segments, gaps


def _gap_time_before(gaps: list[TimeSpan], instant: datetime) -> timedelta:
    # Only the part of a gap that lies before the instant is removed.
    removed = timedelta()
    for gap in gaps:
        if gap.start < instant:
            removed += min(gap.end, instant) - gap.start
    return removed


def _round_to_hours(duration: timedelta) -> timedelta:
    hours = int(duration.total_seconds() / _HOUR_SECONDS + 0.5)
    return timedelta(hours=hours)


def _fraction(offset: timedelta, total: timedelta) -> float:
    if total <= timedelta():
        return 0.0
    return min(1.0, max(0.0, offset / total))
