"""
===========================================================
phases.py
Last Updated: 2026-10-19
===========================================================

Description:
    Maps dates to Singapore's named pandemic-response phases.

API:
    - PhaseTimeline(intervals)      validated, contiguous intervals
    - PhaseTimeline.from_records / from_json
    - timeline.lookup(date)         -> phase name | OutOfRange
    - timeline.annotate(dates)      -> Series of names (None outside)
    - timeline.phase_spans(a, b)    -> intervals clipped to a window
    - mode_phase(labels)            -> most frequent label

Notes:
    - Intervals are closed-open: [start, end). A date equal to an
      interval's end belongs to the next interval.
    - Boundaries must tile the timeline: end[i] == start[i+1].
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import json
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union
import numpy as np
import pandas as pd

from sgcovid.constants import PHASE_TABLE
from sgcovid.errors import PhaseTableError

DateLike = Union[str, pd.Timestamp, "np.datetime64"]


class OutOfRange(Enum):
    """Lookup result for a date outside the timeline."""
    BEFORE = "before"
    AFTER = "after"


@dataclass(frozen=True)
class PhaseInterval:
    start: pd.Timestamp
    end: pd.Timestamp
    name: str

    def contains(self, when: pd.Timestamp) -> bool:
        return self.start <= when < self.end


class PhaseTimeline:
    """
    Ordered, contiguous, non-overlapping phase intervals.
    """
    def __init__(self, intervals: Sequence[PhaseInterval]):
        intervals = list(intervals)
        if not intervals:
            raise PhaseTableError("Phase table is empty")
        for iv in intervals:
            if not iv.start < iv.end:
                raise PhaseTableError(
                    f"Phase '{iv.name}' has start {iv.start.date()} not before end {iv.end.date()}"
                )
        for prev, nxt in zip(intervals, intervals[1:]):
            if prev.end != nxt.start:
                kind = "gap" if prev.end < nxt.start else "overlap"
                raise PhaseTableError(
                    f"Phase table has a {kind} between '{prev.name}' (ends {prev.end.date()}) "
                    f"and '{nxt.name}' (starts {nxt.start.date()})"
                )
        self.intervals: Tuple[PhaseInterval, ...] = tuple(intervals)
        # boundaries e0 < e1 < ... < eK, K intervals
        self._edges = np.array(
            [iv.start.value for iv in intervals] + [intervals[-1].end.value], dtype=np.int64
        )

    @classmethod
    def from_records(cls, records: Iterable[Sequence]) -> "PhaseTimeline":
        """Build from (start, end, name) tuples; dates as ISO strings or timestamps."""
        intervals = []
        for rec in records:
            start, end, name = rec
            intervals.append(PhaseInterval(_to_day(start), _to_day(end), str(name)))
        return cls(intervals)

    @classmethod
    def from_json(cls, path: str | Path) -> "PhaseTimeline":
        """
        Load a phase table from JSON: a list of {"start", "end", "name"} objects.
        """
        with open(path, "r") as f:
            data = json.load(f)
        try:
            return cls.from_records((d["start"], d["end"], d["name"]) for d in data)
        except (KeyError, TypeError) as e:
            raise PhaseTableError(f"Malformed phase table in {path}: {e}") from e

    @property
    def start(self) -> pd.Timestamp:
        return self.intervals[0].start

    @property
    def end(self) -> pd.Timestamp:
        return self.intervals[-1].end

    @property
    def names(self) -> List[str]:
        """Distinct phase names in timeline order."""
        return list(dict.fromkeys(iv.name for iv in self.intervals))

    def _index_of(self, when: pd.Timestamp) -> int:
        # segment k such that edges[k] <= when < edges[k+1]; -1 / K when outside
        return int(np.searchsorted(self._edges, when.value, side="right") - 1)

    def lookup(self, when: DateLike) -> Union[str, OutOfRange]:
        """Phase name for a date, or OutOfRange.BEFORE / OutOfRange.AFTER."""
        when = _to_day(when)
        k = self._index_of(when)
        if k < 0:
            return OutOfRange.BEFORE
        if k >= len(self.intervals):
            return OutOfRange.AFTER
        return self.intervals[k].name

    def annotate(self, dates: pd.Series) -> pd.Series:
        """Per-row phase names; dates outside the timeline map to None."""
        days = pd.to_datetime(dates).dt.normalize()
        k = np.searchsorted(self._edges, days.to_numpy(dtype="datetime64[ns]").astype(np.int64), side="right") - 1
        names = np.array([iv.name for iv in self.intervals] + [None], dtype=object)
        k = np.where((k < 0) | (k >= len(self.intervals)), len(self.intervals), k)
        out = pd.Series(names[k], index=dates.index, dtype=object)
        out[days.isna()] = None
        return out

    def phase_spans(self, start: DateLike, end: DateLike) -> List[PhaseInterval]:
        """Intervals overlapping [start, end), clipped to that window (chart shading)."""
        lo, hi = _to_day(start), _to_day(end)
        spans = []
        for iv in self.intervals:
            s, e = max(iv.start, lo), min(iv.end, hi)
            if s < e:
                spans.append(PhaseInterval(s, e, iv.name))
        return spans

    def __len__(self) -> int:
        return len(self.intervals)

    def __repr__(self) -> str:
        return f"PhaseTimeline({len(self)} phases, {self.start.date()} -> {self.end.date()})"


def mode_phase(labels: Iterable[Optional[str]]) -> Optional[str]:
    """
    Most frequent phase label; ties go to the label encountered first.
    Missing labels are ignored, returns None when nothing is left.
    """
    counts = Counter(lab for lab in labels if isinstance(lab, str) and lab)
    if not counts:
        return None
    # Counter keeps insertion order, most_common is stable for equal counts
    return counts.most_common(1)[0][0]


def _to_day(value: DateLike) -> pd.Timestamp:
    return pd.Timestamp(value).normalize()


DEFAULT_PHASES = PhaseTimeline.from_records(PHASE_TABLE)
