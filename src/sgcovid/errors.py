"""
===========================================================
errors.py
Last Updated: 2026-10-19
===========================================================

Description:
    Exceptions raised by the Singapore COVID-19 trends pipeline.

Notes:
    - Load errors are fatal and carry the offending row/column.
    - Metrics that cannot be computed raise UndefinedMetricError
      instead of returning 0 or NaN.
    - A date outside the phase timeline is NOT an error; see
      phases.OutOfRange.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
from typing import Any, Optional


class SGCovidError(Exception):
    """Base class for pipeline errors."""


class MalformedInputError(SGCovidError, ValueError):
    """
    A value in a strictly typed column could not be parsed at load time.

    Attributes
    ----------
    row : int or None
        1-based data row (header not counted), None for header problems
    column : str
        Column name as it appears in the source header
    value : Any
        The raw cell content
    """

    def __init__(self, message: str, row: Optional[int] = None,
                 column: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.row = row
        self.column = column
        self.value = value


class UndefinedMetricError(SGCovidError, ArithmeticError):
    """A derived metric has no defined value (unknown year, zero variance, no signal)."""

    def __init__(self, message: str, group: Optional[str] = None):
        super().__init__(message)
        self.group = group


class PhaseTableError(SGCovidError, ValueError):
    """The phase interval table does not tile the timeline."""
