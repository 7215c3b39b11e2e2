"""
===========================================================
errors.py
Author: Veronica Scerra
Last Updated: 2026-02-03
===========================================================

Description:
    Error and warning types raised by the case-rate pipeline.
    Fatal conditions derive from CaseRatesError so calling code
    can decide whether to retry (FetchFailure) or abort
    (date problems). Undefined rates are recoverable and are
    reported as a warning, never raised.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
from typing import Optional, Sequence


class CaseRatesError(Exception):
    """Base class for fatal pipeline errors"""


class FetchFailure(CaseRatesError, RuntimeError):
    """Dataset or boundary file could not be retrieved or read"""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class MalformedDateColumn(CaseRatesError, ValueError):
    """A selected wide-table column name is not a year-month-day date"""

    def __init__(self, column: str):
        super().__init__(
            f"Column {column!r} looks like a date column but is not YYYYMMDD or YYYY-MM-DD"
        )
        self.column = column


class UnparsableDate(CaseRatesError, ValueError):
    """One or more values in the 'date' column failed structured parsing"""

    def __init__(self, values: Sequence):
        sample = list(values)[:5]
        super().__init__(f"Could not parse {len(values)} date value(s), e.g. {sample}")
        self.values = list(values)


class UndefinedRateWarning(UserWarning):
    """Rate per 100k left as NaN because population was zero or missing"""
