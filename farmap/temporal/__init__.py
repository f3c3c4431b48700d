"""
Temporal Layer

RESPONSIBILITY: Ordered spam label history and calendar stepping
ALLOWED INPUTS: SpamEntry records, dates
OUTPUTS: SpamEntries, point-in-time scores, date sequences

WHAT THIS LAYER MUST NOT DO:
============================
- Know about users, collections or storage
- Perform I/O
"""

from .spam_entries import SpamEntries
from .time_iterator import Cadence, date_range, add_days, first_of_next_month

__all__ = ["SpamEntries", "Cadence", "date_range", "add_days", "first_of_next_month"]
