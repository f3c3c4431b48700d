"""
Query Layer

RESPONSIBILITY: Aggregate spam and cast data over user sets
ALLOWED INPUTS: UserCollection, UsersSubset
OUTPUTS: Counts, distributions, time series, score shift matrices

WHAT THIS LAYER MUST NOT DO:
============================
- Mutate user stores or the collection
- Raise for "no data at this date" (returns None instead)
"""

from .spam_set import SetWithSpamEntries, UserWithSpamData
from .cast_set import SetWithCastData

__all__ = ["SetWithSpamEntries", "UserWithSpamData", "SetWithCastData"]
