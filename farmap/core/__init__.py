"""
Core Store Layer

RESPONSIBILITY: Hold collision-checked facts per user and expose views
ALLOWED INPUTS: Fid-tagged user values from ingestion or storage
OUTPUTS: UserStore, UserCollection, UsersSubset

WHAT THIS LAYER MUST NOT DO:
============================
- Parse external formats
- Compute aggregates across time (query layer)
"""

from .store import UserStore, UserCollection
from .subset import UsersSubset

__all__ = ["UserStore", "UserCollection", "UsersSubset"]
