"""
Farmap

Spam label timelines and aggregation for Farcaster users. Labels (spam
scores Zero/One/Two) are imported per fid as dated facts, stored per user,
and queried as point-in-time distributions, weekly/monthly series and score
shift matrices.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Identifiers, scores, fact kinds, result shapes, error taxonomy
   - Pure data, imported by every other layer

2. TEMPORAL (temporal/)
   - SpamEntries: date-ordered, collision-resolving label history
   - date_range: daily / weekly / monthly calendar stepping

3. CORE STORE (core/)
   - UserStore, UserCollection, UsersSubset
   - MUST NOT: parse external formats or aggregate across time

4. QUERY (query/)
   - SetWithSpamEntries, SetWithCastData
   - MUST NOT: mutate the collection

5. STORAGE (storage/)
   - Versioned JSON snapshot, in-memory and file backends

6. INGESTION (ingestion/)
   - JSON Lines files, GitHub label mirror, Pinata hub, Wield
   - MUST NOT: abort a batch on one bad record

7. OBSERVABILITY (observability/)
   - Logging setup

Surfaces: engine.FarmapEngine (orchestration), api/server.py (HTTP),
cli.py (command line).
"""

__version__ = "0.1.0"
