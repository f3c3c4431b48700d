"""
Engine Orchestration Module

Single entry point that wires storage, ingestion and the query layer
together. The API server and the CLI only talk to FarmapEngine.

DESIGN PRINCIPLES:
==================
1. Layers communicate ONLY through contracts
2. Imports mutate the collection; queries build fresh views per call
3. Queries never run interleaved with an import on the same engine
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .contracts.base import Fid, InvalidInputError, SpamScore
from .contracts.results import (
    DatedSpamScoreCount, DatedSpamScoreDistribution, FidScoreShift,
    SpamScoreDistribution,
)
from .core.store import UserCollection
from .ingestion import ImportReport, JsonlFileAdapter
from .ingestion.github import (
    GithubLabelsAdapter, GithubLabelsClient, read_known_commits, write_known_commits,
)
from .ingestion.social import PinataAdapter, PinataClient
from .query.cast_set import SetWithCastData
from .query.spam_set import SetWithSpamEntries
from .storage import CollectionStorage, StorageConfig, create_storage
from .temporal.time_iterator import add_days, first_of_next_month


logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class FarmapConfig:
    """Unified configuration for storage, API access and importers."""
    storage: Optional[StorageConfig] = None
    allow_token: Optional[str] = None
    github_token: Optional[str] = None
    names_path: Optional[str] = None
    shift_lookback_days: int = 14
    shift_span_days: int = 21
    log_level: str = "INFO"

    def __post_init__(self):
        self.storage = self.storage or StorageConfig()

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> FarmapConfig:
        env = os.environ if environ is None else environ
        db_path = env.get("FARMAP_DB_PATH")
        backend = env.get("FARMAP_STORAGE", "file" if db_path else "memory")
        return FarmapConfig(
            storage=StorageConfig(backend_type=backend, path=db_path),
            allow_token=env.get("ALLOW_TOKEN") or None,
            github_token=env.get("GH_AUTH_TOKEN") or None,
            names_path=env.get("FARMAP_NAMES_PATH") or None,
            log_level=env.get("FARMAP_LOG_LEVEL", "INFO"),
        )


# =============================================================================
# ENGINE
# =============================================================================

class FarmapEngine:
    """
    Owns one UserCollection and answers queries over it.

    `clock` supplies "today" for the relative-date queries.
    """

    def __init__(
        self,
        config: Optional[FarmapConfig] = None,
        storage: Optional[CollectionStorage] = None,
        collection: Optional[UserCollection] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.config = config or FarmapConfig()
        self._storage = storage or create_storage(self.config.storage)
        self._collection = collection if collection is not None else UserCollection()
        self._clock = clock

    @property
    def collection(self) -> UserCollection:
        return self._collection

    def today(self) -> date:
        return self._clock()

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def load(self) -> UserCollection:
        """Replace the in-memory collection with the stored snapshot, if any."""
        loaded = self._storage.load()
        if loaded is None:
            logger.info("no snapshot found, starting with an empty collection")
        else:
            self._collection = loaded
            logger.info("loaded %d users", loaded.user_count())
        return self._collection

    def save(self) -> None:
        self._storage.save(self._collection)

    # =========================================================================
    # IMPORT
    # =========================================================================

    def import_path(self, path) -> ImportReport:
        return JsonlFileAdapter(path).import_into(self._collection)

    def import_github(self, client: Optional[GithubLabelsClient] = None) -> ImportReport:
        client = client or GithubLabelsClient(token=self.config.github_token)
        known = read_known_commits(self.config.names_path) if self.config.names_path else set()
        adapter = GithubLabelsAdapter(client, known)
        report = adapter.import_into(self._collection)
        if self.config.names_path:
            write_known_commits(self.config.names_path, adapter.known_commits())
        return report

    def import_pinata(
        self,
        client: Optional[PinataClient] = None,
        fids: Optional[Iterable[Fid]] = None,
        follow_counts: bool = False,
    ) -> ImportReport:
        client = client or PinataClient()
        fids = list(fids) if fids is not None else self._collection.fids()
        return PinataAdapter(client, fids, follow_counts).import_into(self._collection)

    # =========================================================================
    # QUERY SURFACE
    # =========================================================================

    def spam_set(
        self, from_fid: Optional[int] = None, to_fid: Optional[int] = None
    ) -> Optional[SetWithSpamEntries]:
        """Spam-bearing users in the fid range, or None if there are none."""
        spam_set = SetWithSpamEntries.try_from_collection(self._collection)
        if spam_set is None or (from_fid is None and to_fid is None):
            return spam_set
        if not spam_set.fid_range(from_fid, to_fid):
            return None
        return spam_set

    def score_for_fid(self, fid: Fid) -> Optional[SpamScore]:
        return self._collection.spam_score_by_fid(fid)

    def current_distribution(self) -> Optional[SpamScoreDistribution]:
        spam_set = self.spam_set()
        return spam_set.current_spam_score_distribution() if spam_set else None

    def distribution_at(self, at: date) -> Optional[SpamScoreDistribution]:
        spam_set = self.spam_set()
        return spam_set.spam_score_distribution_at_date(at) if spam_set else None

    def weekly_series(
        self, from_fid: Optional[int] = None, to_fid: Optional[int] = None
    ) -> Optional[List[DatedSpamScoreCount]]:
        spam_set = self.spam_set(from_fid, to_fid)
        return spam_set.weekly_spam_score_counts() if spam_set else None

    def weekly_distributions(
        self, from_fid: Optional[int] = None, to_fid: Optional[int] = None
    ) -> Optional[List[DatedSpamScoreDistribution]]:
        spam_set = self.spam_set(from_fid, to_fid)
        return spam_set.weekly_spam_score_distributions() if spam_set else None

    def monthly_distributions(self) -> Optional[List[DatedSpamScoreDistribution]]:
        spam_set = self.spam_set()
        return spam_set.monthly_spam_score_distributions() if spam_set else None

    def shift_matrix(
        self,
        from_date: date,
        span_days: int,
        from_fid: Optional[int] = None,
        to_fid: Optional[int] = None,
    ) -> Optional[List[FidScoreShift]]:
        spam_set = self.spam_set(from_fid, to_fid)
        if spam_set is None:
            return None
        return spam_set.spam_changes_with_fid_score_shift(from_date, span_days)

    def latest_moves(
        self,
        days: Optional[int] = None,
        from_fid: Optional[int] = None,
        to_fid: Optional[int] = None,
    ) -> Optional[List[FidScoreShift]]:
        """Shift matrix starting `days` ago (default lookback) over the default span."""
        lookback = self.config.shift_lookback_days if days is None else days
        start = add_days(self.today(), -lookback)
        return self.shift_matrix(start, self.config.shift_span_days, from_fid, to_fid)

    def cohort_distributions(self, year: int, month: int) -> Optional[List[DatedSpamScoreDistribution]]:
        """Monthly distributions of users whose first label falls in year-month."""
        try:
            start = date(year, month, 1)
        except (ValueError, OverflowError):
            raise InvalidInputError(f"invalid cohort month {year}-{month}") from None
        end = first_of_next_month(start)
        spam_set = self.spam_set()
        if spam_set is None:
            return None
        cohort = spam_set.filtered(
            lambda member: start <= member.earliest_spam_update().date < end
        )
        return cohort.monthly_spam_score_distributions() if cohort else None

    def casts_for_moved(self, from_score: SpamScore, to_score: SpamScore, timespan: int) -> Tuple[int, float]:
        """
        Users scored `from_score` `timespan` days ago whose latest score is
        `to_score`: their count and average number of cast records.
        """
        begin = add_days(self.today(), -timespan)
        spam_set = self.spam_set()
        if spam_set is None:
            return 0, 0.0
        moved = spam_set.filtered(
            lambda member: member.spam_score_at_date(begin) is from_score
            and member.latest_spam_update().score is to_score
        )
        if moved is None:
            return 0, 0.0
        cast_set = SetWithCastData.try_from_stores(member.store for member in moved)
        average = cast_set.average_total_casts() if cast_set else 0.0
        logger.info("casts_for_moved %s->%s since %s: %d users", from_score, to_score, begin, moved.user_count())
        return moved.user_count(), average

    def count_updates(self) -> Dict[date, int]:
        spam_set = self.spam_set()
        return spam_set.count_updates() if spam_set else {}
