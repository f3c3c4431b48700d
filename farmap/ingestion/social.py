"""
Social Data Sources

Pinata hub (Farcaster messages) for cast activity and follower counts, and
the Wield follower response parser.

Hub timestamps are seconds since the Farcaster epoch, 2021-01-01 UTC.
"""

from __future__ import annotations
import json
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from ..contracts.base import (
    Error, FarmapError, Fid, MalformedResponseError, SourceUnreachableError,
)
from ..contracts.values import CastType, Dated, DatedCastType, FollowCount
from . import IngestionAdapter


logger = logging.getLogger(__name__)

PINATA_BASE_URL = "https://hub.pinata.cloud/v1/"
FARCASTER_EPOCH = datetime(2021, 1, 1, tzinfo=timezone.utc)


# =============================================================================
# PARSERS (pure)
# =============================================================================

def farcaster_date(seconds: int) -> date:
    return (FARCASTER_EPOCH + timedelta(seconds=seconds)).date()


def _messages(payload: Any) -> List[Dict[str, Any]]:
    messages = payload.get("messages") if isinstance(payload, dict) else None
    if not isinstance(messages, list):
        raise MalformedResponseError("hub response has no 'messages' array")
    return messages


def parse_casts(payload: Any) -> List[Tuple[Fid, DatedCastType]]:
    """castsByFid messages as (fid, dated cast record) pairs."""
    result = []
    for message in _messages(payload):
        try:
            data = message["data"]
            cast = Dated(CastType.parse(data["castAddBody"]["type"]), farcaster_date(int(data["timestamp"])))
            result.append((Fid(data["fid"]), cast))
        except (FarmapError, KeyError, TypeError, ValueError, OverflowError) as exc:
            raise MalformedResponseError(f"bad cast message {message!r}: {exc}") from exc
    return result


def parse_followers(payload: Any) -> List[Fid]:
    """linksByTargetFid messages as the fids of the followers."""
    try:
        return [Fid(message["data"]["fid"]) for message in _messages(payload)]
    except (FarmapError, KeyError, TypeError) as exc:
        raise MalformedResponseError(f"bad follower message: {exc}") from exc


def parse_wield_fids(payload: Any) -> List[Fid]:
    """Wield follower response: result.users[].fid, given as strings."""
    users = payload.get("result", {}).get("users") if isinstance(payload, dict) else None
    if not isinstance(users, list):
        raise MalformedResponseError("wield response has no result.users array")
    try:
        return [Fid.parse(user["fid"]) for user in users]
    except (FarmapError, KeyError, TypeError) as exc:
        raise MalformedResponseError(f"bad wield user entry: {exc}") from exc


# =============================================================================
# CLIENT
# =============================================================================

class PinataClient:
    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        base_url: str = PINATA_BASE_URL,
        timeout: float = 15.0,
    ):
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"

    def _get_json(self, endpoint: str, params: Dict[str, Any]) -> Any:
        url = self.base_url + endpoint
        try:
            resp = self._client.get(url, params=params)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise SourceUnreachableError(f"GET {url} failed: {exc}") from exc
        try:
            return resp.json()
        except json.JSONDecodeError:
            raise MalformedResponseError(f"{url} did not return JSON") from None

    def casts_by_fid(self, fid: Fid) -> Any:
        return self._get_json("castsByFid", {"fid": fid.value})

    def links_by_target_fid(self, fid: Fid) -> Any:
        return self._get_json("linksByTargetFid", {"link_type": "follow", "target_fid": fid.value})

    def reactions_by_fid(self, fid: Fid, reaction_type: str) -> Any:
        if reaction_type not in ("Like", "Recast"):
            raise ValueError(f"reaction_type must be Like or Recast, got {reaction_type!r}")
        return self._get_json("reactionsByFid", {"reaction_type": reaction_type, "fid": fid.value})

    def close(self) -> None:
        self._client.close()


class PinataAdapter(IngestionAdapter):
    """
    Cast records (and optionally follower counts) for a list of fids.

    A fid whose request fails is reported and skipped.
    """

    def __init__(self, client: PinataClient, fids: Iterable[Fid], follow_counts: bool = False):
        self._client = client
        self._fids = list(fids)
        self._follow_counts = follow_counts

    @property
    def source_type(self) -> str:
        return "pinata"

    def pull(self) -> Tuple[List[Tuple[Fid, object]], List[Error]]:
        values: List[Tuple[Fid, object]] = []
        errors: List[Error] = []
        logger.info("fetching cast data for %d fids", len(self._fids))
        for fid in self._fids:
            try:
                values.extend(parse_casts(self._client.casts_by_fid(fid)))
                if self._follow_counts:
                    followers = parse_followers(self._client.links_by_target_fid(fid))
                    values.append((fid, FollowCount(len(followers))))
            except FarmapError as exc:
                logger.warning("pinata fetch for fid %s failed: %s", fid, exc)
                errors.append(exc.to_error().with_context("fid", str(fid)))
        return values, errors
