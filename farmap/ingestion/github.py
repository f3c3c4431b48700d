"""
GitHub Label Mirror
===================

Fetches the spam label feed published as commits of warpcast/labels.

- Commit list:  https://api.github.com/repos/warpcast/labels/commits
- Label file:   https://raw.githubusercontent.com/warpcast/labels/<sha>/spam.jsonl

Commits already imported are remembered in a plain names file (one sha per
line) so a re-run only fetches new commits.
"""

from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

import httpx

from ..contracts.base import (
    CommitHash, Error, FarmapError, Fid, MalformedResponseError,
    SourceUnreachableError,
)
from . import IngestionAdapter
from .records import parse_label_lines


logger = logging.getLogger(__name__)

RAW_BASE_URL = "https://raw.githubusercontent.com/warpcast/labels/"
STATUS_URL = "https://api.github.com/repos/warpcast/labels/commits"
USER_AGENT = "farmap"


# =============================================================================
# PARSERS (pure)
# =============================================================================

def parse_status(body: str) -> List[str]:
    """Commit ids from the commits endpoint (a JSON array of objects with "sha")."""
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        raise MalformedResponseError(f"commit list is not JSON: {body[:200]!r}") from None
    if not isinstance(payload, list):
        raise MalformedResponseError("commit list must be a JSON array")
    shas = []
    for item in payload:
        sha = item.get("sha") if isinstance(item, dict) else None
        if not isinstance(sha, str):
            raise MalformedResponseError(f"commit entry without sha: {item!r}")
        shas.append(sha)
    return shas


def build_path(base_url: str, sha: str) -> str:
    if not base_url.endswith("/"):
        base_url += "/"
    return f"{base_url}{sha}/spam.jsonl"


def read_known_commits(path) -> Set[str]:
    path = Path(path)
    if not path.is_file():
        return set()
    return {line.strip() for line in path.read_text(encoding="utf-8").splitlines() if line.strip()}


def write_known_commits(path, shas: Iterable[str]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(sorted(set(shas))), encoding="utf-8")


# =============================================================================
# CLIENT
# =============================================================================

class GithubLabelsClient:
    """Thin httpx wrapper. Pass `client` to inject a transport in tests."""

    def __init__(
        self,
        token: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        base_url: str = RAW_BASE_URL,
        status_url: str = STATUS_URL,
        timeout: float = 15.0,
    ):
        self._client = client or httpx.Client(
            timeout=timeout, headers={"User-Agent": USER_AGENT}, follow_redirects=True
        )
        self._token = token
        self.base_url = base_url
        self.status_url = status_url

    def _api_headers(self) -> Dict[str, str]:
        headers = {"User-Agent": USER_AGENT}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _get_text(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        try:
            resp = self._client.get(url, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise SourceUnreachableError(f"GET {url} failed: {exc}") from exc
        return resp.text

    def fetch_commit_hashes(self) -> List[str]:
        return parse_status(self._get_text(self.status_url, self._api_headers()))

    def fetch_commit_body(self, sha: str) -> str:
        return self._get_text(build_path(self.base_url, sha), {"User-Agent": USER_AGENT})

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GithubLabelsClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class GithubLabelsAdapter(IngestionAdapter):
    """
    Imports every listed commit not in `known_commits`.

    The commit list failing is fatal (SourceUnreachableError). A single
    commit failing is reported and skipped; it stays out of
    imported_commits so the next run retries it.
    """

    def __init__(self, client: GithubLabelsClient, known_commits: Iterable[str] = ()):
        self._client = client
        self._known = set(known_commits)
        self.imported_commits: List[str] = []

    @property
    def source_type(self) -> str:
        return "github_labels"

    def pull(self) -> Tuple[List[Tuple[Fid, object]], List[Error]]:
        shas = self._client.fetch_commit_hashes()
        missing = [sha for sha in shas if sha not in self._known]
        logger.info("%d commits listed, %d not yet imported", len(shas), len(missing))

        values: List[Tuple[Fid, object]] = []
        errors: List[Error] = []
        for sha in missing:
            try:
                source = CommitHash.from_hex(sha)
                body = self._client.fetch_commit_body(sha)
            except FarmapError as exc:
                logger.error("skipping commit %s: %s", sha, exc)
                errors.append(exc.to_error().with_context("commit", sha))
                continue
            commit_values, commit_errors = parse_label_lines(
                body.splitlines(), origin=sha, source=source
            )
            values.extend(commit_values)
            errors.extend(commit_errors)
            self.imported_commits.append(sha)
        return values, errors

    def known_commits(self) -> Set[str]:
        """Previously known commits plus the ones imported by this adapter."""
        return self._known | set(self.imported_commits)
