"""GitHub and crates.io metadata fetching via REST APIs."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from dep_inspector.errors import EnrichmentQueryFailure
from dep_inspector.models import CanonicalRepository, EnrichmentRecord, RegistryRecord

logger = logging.getLogger(__name__)

USER_AGENT = "dep-inspector"
ACTIVE_WINDOW = timedelta(weeks=4 * 6)  # ~6 months


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _failure(resp: httpx.Response, what: str) -> EnrichmentQueryFailure:
    status = resp.status_code
    retry_after: Optional[float] = None
    if resp.headers.get("retry-after", "").isdigit():
        retry_after = float(resp.headers["retry-after"])
    # 401/404 will not get better on a second try; 403 is usually a rate limit.
    retryable = status >= 500 or status in (403, 429)
    return EnrichmentQueryFailure(
        f"{what} failed with HTTP {status}",
        status_code=status,
        retryable=retryable,
        retry_after=retry_after,
    )


class GitHubFetcher:
    """Fetches repository popularity and activity from the GitHub REST API.

    ``token`` is either ``user:token`` (sent as basic auth) or a bare token
    (sent as a bearer token).  Without one, GitHub allows 60 requests/hour.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        proxy: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        self.token = token
        self.proxy = proxy
        self.timeout = timeout
        self.base_url = "https://api.github.com"
        self._client: Optional[httpx.AsyncClient] = None

    # ── HTTP plumbing ─────────────────────────────────────────────────────

    @property
    def headers(self) -> dict[str, str]:
        h: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": USER_AGENT,
        }
        if self.token and ":" not in self.token:
            h["Authorization"] = f"Bearer {self.token}"
        return h

    @property
    def auth(self) -> Optional[httpx.BasicAuth]:
        if self.token and ":" in self.token:
            user, _, secret = self.token.partition(":")
            return httpx.BasicAuth(user, secret)
        return None

    @property
    def is_unauthenticated(self) -> bool:
        return not self.token

    async def _client_instance(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs: dict[str, Any] = {}
            if self.auth is not None:
                kwargs["auth"] = self.auth
            if self.proxy:
                kwargs["proxy"] = self.proxy
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=self.timeout,
                **kwargs,
            )
        return self._client

    async def _get(self, path: str, **kwargs) -> httpx.Response:  # type: ignore[no-untyped-def]
        """GET with rate-limit awareness; transport errors become query failures."""
        client = await self._client_instance()
        try:
            resp = await client.get(path, **kwargs)
        except httpx.TimeoutException as e:
            raise EnrichmentQueryFailure(f"GET {path} timed out") from e
        except httpx.HTTPError as e:
            raise EnrichmentQueryFailure(f"GET {path} failed: {e}") from e
        if resp.status_code == 403 and "rate limit" in resp.text.lower():
            remaining = resp.headers.get("x-ratelimit-remaining", "0")
            if self.is_unauthenticated:
                hint = "Running unauthenticated (60 req/hour); set GITHUB_TOKEN."
            else:
                hint = f"Authenticated rate limit hit (remaining: {remaining})."
            raise EnrichmentQueryFailure(
                f"GitHub API rate limit exceeded. {hint}",
                status_code=resp.status_code,
                retry_after=_failure(resp, path).retry_after,
            )
        if resp.status_code >= 400:
            raise _failure(resp, f"GET {path}")
        return resp

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ── Repository metrics ────────────────────────────────────────────────

    async def fetch_repo_info(self, owner: str, repo: str) -> dict:
        """Fetch basic repo information."""
        resp = await self._get(f"/repos/{owner}/{repo}")
        try:
            return resp.json()
        except ValueError as e:
            raise EnrichmentQueryFailure(f"invalid JSON for {owner}/{repo}") from e

    async def fetch_active_contributors(
        self, owner: str, repo: str, since: Optional[datetime] = None
    ) -> int:
        """Count distinct commit author emails since ``since`` (default 6 months)."""
        since = since or datetime.now(timezone.utc) - ACTIVE_WINDOW
        resp = await self._get(
            f"/repos/{owner}/{repo}/commits",
            params={"since": since.isoformat(), "per_page": "100"},
        )
        try:
            commits = resp.json()
            emails = {
                ((item.get("commit") or {}).get("author") or {}).get("email", "")
                for item in commits
            }
        except (ValueError, AttributeError) as e:
            raise EnrichmentQueryFailure(f"invalid commit list for {owner}/{repo}") from e
        emails.discard("")
        return len(emails)

    async def fetch_enrichment(self, repository: CanonicalRepository) -> EnrichmentRecord:
        """Fetch every metric of a canonical repository as one record.

        A failed commit listing still yields a record, marked ``valid=False``.
        """
        info = await self.fetch_repo_info(repository.owner, repository.name)
        valid = True
        try:
            contributors: Optional[int] = await self.fetch_active_contributors(
                repository.owner, repository.name
            )
        except EnrichmentQueryFailure as e:
            logger.info("no contributor count for %s: %s", repository, e)
            contributors, valid = None, False
        try:
            record = EnrichmentRecord(
                repository=repository,
                stargazers_count=info.get("stargazers_count"),
                forks_count=info.get("forks_count"),
                open_issues_count=info.get("open_issues_count"),
                archived=bool(info.get("archived", False)),
                last_activity=_parse_time(info.get("pushed_at")),
                active_contributors=contributors,
                fetched_at=datetime.now(timezone.utc),
                valid=valid,
            )
        except (ValidationError, ValueError, TypeError, AttributeError) as e:
            raise EnrichmentQueryFailure(
                f"unexpected repository payload for {repository}: {e}", retryable=False
            ) from e
        logger.debug("fetched %s: %s stars", repository, record.stargazers_count)
        return record


class CratesIoFetcher:
    """Fetches reverse-dependency counts and update dates from crates.io."""

    def __init__(self, proxy: Optional[str] = None, timeout: float = 10.0) -> None:
        self.proxy = proxy
        self.timeout = timeout
        self.base_url = "https://crates.io/api/v1"
        self._client: Optional[httpx.AsyncClient] = None

    async def _client_instance(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs: dict[str, Any] = {"proxy": self.proxy} if self.proxy else {}
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
                **kwargs,
            )
        return self._client

    async def _get_json(self, path: str) -> dict:
        client = await self._client_instance()
        try:
            resp = await client.get(path)
        except httpx.HTTPError as e:
            raise EnrichmentQueryFailure(f"GET {path} failed: {e}") from e
        if resp.status_code >= 400:
            raise _failure(resp, f"GET {path}")
        try:
            return resp.json()
        except ValueError as e:
            raise EnrichmentQueryFailure(f"invalid JSON from {path}") from e

    async def fetch_registry(self, name: str) -> RegistryRecord:
        """Fetch crates.io metadata of one crate."""
        info = await self._get_json(f"/crates/{name}")
        reverse = await self._get_json(f"/crates/{name}/reverse_dependencies")
        try:
            updated = _parse_time((info.get("crate") or {}).get("updated_at"))
            return RegistryRecord(
                name=name,
                dependents=(reverse.get("meta") or {}).get("total"),
                last_updated=updated.strftime("%Y-%m-%d") if updated else None,
            )
        except (ValidationError, ValueError, TypeError, AttributeError) as e:
            raise EnrichmentQueryFailure(
                f"unexpected crates.io payload for {name}: {e}", retryable=False
            ) from e

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
