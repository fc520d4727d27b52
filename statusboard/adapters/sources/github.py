"""GitHub source adapters.

Two views share one client configuration:
- gh_prs: open pull requests authored by the token owner
- gh_runs: recent GitHub Actions runs for configured repositories
"""

import logging
import time
from typing import Any

import httpx

from statusboard.core.errors import SourceRateLimited, SourceUnexpected
from statusboard.core.models import FetchContext

from .base import HttpSourceAdapter, parse_retry_after
from .types import PullRequest, WorkflowRun, parse_timestamp

logger = logging.getLogger(__name__)


class _GitHubSourceAdapter(HttpSourceAdapter):
    service_name = "github"

    def __init__(
        self,
        github_token: str,
        api_url: str = "https://api.github.com",
        max_items: int = 50,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(api_url, max_items=max_items, transport=transport)
        self.github_token = github_token

    def is_configured(self) -> bool:
        return bool(self.github_token)

    def _get_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.github_token:
            headers["Authorization"] = f"Bearer {self.github_token}"
        return headers

    def _raise_for_status(self, response: httpx.Response, path: str) -> None:
        # GitHub reports exhausted quotas as 403 with a zero remaining count
        if (
            response.status_code == 403
            and response.headers.get("X-RateLimit-Remaining") == "0"
        ):
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            reset = response.headers.get("X-RateLimit-Reset")
            if retry_after is None and reset and reset.isdigit():
                retry_after = max(0.0, int(reset) - time.time())
            logger.error(f"GitHub rate limit exhausted for {path}")
            raise SourceRateLimited("github: rate limit exhausted", retry_after=retry_after)
        super()._raise_for_status(response, path)


def _repo_from_api_url(url: str) -> str:
    # https://api.github.com/repos/owner/repo -> owner/repo
    marker = "/repos/"
    if marker in url:
        return url.split(marker, 1)[1].strip("/")
    return ""


class GitHubPullRequestsAdapter(_GitHubSourceAdapter):
    """GitHub-backed `gh_prs` view."""

    async def fetch(self, context: FetchContext) -> tuple[PullRequest, ...]:
        """Return open PRs authored by the authenticated user."""
        self._require_configured()

        prs: list[PullRequest] = []
        page = 1
        while len(prs) < self.max_items:
            per_page = min(100, self.max_items - len(prs))
            data = await self._get_json(
                "/search/issues",
                context,
                params={
                    "q": "is:pr is:open author:@me archived:false",
                    "sort": "updated",
                    "order": "desc",
                    "per_page": per_page,
                    "page": page,
                },
            )
            items = data.get("items", [])
            prs.extend(self._parse_item(item) for item in items)
            if len(items) < per_page:
                break
            page += 1

        logger.debug(f"Fetched {len(prs)} pull requests")
        return tuple(prs[: self.max_items])

    @staticmethod
    def _parse_item(item: dict[str, Any]) -> PullRequest:
        return PullRequest(
            number=int(item.get("number", 0)),
            title=item.get("title", ""),
            repo=_repo_from_api_url(item.get("repository_url", "")),
            url=item.get("html_url", ""),
            draft=bool(item.get("draft", False)),
            updated=parse_timestamp(item.get("updated_at")),
        )


class GitHubWorkflowRunsAdapter(_GitHubSourceAdapter):
    """GitHub-backed `gh_runs` view."""

    def __init__(
        self,
        github_token: str,
        repos: list[str],
        api_url: str = "https://api.github.com",
        runs_per_repo: int = 5,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the workflow runs adapter.

        Args:
            github_token: GitHub token with actions:read.
            repos: Repositories to report on, as owner/name.
            runs_per_repo: Most recent runs kept per repository.
        """
        super().__init__(
            github_token,
            api_url=api_url,
            max_items=max(1, runs_per_repo * max(1, len(repos))),
            transport=transport,
        )
        invalid = [r for r in repos if r.count("/") != 1]
        if invalid:
            raise ValueError(f"Repositories must be owner/name, got {invalid}")
        self.repos = list(repos)
        self.runs_per_repo = runs_per_repo

    def is_configured(self) -> bool:
        return bool(self.github_token and self.repos)

    async def fetch(self, context: FetchContext) -> tuple[WorkflowRun, ...]:
        """Return the latest runs of each configured repository, in repo order."""
        self._require_configured()

        runs: list[WorkflowRun] = []
        for repo in self.repos:
            data = await self._get_json(
                f"/repos/{repo}/actions/runs",
                context,
                params={"per_page": self.runs_per_repo},
            )
            if not isinstance(data, dict):
                raise SourceUnexpected(f"github: unexpected runs payload for {repo}")
            for run in data.get("workflow_runs", [])[: self.runs_per_repo]:
                runs.append(self._parse_run(repo, run))

        logger.debug(f"Fetched {len(runs)} workflow runs across {len(self.repos)} repos")
        return tuple(runs)

    @staticmethod
    def _parse_run(repo: str, run: dict[str, Any]) -> WorkflowRun:
        return WorkflowRun(
            id=int(run.get("id", 0)),
            repo=repo,
            name=run.get("name") or run.get("display_title", ""),
            branch=run.get("head_branch") or "",
            status=run.get("status", ""),
            conclusion=run.get("conclusion"),
            url=run.get("html_url", ""),
            updated=parse_timestamp(run.get("updated_at")),
        )
