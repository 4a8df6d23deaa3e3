"""GitHub REST/GraphQL client used for enrichment and repository dispatch."""

from __future__ import annotations

from typing import Any

import httpx

from fieldrelay.config import GitHubConfig
from fieldrelay.core.errors import UpstreamFailure
from fieldrelay.utils.logging import get_logger
from fieldrelay.webhooks.models import EnrichedContent, ProjectInfo, as_dict

log = get_logger(__name__)

_CONTENT_FIELDS = """
    __typename
    ... on PullRequest { number title url author { login } }
    ... on Issue { number title url author { login } }
"""

CONTENT_QUERY = """
query($contentId: ID!) {
  content: node(id: $contentId) {%s}
}
""" % _CONTENT_FIELDS

CONTENT_WITH_PROJECT_QUERY = """
query(
  $contentId: ID!
  $projectId: ID!
  $withCounts: Boolean!
  $memberReviewQuery: String!
  $tfReviewQuery: String!
) {
  content: node(id: $contentId) {%s}
  project: node(id: $projectId) {
    ... on ProjectV2 {
      number
      title
      memberReviewCount: items(first: 1, query: $memberReviewQuery) @include(if: $withCounts) {
        totalCount
      }
      tfReviewCount: items(first: 1, query: $tfReviewQuery) @include(if: $withCounts) {
        totalCount
      }
    }
  }
}
""" % _CONTENT_FIELDS


def queue_query(status: str) -> str:
    """Project item search for open pull requests sitting in *status*."""
    return f'is:pr is:open status:"{status}"'


class GitHubClient:
    def __init__(self, config: GitHubConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        if client is None:
            options: dict[str, Any] = {"base_url": config.api_url.rstrip("/")}
            if config.timeout is not None:
                options["timeout"] = config.timeout
            client = httpx.AsyncClient(**options)
        self._client = client

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": "fieldrelay",
        }

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # GraphQL enrichment
    # ------------------------------------------------------------------

    async def fetch_content(
        self,
        content_id: str,
        project_id: str | None = None,
        *,
        with_counts: bool = False,
        member_review_status: str = "PR Member Review",
        tf_review_status: str = "PR TF Review",
    ) -> EnrichedContent | None:
        """Look up the issue/PR behind a project item, plus its project if given.

        Returns None when GitHub has no such content (deleted, inaccessible,
        or not an issue/PR). Any other failure raises UpstreamFailure.
        """
        if project_id:
            query = CONTENT_WITH_PROJECT_QUERY
            variables: dict[str, Any] = {
                "contentId": content_id,
                "projectId": project_id,
                "withCounts": with_counts,
                "memberReviewQuery": queue_query(member_review_status),
                "tfReviewQuery": queue_query(tf_review_status),
            }
        else:
            query = CONTENT_QUERY
            variables = {"contentId": content_id}

        data = await self._graphql(query, variables)
        return parse_enrichment(data)

    async def _graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = await self._client.post(
                self._config.graphql_url,
                json={"query": query, "variables": variables},
                headers=self._headers,
            )
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as e:
            log.error("graphql_http_error", status=e.response.status_code, body=e.response.text[:500])
            raise UpstreamFailure(f"GitHub GraphQL returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            log.error("graphql_transport_error", error=str(e))
            raise UpstreamFailure(f"GitHub GraphQL request failed: {e}") from e
        except ValueError as e:
            log.error("graphql_decode_error", error=str(e))
            raise UpstreamFailure("GitHub GraphQL returned invalid JSON") from e

        if not isinstance(body, dict):
            raise UpstreamFailure("GitHub GraphQL returned an unexpected body")

        errors = body.get("errors") or []
        if not isinstance(errors, list):
            errors = [errors]
        unexpected = [
            e for e in errors if not isinstance(e, dict) or e.get("type") != "NOT_FOUND"
        ]
        if unexpected:
            log.error("graphql_errors", errors=unexpected)
            raise UpstreamFailure(
                "GitHub GraphQL error: " + "; ".join(_error_message(e) for e in unexpected)
            )
        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise UpstreamFailure("GitHub GraphQL returned an unexpected data shape")
        return data

    # ------------------------------------------------------------------
    # Repository dispatch
    # ------------------------------------------------------------------

    async def dispatch(
        self, repository: str, event_type: str, client_payload: dict[str, Any]
    ) -> None:
        """Fire a ``repository_dispatch`` event on *repository* (``owner/repo``)."""
        path = f"/repos/{repository}/dispatches"
        try:
            resp = await self._client.post(
                path,
                json={"event_type": event_type, "client_payload": client_payload},
                headers=self._headers,
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error(
                "dispatch_http_error",
                repository=repository,
                status=e.response.status_code,
                body=e.response.text[:500],
            )
            raise UpstreamFailure(
                f"Repository dispatch to {repository} returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            log.error("dispatch_transport_error", repository=repository, error=str(e))
            raise UpstreamFailure(f"Repository dispatch to {repository} failed: {e}") from e

        log.info("dispatch_sent", repository=repository, event_type=event_type)


def parse_enrichment(data: dict[str, Any]) -> EnrichedContent | None:
    """Turn the GraphQL ``data`` object into EnrichedContent."""
    node = data.get("content")
    if not isinstance(node, dict) or node.get("__typename") not in ("PullRequest", "Issue"):
        return None

    project: ProjectInfo | None = None
    project_node = as_dict(data.get("project"))
    if isinstance(project_node.get("number"), int):
        project = ProjectInfo(
            number=project_node["number"],
            title=project_node.get("title") or "",
            member_review_count=_total(project_node.get("memberReviewCount")),
            tf_review_count=_total(project_node.get("tfReviewCount")),
        )

    # Deleted accounts come back as a null author
    author = as_dict(node.get("author"))
    return EnrichedContent(
        node_type=node["__typename"],
        number=node.get("number", 0),
        title=node.get("title") or "",
        url=node.get("url") or "",
        author_login=author.get("login") or "ghost",
        project=project,
    )


def _total(connection: Any) -> int | None:
    if not isinstance(connection, dict):
        return None
    total = connection.get("totalCount")
    return total if isinstance(total, int) else None


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message", error))
    return str(error)
