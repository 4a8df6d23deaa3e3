"""Slack incoming-webhook notifier."""

from __future__ import annotations

from typing import Any

import httpx

from fieldrelay.config import SlackConfig
from fieldrelay.core.errors import ConfigurationError, UpstreamFailure
from fieldrelay.notifiers.base import Notifier
from fieldrelay.utils.logging import get_logger
from fieldrelay.webhooks.models import NotificationRequest

log = get_logger(__name__)


def _mrkdwn_escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def build_message(
    request: NotificationRequest,
    *,
    quote_title: bool = True,
    member_review_status: str = "PR Member Review",
    tf_review_status: str = "PR TF Review",
) -> dict[str, Any]:
    """Build the ``{"text", "blocks"}`` body for one field change.

    Requires enrichment: the message links to the issue/PR by number.
    """
    change = request.change
    item = request.enriched
    if item is None:
        raise ValueError("Slack messages need enriched content")

    title = _mrkdwn_escape(item.title)
    if change.is_cleared:
        headline = f"*{change.field_name} cleared*"
        fallback = f"{change.field_name} cleared: {item.kind} #{item.number} {item.title}"
    else:
        headline = f"*{change.field_name}: {_mrkdwn_escape(change.new_value)}*"
        fallback = f"{change.field_name} → {change.new_value}: {item.kind} #{item.number} {item.title}"

    blocks: list[dict[str, Any]] = [
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": f"{headline}\n<{item.url}|{item.kind} #{item.number}: {title}>",
            },
        },
    ]

    if quote_title and item.title:
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": f">{title}"},
        })

    blocks.append({
        "type": "context",
        "elements": [{
            "type": "mrkdwn",
            "text": f"Author: {item.author_login} | Moved by: {request.sender}",
        }],
    })

    project = item.project
    if project is not None and project.has_counts:
        blocks.append({"type": "divider"})
        blocks.append({
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": (
                    f"*Queue:* {project.member_review_count} in {member_review_status}"
                    f" | {project.tf_review_count} in {tf_review_status}"
                ),
            },
        })

    return {"text": fallback, "blocks": blocks}


class SlackNotifier(Notifier):
    def __init__(
        self,
        config: SlackConfig,
        client: httpx.AsyncClient | None = None,
        *,
        quote_title: bool = True,
        member_review_status: str = "PR Member Review",
        tf_review_status: str = "PR TF Review",
    ) -> None:
        self._config = config
        if client is None:
            client = (
                httpx.AsyncClient()
                if config.timeout is None
                else httpx.AsyncClient(timeout=config.timeout)
            )
        self._client = client
        self._quote_title = quote_title
        self._member_review_status = member_review_status
        self._tf_review_status = tf_review_status

    @property
    def name(self) -> str:
        return "slack"

    async def close(self) -> None:
        await self._client.aclose()

    async def notify(self, request: NotificationRequest) -> str:
        if not self._config.webhook_url:
            raise ConfigurationError("Slack webhook URL is not configured.")

        message = build_message(
            request,
            quote_title=self._quote_title,
            member_review_status=self._member_review_status,
            tf_review_status=self._tf_review_status,
        )
        try:
            resp = await self._client.post(self._config.webhook_url, json=message)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error("slack_http_error", status=e.response.status_code, body=e.response.text[:500])
            raise UpstreamFailure(f"Slack returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            log.error("slack_transport_error", error=str(e))
            raise UpstreamFailure(f"Slack request failed: {e}") from e

        log.info("slack_notification_sent", route=request.route, field=request.change.field_name)
        return "Slack notification sent."
