"""Relay field changes as GitHub Actions ``repository_dispatch`` events."""

from __future__ import annotations

from typing import Any

from fieldrelay.github.client import GitHubClient
from fieldrelay.notifiers.base import Notifier
from fieldrelay.webhooks.models import NotificationRequest


def build_client_payload(request: NotificationRequest) -> dict[str, Any]:
    change = request.change
    return {
        "content_node_id": request.content_node_id,
        "field_name": change.field_name,
        "old_value": change.old_value,
        "new_value": change.new_value,
        "changed_by": request.sender,
        "action_type": change.action_type,
    }


class DispatchNotifier(Notifier):
    def __init__(self, github: GitHubClient, repository: str, event_type: str) -> None:
        self._github = github
        self._repository = repository
        self._event_type = event_type

    @property
    def name(self) -> str:
        return "dispatch"

    async def notify(self, request: NotificationRequest) -> str:
        await self._github.dispatch(
            self._repository, self._event_type, build_client_payload(request)
        )
        change = request.change
        return f"Dispatched: {change.field_name} ({change.action_type})."
