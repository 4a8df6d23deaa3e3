"""Webhook event models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


def as_dict(value: Any) -> dict[str, Any]:
    """Treat anything other than a JSON object as absent."""
    return value if isinstance(value, dict) else {}


@dataclass
class FieldChange:
    field_name: str
    old_value: str
    new_value: str
    is_cleared: bool = False

    @property
    def action_type(self) -> str:
        return "cleared" if self.is_cleared else "updated"


@dataclass
class FilterDecision:
    proceed: bool
    reason: str = ""

    @classmethod
    def ignored(cls, reason: str) -> "FilterDecision":
        return cls(proceed=False, reason=reason)

    @classmethod
    def ok(cls) -> "FilterDecision":
        return cls(proceed=True)


@dataclass
class ProjectInfo:
    number: int
    title: str = ""
    member_review_count: int | None = None
    tf_review_count: int | None = None

    @property
    def has_counts(self) -> bool:
        return self.member_review_count is not None and self.tf_review_count is not None


@dataclass
class EnrichedContent:
    node_type: str  # "PullRequest" or "Issue"
    number: int
    title: str
    url: str
    author_login: str = "ghost"
    project: ProjectInfo | None = None

    @property
    def kind(self) -> str:
        return "PR" if self.node_type == "PullRequest" else "Issue"


@dataclass
class GuardContext:
    """Everything a guard may look at: the raw event plus what has been derived so far."""

    payload: dict[str, Any]
    content_node_id: str | None
    change: FieldChange
    enriched: EnrichedContent | None = None

    @property
    def action(self) -> str:
        return self.payload.get("action") or ""

    @property
    def organization(self) -> str:
        return as_dict(self.payload.get("organization")).get("login") or ""

    @property
    def sender(self) -> str:
        login = as_dict(self.payload.get("sender")).get("login")
        return str(login) if login else "Unknown User"

    @property
    def project_node_id(self) -> str | None:
        node_id = as_dict(self.payload.get("projects_v2_item")).get("project_node_id")
        return node_id if isinstance(node_id, str) and node_id else None


@dataclass
class NotificationRequest:
    route: str
    change: FieldChange
    content_node_id: str
    sender: str
    enriched: EnrichedContent | None = None


@dataclass
class RelayResult:
    status: int
    message: str
