"""Shared payload builders for the webhook tests."""

import copy
import hashlib
import hmac
import json
from typing import Any

SECRET = "gh-secret"

_MISSING = object()


def make_payload(
    *,
    action: str = "edited",
    org: str = "FinOps-Open-Cost-and-Usage-Spec",
    sender: str = "bob",
    field_name: str | None = "Status",
    from_value: Any = {"name": "In Progress"},
    to_value: Any = _MISSING,
    content_node_id: str | None = "PR_kwDOabc",
    project_node_id: str | None = "PVT_kwDOxyz",
) -> dict[str, Any]:
    field_value: dict[str, Any] = {"field_node_id": "PVTSSF_1", "field_type": "single_select"}
    if field_name is not None:
        field_value["field_name"] = field_name
    field_value["from"] = from_value
    if to_value is _MISSING:
        field_value["to"] = {"name": "PR Member Review"}
    else:
        field_value["to"] = to_value

    item: dict[str, Any] = {"id": 1, "node_id": "PVTI_1", "content_type": "PullRequest"}
    if content_node_id is not None:
        item["content_node_id"] = content_node_id
    if project_node_id is not None:
        item["project_node_id"] = project_node_id

    return {
        "action": action,
        "projects_v2_item": item,
        "changes": {"field_value": field_value},
        "organization": {"login": org},
        "sender": {"login": sender},
    }


def without_to(payload: dict[str, Any]) -> dict[str, Any]:
    """Copy of *payload* with the ``to`` key removed entirely."""
    result = copy.deepcopy(payload)
    del result["changes"]["field_value"]["to"]
    return result


def encode(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload).encode()


def sign(body: bytes, secret: str = SECRET) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
