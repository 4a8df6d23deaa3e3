"""Webhook signature validation and field-change normalization."""

from __future__ import annotations

import hashlib
import hmac
import re
from typing import Any

from fieldrelay.webhooks.models import FieldChange, as_dict

_ISO_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}T")

UNKNOWN_FIELD = "Unknown Field"


# ---------------------------------------------------------------------------
# Signature validation
# ---------------------------------------------------------------------------

def compute_github_signature(body: bytes, secret: str) -> str:
    """Return the ``X-Hub-Signature-256`` value GitHub would send for *body*."""
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def validate_github_signature(body: bytes, signature: str, secret: str) -> bool:
    """Validate GitHub webhook HMAC-SHA256 signature.

    The digest is taken over the raw request bytes exactly as delivered.
    Returns False if no secret is configured (rejects unauthenticated requests).
    """
    if not secret:
        return False
    if not signature:
        return False
    expected = compute_github_signature(body, secret)
    return hmac.compare_digest(expected.encode(), signature.encode())


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------

def get_content_node_id(payload: dict[str, Any]) -> str | None:
    """Node id of the issue/PR behind a project item, if any."""
    item = as_dict(payload.get("projects_v2_item"))
    node_id = item.get("content_node_id") or as_dict(item.get("content")).get("node_id")
    return node_id if isinstance(node_id, str) and node_id else None


def normalize_value(raw: Any) -> str:
    """Render a project field value as a plain string.

    Zero is checked before the empty case so a real ``0`` never reads as blank.
    """
    if raw == "0" or (isinstance(raw, (int, float)) and not isinstance(raw, bool) and raw == 0):
        return "0"
    if raw is None or raw == "":
        return "None"
    if isinstance(raw, dict):
        for key in ("name", "text", "date"):
            if raw.get(key):
                return str(raw[key])
        return "None"
    if isinstance(raw, bool):
        return "true" if raw else "false"

    text = str(raw)
    if _ISO_TIMESTAMP.match(text):
        text = text.split("T")[0].split("+")[0]
    return text


def extract_field_change(payload: dict[str, Any], cleared_value: str = "blank") -> FieldChange:
    """Build the old/new view of ``changes.field_value``.

    A change is cleared when ``to`` is missing or null. An explicit empty
    string is an update to ``"None"``, not a clear.
    """
    field_value = as_dict(as_dict(payload.get("changes")).get("field_value"))
    field_name = field_value.get("field_name") or UNKNOWN_FIELD
    if not isinstance(field_name, str):
        field_name = str(field_name)

    is_cleared = "to" not in field_value or field_value["to"] is None
    old_value = normalize_value(field_value.get("from"))
    new_value = cleared_value if is_cleared else normalize_value(field_value["to"])

    return FieldChange(
        field_name=field_name,
        old_value=old_value,
        new_value=new_value,
        is_cleared=is_cleared,
    )
