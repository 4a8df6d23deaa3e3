"""Tests for signature validation and field-change normalization."""

import pytest

from conftest import SECRET, encode, make_payload, sign, without_to
from fieldrelay.webhooks.handlers import (
    UNKNOWN_FIELD,
    compute_github_signature,
    extract_field_change,
    get_content_node_id,
    normalize_value,
    validate_github_signature,
)


# ---------------------------------------------------------------------------
# Signature validation
# ---------------------------------------------------------------------------

class TestGitHubSignature:
    def test_valid_signature(self):
        body = b'{"action": "edited"}'
        assert validate_github_signature(body, sign(body), SECRET) is True

    def test_compute_matches_github_format(self):
        body = b'{"action": "edited"}'
        sig = compute_github_signature(body, SECRET)
        assert sig.startswith("sha256=")
        assert sig == sign(body)

    @pytest.mark.parametrize("index", [0, 5, -1])
    def test_single_altered_byte_fails(self, index):
        body = bytearray(encode(make_payload()))
        sig = sign(bytes(body))
        body[index] ^= 0x01
        assert validate_github_signature(bytes(body), sig, SECRET) is False

    def test_reserialized_body_fails(self):
        # Same object, different whitespace: the digest is over raw bytes
        original = b'{"action":"edited","sender":{"login":"bob"}}'
        reserialized = b'{"action": "edited", "sender": {"login": "bob"}}'
        assert validate_github_signature(reserialized, sign(original), SECRET) is False

    def test_invalid_signature(self):
        assert validate_github_signature(b"{}", "sha256=bad", SECRET) is False

    def test_missing_signature(self):
        assert validate_github_signature(b"{}", "", SECRET) is False

    def test_no_secret_configured_rejects(self):
        body = b"{}"
        assert validate_github_signature(body, sign(body, ""), "") is False

    def test_wrong_secret(self):
        body = b"{}"
        assert validate_github_signature(body, sign(body, "other"), SECRET) is False


# ---------------------------------------------------------------------------
# Value normalization
# ---------------------------------------------------------------------------

class TestNormalizeValue:
    @pytest.mark.parametrize("raw", [None, ""])
    def test_empty_is_none(self, raw):
        assert normalize_value(raw) == "None"

    @pytest.mark.parametrize("raw", [0, "0", 0.0])
    def test_zero_is_kept(self, raw):
        assert normalize_value(raw) == "0"

    def test_false_is_not_zero(self):
        assert normalize_value(False) == "false"
        assert normalize_value(True) == "true"

    def test_object_priority(self):
        assert normalize_value({"name": "Done", "text": "x", "date": "y"}) == "Done"
        assert normalize_value({"text": "Some notes", "date": "y"}) == "Some notes"
        assert normalize_value({"date": "2024-05-01"}) == "2024-05-01"

    def test_object_without_known_keys(self):
        assert normalize_value({"id": "abc"}) == "None"
        assert normalize_value({"name": ""}) == "None"

    def test_iso_timestamp_truncated_to_date(self):
        assert normalize_value("2024-05-01T12:00:00+00:00") == "2024-05-01"
        assert normalize_value("2024-05-01T00:00:00Z") == "2024-05-01"

    def test_plain_date_unchanged(self):
        assert normalize_value("2024-05-01") == "2024-05-01"

    def test_text_with_capital_t_unchanged(self):
        assert normalize_value("Tracked Task") == "Tracked Task"

    def test_numbers_stringified(self):
        assert normalize_value(3) == "3"
        assert normalize_value(2.5) == "2.5"


# ---------------------------------------------------------------------------
# Field change extraction
# ---------------------------------------------------------------------------

class TestExtractFieldChange:
    def test_updated_single_select(self):
        change = extract_field_change(make_payload())
        assert change.field_name == "Status"
        assert change.old_value == "In Progress"
        assert change.new_value == "PR Member Review"
        assert change.is_cleared is False
        assert change.action_type == "updated"

    def test_to_key_absent_is_cleared(self):
        change = extract_field_change(without_to(make_payload()))
        assert change.is_cleared is True
        assert change.new_value == "blank"
        assert change.action_type == "cleared"

    def test_to_null_is_cleared(self):
        change = extract_field_change(make_payload(to_value=None))
        assert change.is_cleared is True

    def test_cleared_value_configurable(self):
        change = extract_field_change(make_payload(to_value=None), cleared_value="(cleared)")
        assert change.new_value == "(cleared)"

    def test_to_zero_is_not_cleared(self):
        change = extract_field_change(make_payload(field_name="Estimate", from_value=3, to_value=0))
        assert change.is_cleared is False
        assert change.new_value == "0"
        assert change.old_value == "3"

    def test_to_empty_string_is_not_cleared(self):
        change = extract_field_change(make_payload(field_name="Notes", from_value="", to_value=""))
        assert change.is_cleared is False
        assert change.old_value == "None"
        assert change.new_value == "None"

    def test_to_false_is_not_cleared(self):
        change = extract_field_change(make_payload(to_value=False))
        assert change.is_cleared is False

    def test_date_field(self):
        change = extract_field_change(
            make_payload(field_name="Due", from_value=None, to_value="2024-05-01T12:00:00+00:00")
        )
        assert change.old_value == "None"
        assert change.new_value == "2024-05-01"

    def test_missing_field_name(self):
        change = extract_field_change(make_payload(field_name=None))
        assert change.field_name == UNKNOWN_FIELD

    def test_missing_changes_block(self):
        change = extract_field_change({"action": "edited"})
        assert change.field_name == UNKNOWN_FIELD
        assert change.is_cleared is True


class TestContentNodeId:
    def test_direct_content_node_id(self):
        assert get_content_node_id(make_payload()) == "PR_kwDOabc"

    def test_nested_content_fallback(self):
        payload = make_payload(content_node_id=None)
        payload["projects_v2_item"]["content"] = {"node_id": "I_kwDOnested"}
        assert get_content_node_id(payload) == "I_kwDOnested"

    def test_missing(self):
        assert get_content_node_id(make_payload(content_node_id=None)) is None
        assert get_content_node_id({}) is None

    def test_non_object_item_is_missing(self):
        payload = make_payload()
        payload["projects_v2_item"] = "PVTI_1"
        assert get_content_node_id(payload) is None

    def test_non_string_node_id_is_missing(self):
        assert get_content_node_id(make_payload(content_node_id=12)) is None


class TestMalformedChanges:
    def test_field_value_list_reads_as_unknown(self):
        payload = make_payload()
        payload["changes"]["field_value"] = ["Status"]
        change = extract_field_change(payload)
        assert change.field_name == UNKNOWN_FIELD
        assert change.is_cleared is True

    def test_changes_string_reads_as_unknown(self):
        change = extract_field_change({"action": "edited", "changes": "field_value"})
        assert change.field_name == UNKNOWN_FIELD
