"""Candidate field lookups and deployment overrides."""
import json
from pathlib import Path

from quotedesk.mapping.fields import FieldMap, assign, lookup, resolve


def test_lookup_prefers_literal_dotted_key():
    fields = {"Customer.Name": "Literal", "Customer": {"Name": "Nested"}}
    assert lookup(fields, "Customer.Name") == "Literal"


def test_lookup_follows_nested_objects_and_lists():
    assert lookup({"Customer": {"Name": "Nested"}}, "Customer.Name") == "Nested"
    assert lookup({"owner": [{"name": "First"}, {"name": "Second"}]}, "owner.name") == "First"
    assert lookup({"Customer": "plain"}, "Customer.Name") is None


def test_resolve_skips_blank_candidates():
    fields = {"Customer Name": "  ", "customer_name": "Acme"}
    assert resolve(fields, ["Customer Name", "customer_name"]) == "Acme"
    assert resolve({}, ["missing"], default="fallback") == "fallback"


def test_assign_creates_nested_objects():
    fields = {}
    assign(fields, "Customer.Name", "Acme")
    assign(fields, "Customer.Email", "a@acme.test")
    assign(fields, "Budget", "5k")
    assert fields == {"Customer": {"Name": "Acme", "Email": "a@acme.test"}, "Budget": "5k"}


def test_field_map_overrides_replace_whole_lists(tmp_path: Path):
    path = tmp_path / "fields.json"
    path.write_text(
        json.dumps(
            {
                "fields": {"client_name": ["Requester"], "budget": "Spend"},
                "statuses": {"approved": {"id": 9, "name": "Won"}},
            }
        ),
        encoding="utf-8",
    )

    field_map = FieldMap.from_config(path)

    assert field_map.keys_for("client_name") == ["Requester"]
    assert field_map.primary_key("budget") == "Spend"
    assert field_map.upstream_statuses["approved"] == {"id": 9, "name": "Won"}
    # untouched defaults survive
    assert field_map.primary_key("client_email") == "Customer.E-mail Address"


def test_field_map_defaults_are_not_shared():
    first = FieldMap()
    first.candidates["client_name"].append("Extra")
    assert "Extra" not in FieldMap().keys_for("client_name")
