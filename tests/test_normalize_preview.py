"""Tests for the normalize_preview command."""

import json

import pytest

from src.tools.normalize_preview import main

ORDER = {
    "id": 42,
    "admin_graphql_api_id": "gid://shopify/Order/42",
    "order_number": 1001,
    "shipping_address": {"name": "Sam Baker"},
    "tags": "DEL:2025-01-31",
    "line_items": [{"title": "Croissant Box", "quantity": 1}],
}


def test_prints_normalized_order(tmp_path, capsys):
    payload = tmp_path / "order.json"
    payload.write_text(json.dumps(ORDER), encoding="utf-8")

    code = main([str(payload), "Bannos", "--today", "2025-01-29"])

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["ok"] is True
    assert out["normalized"]["id"] == "bannos-1001"
    assert out["normalized"]["priority"] == "MEDIUM"


def test_failed_normalization_exits_3(tmp_path, capsys):
    payload = tmp_path / "order.json"
    payload.write_text(json.dumps({"order_number": 1001}), encoding="utf-8")

    assert main([str(payload), "flourlane"]) == 3
    out = json.loads(capsys.readouterr().out)
    assert out["ok"] is False
    assert out["errors"]


def test_unreadable_payload_exits_1(tmp_path, capsys):
    assert main([str(tmp_path / "missing.json"), "bannos"]) == 1
    assert "cannot read" in capsys.readouterr().err


def test_unknown_store_is_a_usage_error(tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        main([str(tmp_path / "order.json"), "bakery"])
    assert exc_info.value.code == 2
