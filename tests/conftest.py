from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from supplier_relay.api.app import create_app
from supplier_relay.config.settings import get_settings

ROUTING_RULES = {
    "categories": {
        "basin": {
            "suppliers": [
                {"wechatGroupId": "g1@chatroom", "name": "Basin A"},
                {"wechatGroupId": "g2@chatroom", "name": "Basin B"},
            ]
        },
        "faucet": {"suppliers": [{"group_id": "g3@chatroom", "display_name": "Faucet"}]},
        "tile": {"suppliers": []},
    }
}


@pytest.fixture()
def rules_file(tmp_path):
    path = tmp_path / "routing_rules.json"
    path.write_text(json.dumps(ROUTING_RULES), encoding="utf-8")
    return path


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch, tmp_path, rules_file):
    monkeypatch.setenv("WHATSAPP_VERIFY_TOKEN", "test-token")
    monkeypatch.setenv("ROUTING_RULES_PATH", str(rules_file))
    monkeypatch.setenv("REPLY_LOG_PATH", str(tmp_path / "logs" / "replies.jsonl"))
    monkeypatch.setenv("OPENAI_ENABLED", "false")
    get_settings.cache_clear()
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
    get_settings.cache_clear()
