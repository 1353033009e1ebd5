"""Testes da normalização do webhook de vendas."""

from __future__ import annotations

import logging

from supplier_relay.adapters.whatsapp.normalizer import extract_sales_messages


def _business_payload(*messages: dict) -> dict:
    return {
        "object": "whatsapp_business_account",
        "entry": [{"changes": [{"value": {"messages": list(messages)}}]}],
    }


class TestBusinessPayload:
    def test_text_message(self) -> None:
        payload = _business_payload(
            {
                "from": "5511999999999",
                "id": "wamid.1",
                "timestamp": "1700000000",
                "type": "text",
                "text": {"body": "need 20 basins"},
            }
        )

        messages = extract_sales_messages(payload)

        assert len(messages) == 1
        assert messages[0].message_id == "wamid.1"
        assert messages[0].sender == "5511999999999"
        assert messages[0].text == "need 20 basins"
        assert messages[0].timestamp == "1700000000"

    def test_all_entries_and_messages_are_read(self) -> None:
        payload = {
            "object": "whatsapp_business_account",
            "entry": [
                {"changes": [{"value": {"messages": [{"from": "1", "text": {"body": "a"}}]}}]},
                {"changes": [{"value": {"messages": [{"from": "2", "text": {"body": "b"}}]}}]},
            ],
        }

        assert [m.text for m in extract_sales_messages(payload)] == ["a", "b"]

    def test_body_text_variant(self) -> None:
        payload = _business_payload({"from": "1", "id": "x", "body": {"text": "valves"}})

        assert extract_sales_messages(payload)[0].text == "valves"

    def test_non_text_messages_are_skipped(self) -> None:
        payload = _business_payload({"from": "1", "id": "img", "type": "image", "image": {}})

        assert extract_sales_messages(payload) == []

    def test_status_only_webhook_is_empty(self) -> None:
        payload = {
            "object": "whatsapp_business_account",
            "entry": [{"changes": [{"value": {"statuses": [{"id": "wamid.1"}]}}]}],
        }

        assert extract_sales_messages(payload) == []


class TestFlatPayload:
    def test_custom_service_shape(self) -> None:
        messages = extract_sales_messages(
            {"from": "5511", "body": "motors?", "messageId": "m-1", "timestamp": 1700000000000}
        )

        assert len(messages) == 1
        assert messages[0].message_id == "m-1"
        assert messages[0].timestamp == "1700000000000"

    def test_ifttt_shape(self) -> None:
        messages = extract_sales_messages({"value1": "5511", "value2": "tiles", "value3": "abc"})

        assert messages[0].sender == "5511"
        assert messages[0].text == "tiles"
        assert messages[0].message_id == "abc"

    def test_missing_id_gets_fallback(self) -> None:
        message = extract_sales_messages({"sender": "5511", "text": "basin"})[0]

        assert message.message_id.startswith("msg_")

    def test_invalid_payload_logs_and_returns_empty(self, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            assert extract_sales_messages({"foo": "bar"}) == []

        assert any(r.getMessage() == "whatsapp_payload_invalid" for r in caplog.records)

    def test_non_dict_payload(self) -> None:
        assert extract_sales_messages(["x"]) == []
        assert extract_sales_messages(None) == []
