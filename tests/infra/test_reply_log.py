"""Testes do rastro de replies em JSON-lines."""

from __future__ import annotations

import json

import pytest

from supplier_relay.domain.protocols import NullReplyRecovery
from supplier_relay.infra.reply_log import REPLY_EVENT, ReplyLog, create_reply_recovery
from tests.helpers.engine import make_reply


@pytest.fixture()
def reply_log(tmp_path):
    log = ReplyLog(tmp_path / "logs" / "replies.jsonl")
    yield log
    log.close()


class TestReplyLog:
    def test_record_writes_json_line(self, reply_log) -> None:
        reply_log.record("s1", make_reply("g1", "A", "yes"))

        lines = reply_log.path.read_text(encoding="utf-8").splitlines()
        entry = json.loads(lines[0])
        assert entry["message"] == REPLY_EVENT
        assert entry["session_id"] == "s1"
        assert entry["group_id"] == "g1"
        assert entry["sender_name"] == "A"
        assert entry["text"] == "yes"

    @pytest.mark.asyncio
    async def test_recover_filters_by_session_in_file_order(self, reply_log) -> None:
        reply_log.record("s1", make_reply("g1", "A", "first"))
        reply_log.record("s2", make_reply("g9", "Z", "other"))
        reply_log.record("s1", make_reply("g2", "B", "second"))

        replies = await reply_log.recover("s1")

        assert [(r.group_id, r.text) for r in replies] == [("g1", "first"), ("g2", "second")]

    @pytest.mark.asyncio
    async def test_recover_skips_invalid_lines(self, reply_log) -> None:
        reply_log.record("s1", make_reply("g1", "A", "ok"))
        with reply_log.path.open("a", encoding="utf-8") as handle:
            handle.write("not json\n")
            handle.write(json.dumps({"message": "other_event", "session_id": "s1"}) + "\n")

        replies = await reply_log.recover("s1")

        assert [r.text for r in replies] == ["ok"]

    @pytest.mark.asyncio
    async def test_recover_missing_file_is_empty(self, tmp_path) -> None:
        log = ReplyLog(tmp_path / "never_written.jsonl")
        try:
            assert await log.recover("s1") == []
        finally:
            log.close()


class TestCreateReplyRecovery:
    def test_no_path_gives_null_recovery(self) -> None:
        assert isinstance(create_reply_recovery(None), NullReplyRecovery)

    def test_path_gives_reply_log(self, tmp_path) -> None:
        recovery = create_reply_recovery(str(tmp_path / "r.jsonl"))
        assert isinstance(recovery, ReplyLog)
        recovery.close()
