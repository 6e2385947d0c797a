"""Tests for session/session.py."""

import json as _json
import pathlib as _pathlib

import pytest as _pytest

import skald.api.types as api_types
import skald.session as session


def _conversation() -> list[api_types.Message]:
    return [
        api_types.Message.user("Fix the failing test\nin tests/foo"),
        api_types.Message(
            role="assistant",
            content=[
                api_types.TextBlock("Running tests"),
                api_types.ToolUseBlock(id="t1", name="bash", input={"command": "pytest"}),
            ],
        ),
        api_types.Message(
            role="user",
            content=[api_types.ToolResultBlock(tool_use_id="t1", content="1 failed", is_error=True)],
        ),
    ]


class TestSessionIds:
    def test_generated_ids_are_valid(self) -> None:
        ids = {session.generate_session_id() for _ in range(50)}
        assert len(ids) == 50
        for session_id in ids:
            assert len(session_id) == 8
            assert session.validate_session_id(session_id) == session_id

    @_pytest.mark.parametrize("bad", ["", "../etc/passwd", "a/b", "x" * 101, "dot.ted"])
    def test_invalid_ids(self, bad: str) -> None:
        with _pytest.raises(session.InvalidSessionIdError):
            session.validate_session_id(bad)


class TestConversationSession:
    def test_title_from_first_user_line(self) -> None:
        conv = session.ConversationSession.create("gpt-4o")
        conv.replace_messages(_conversation())
        assert conv.title == "Fix the failing test"

    def test_title_not_overwritten(self) -> None:
        conv = session.ConversationSession.create("gpt-4o")
        conv.title = "Custom"
        conv.replace_messages(_conversation())
        assert conv.title == "Custom"

    def test_dict_round_trip_keeps_blocks(self) -> None:
        conv = session.ConversationSession.create("claude-sonnet-4-20250514")
        conv.replace_messages(_conversation())
        restored = session.ConversationSession.from_dict(
            _json.loads(_json.dumps(conv.to_dict()))
        )
        assert restored == conv

    def test_summary(self) -> None:
        conv = session.ConversationSession.create("m")
        conv.add_message(api_types.Message.user("hi"))
        assert conv.summary()["message_count"] == 1


class TestSessionManager:
    def test_save_load_delete(self, session_manager) -> None:
        conv = session.ConversationSession.create("m")
        conv.replace_messages(_conversation())

        path = session_manager.save(conv)

        assert path == session_manager.sessions_dir / f"{conv.id}.json"
        assert session_manager.exists(conv.id)
        assert session_manager.load(conv.id) == conv
        assert session_manager.delete(conv.id)
        assert not session_manager.delete(conv.id)
        assert session_manager.load(conv.id) is None

    def test_load_corrupt_file(self, session_manager) -> None:
        session_manager.sessions_dir.mkdir(parents=True)
        (session_manager.sessions_dir / "broken.json").write_text("{not json")
        assert session_manager.load("broken") is None

    def test_path_traversal_rejected(self, session_manager) -> None:
        assert not session_manager.exists("../secrets")
        with _pytest.raises(session.InvalidSessionIdError):
            session_manager.load("../secrets")

    def test_list_recent_newest_first(self, session_manager) -> None:
        for index, stamp in enumerate(["2025-01-01", "2025-03-01", "2025-02-01"]):
            conv = session.ConversationSession(
                id=f"s{index}", created_at=stamp, updated_at=stamp, model="m"
            )
            session_manager.save(conv)
        (session_manager.sessions_dir / "junk.json").write_text("[]")

        assert [s.id for s in session_manager.list_recent()] == ["s1", "s2", "s0"]
        assert [s.id for s in session_manager.list_recent(limit=1)] == ["s1"]

    def test_list_without_directory(self, tmp_path: _pathlib.Path) -> None:
        assert session.SessionManager(tmp_path / "missing").list_recent() == []
