"""Tests for permissions/checker.py."""

import threading as _threading

import pytest as _pytest

import skald.permissions as permissions
import skald.tools.base as tools_base

SAFE = tools_base.PermissionLevel.SAFE
ASK = tools_base.PermissionLevel.ASK
DANGEROUS = tools_base.PermissionLevel.DANGEROUS


def _request(level: tools_base.PermissionLevel, name: str = "tool") -> permissions.PermissionRequest:
    return permissions.PermissionRequest(tool_name=name, input={}, permission_level=level)


class TestDecide:
    """Level-based decisions and session overrides."""

    @_pytest.mark.parametrize(
        "level,expected",
        [
            (SAFE, permissions.PermissionDecision.ALLOW),
            (ASK, permissions.PermissionDecision.ASK),
            (DANGEROUS, permissions.PermissionDecision.DENY),
        ],
    )
    def test_by_level(self, level, expected) -> None:
        assert permissions.PermissionChecker().decide(_request(level)) is expected

    def test_session_grant_for_one_tool(self) -> None:
        checker = permissions.PermissionChecker()
        checker.session.allow_tool("bash")
        assert checker.decide(_request(ASK, "bash")) is permissions.PermissionDecision.ALLOW
        assert checker.decide(_request(ASK, "web_fetch")) is permissions.PermissionDecision.ASK

    def test_grant_overrides_dangerous(self) -> None:
        checker = permissions.PermissionChecker(permissions.SessionPermissions(["rm_rf"]))
        assert checker.decide(_request(DANGEROUS, "rm_rf")) is permissions.PermissionDecision.ALLOW

    def test_trust_mode(self) -> None:
        checker = permissions.PermissionChecker()
        checker.session.allow_all()
        for level in (SAFE, ASK, DANGEROUS):
            assert checker.decide(_request(level)) is permissions.PermissionDecision.ALLOW

    def test_decide_is_pure(self) -> None:
        """Deciding never records anything in the session."""
        checker = permissions.PermissionChecker()
        checker.decide(_request(ASK, "bash"))
        assert checker.session.snapshot() == frozenset()


class TestSessionPermissions:
    def test_revoke(self) -> None:
        session = permissions.SessionPermissions()
        session.allow_tool("bash")
        session.allow_all()
        session.revoke_tool("bash")
        assert session.is_allowed("bash")  # still covered by trust mode
        session.revoke_all()
        assert not session.is_allowed("bash")
        assert not session.is_all_allowed

    def test_shared_across_threads(self) -> None:
        """Grants made on one thread are visible to another."""
        session = permissions.SessionPermissions()
        threads = [
            _threading.Thread(target=session.allow_tool, args=(f"tool{i}",)) for i in range(20)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(session.snapshot()) == 20
