"""Tests for core/planner.py and core/prompts.py."""

import pathlib as _pathlib

import skald.core.planner as planner
import skald.core.prompts as prompts


class TestPlanner:
    def test_disabled_passthrough(self) -> None:
        assert planner.Planner().augment("base") == "base"
        assert planner.Planner().augment(None) is None

    def test_enabled_appends_instruction(self) -> None:
        plan = planner.Planner(enabled=True)
        assert plan.augment("base") == f"base\n\n{planner.PLAN_MODE_PROMPT}"
        assert plan.augment(None) == planner.PLAN_MODE_PROMPT
        assert plan.augment("") == planner.PLAN_MODE_PROMPT

    def test_toggle(self) -> None:
        plan = planner.Planner()
        assert plan.toggle() is True
        assert plan.toggle() is False
        plan.enable()
        assert plan.enabled
        plan.disable()
        assert not plan.enabled


class TestSystemPrompt:
    def test_includes_environment_and_tools(self, tmp_path: _pathlib.Path) -> None:
        prompt = prompts.build_system_prompt(tmp_path, ["bash", "glob"])
        assert f"Working directory: {tmp_path}" in prompt
        assert "following tools: bash, glob." in prompt
        assert prompt.startswith("You are Skald")

    def test_no_tools(self, tmp_path: _pathlib.Path) -> None:
        assert "You have no tools available." in prompts.build_system_prompt(tmp_path)
