"""Tests for the click entry point."""

import json as _json
import pathlib as _pathlib

import click.testing as _click_testing
import pytest as _pytest

import skald.api as api
import skald.api.types as api_types
import skald.cli.main as main
import skald.session as session


@_pytest.fixture
def cli_env(clean_env: dict[str, str], tmp_path: _pathlib.Path, monkeypatch) -> dict[str, str]:
    """Isolated environment with sessions stored under tmp_path."""
    monkeypatch.chdir(tmp_path)
    env = dict(clean_env)
    env["SKALD_SESSION__DIR"] = str(tmp_path / "sessions")
    env["ANTHROPIC_API_KEY"] = ""
    env["OPENAI_API_KEY"] = ""
    return env


@_pytest.fixture
def invoke(cli_env, isolated_env):
    def run(*args: str) -> _click_testing.Result:
        with isolated_env:
            return _click_testing.CliRunner().invoke(main.cli, list(args), env=cli_env)

    return run


class TestCliBasics:
    def test_help(self, invoke) -> None:
        result = invoke("--help")
        assert result.exit_code == 0
        assert "terminal AI agent" in result.output
        assert "sessions" in result.output

    def test_version(self, invoke) -> None:
        result = invoke("--version")
        assert result.exit_code == 0
        assert result.output.startswith("skald, version ")

    def test_bad_provider_choice(self, invoke) -> None:
        assert invoke("--provider", "cohere", "-p", "hi").exit_code == 2

    def test_config_error(self, invoke, cli_env) -> None:
        config_dir = _pathlib.Path(cli_env["SKALD_CONFIG_DIR"])
        config_dir.mkdir(parents=True)
        (config_dir / "config.yaml").write_text("behavior: [broken\n")
        result = invoke("sessions")
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_model_without_provider(self, invoke) -> None:
        """A Claude model with no Anthropic key is a configuration error."""
        result = invoke("--model", "claude-sonnet-4-20250514", "-p", "hi")
        assert result.exit_code == 1
        assert "No provider available for model claude-sonnet-4-20250514" in result.output

    def test_resume_missing(self, invoke) -> None:
        result = invoke("--resume", "nope1234", "-p", "hi")
        assert result.exit_code == 1
        assert "Session not found: nope1234" in result.output


class TestOneShot:
    def test_prompt_runs_one_turn(
        self, invoke, monkeypatch, scripted_provider, text_events, tmp_path
    ) -> None:
        provider = scripted_provider(
            [text_events("Hello from the model", usage=api_types.Usage(10, 4))],
            name="anthropic",
        )
        registry = api.ProviderRegistry()
        registry.register(provider)
        monkeypatch.setattr(
            main.api.ProviderRegistry, "from_settings", classmethod(lambda cls, settings: registry)
        )

        result = invoke("-p", "say hello")

        assert result.exit_code == 0, result.output
        assert "Hello from the model" in result.output
        _, options = provider.stream_calls[0]
        assert {t.name for t in options.tools} >= {"bash", "file_read", "glob"}
        saved = session.SessionManager(tmp_path / "sessions").list_recent()
        assert len(saved) == 1
        assert saved[0].messages[0].text == "say hello"

    def test_failed_turn_exits_nonzero(
        self, invoke, monkeypatch, scripted_provider
    ) -> None:
        provider = scripted_provider([[api_types.StreamError("bad gateway")]], name="anthropic")
        registry = api.ProviderRegistry()
        registry.register(provider)
        monkeypatch.setattr(
            main.api.ProviderRegistry, "from_settings", classmethod(lambda cls, settings: registry)
        )

        result = invoke("-p", "hi")

        assert result.exit_code == 1
        assert "bad gateway" in result.output


class TestSessionsCommand:
    def _save(self, tmp_path: _pathlib.Path, session_id: str, text: str) -> None:
        conv = session.ConversationSession.create("gpt-4o")
        conv.id = session_id
        conv.replace_messages([api_types.Message.user(text)])
        session.SessionManager(tmp_path / "sessions").save(conv)

    def test_empty(self, invoke) -> None:
        result = invoke("sessions")
        assert result.exit_code == 0
        assert "No sessions found." in result.output

    def test_list_and_json(self, invoke, tmp_path) -> None:
        self._save(tmp_path, "abc12345", "refactor the parser")

        listing = invoke("sessions")
        assert "abc12345" in listing.output
        assert "refactor the parser" in listing.output

        data = _json.loads(invoke("sessions", "--json").output)
        assert data[0]["id"] == "abc12345"
        assert data[0]["message_count"] == 1

    def test_delete(self, invoke, tmp_path) -> None:
        self._save(tmp_path, "abc12345", "x")
        assert "Deleted abc12345" in invoke("sessions", "--delete", "abc12345").output
        assert "Session not found: abc12345" in invoke("sessions", "--delete", "abc12345").output

    def test_delete_invalid_id(self, invoke) -> None:
        result = invoke("sessions", "--delete", "../etc")
        assert result.exit_code == 1
