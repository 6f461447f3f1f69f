import os
from types import SimpleNamespace
from unittest.mock import Mock

import httpx
import openai
import pytest
from click.testing import CliRunner

from commitgpt import main
from commitgpt.changes import NO_CHANGES_MESSAGE
from commitgpt.main import cli
from tests.conftest import write


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def key_file(tmp_path):
    path = tmp_path / "openai.key"
    path.write_text("sk-test\n")
    return str(path)


@pytest.fixture
def openai_client(monkeypatch):
    """Replace the OpenAI client with a mock answering every request."""
    client = Mock()
    client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content="\nUpdate greeting\n\n- Change a.txt\n"))]
    )
    factory = Mock(return_value=client)
    monkeypatch.setattr(main, "create_client", factory)
    client.factory = factory
    return client


def test_prints_only_the_message(runner, committed_repo, key_file, openai_client):
    write(committed_repo, "a.txt", "first line\nhello\n")

    result = runner.invoke(cli, ["-a", key_file, "-w", committed_repo.working_tree_dir])

    assert result.exit_code == 0, result.output
    assert result.stdout == "Update greeting\n\n- Change a.txt\n"


def test_request_contents(runner, committed_repo, key_file, openai_client):
    write(committed_repo, "a.txt", "first line\nhello\n")

    result = runner.invoke(cli, [
        "--api-key-path", key_file,
        "--workdir-path", committed_repo.working_tree_dir,
        "--context", "Requested by support",
        "--model", "gpt-4o",
        "--base-url", "http://localhost:1234/v1",
        "--timeout", "5",
        "--retries", "0",
    ])

    assert result.exit_code == 0, result.output
    openai_client.factory.assert_called_once_with(
        "sk-test", base_url="http://localhost:1234/v1", timeout=5.0, max_retries=0
    )
    kwargs = openai_client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o"
    user_prompt = kwargs["messages"][1]["content"]
    assert "- **a.txt**: Modified\n  - Removed: second line\n  - Added: hello\n" in user_prompt
    assert "Additional context:\nRequested by support" in user_prompt


def test_default_model(runner, committed_repo, key_file, openai_client):
    write(committed_repo, "new.txt", "x\n")

    runner.invoke(cli, ["-a", key_file, "-w", committed_repo.working_tree_dir])

    assert openai_client.chat.completions.create.call_args.kwargs["model"] == "gpt-4"


def test_model_from_environment(runner, committed_repo, key_file, openai_client, monkeypatch):
    monkeypatch.setenv("COMMIT_GPT_MODEL", "gpt-4o-mini")
    write(committed_repo, "new.txt", "x\n")

    runner.invoke(cli, ["-a", key_file, "-w", committed_repo.working_tree_dir])

    assert openai_client.chat.completions.create.call_args.kwargs["model"] == "gpt-4o-mini"


def test_no_changes(runner, committed_repo, key_file, openai_client):
    result = runner.invoke(cli, ["-a", key_file, "-w", committed_repo.working_tree_dir])

    assert result.exit_code == 0
    assert result.stdout == NO_CHANGES_MESSAGE + "\n"
    openai_client.factory.assert_not_called()


def test_missing_key_file(runner, committed_repo, tmp_path):
    result = runner.invoke(cli, ["-a", str(tmp_path / "missing"), "-w", committed_repo.working_tree_dir])

    assert result.exit_code == 1
    assert "Failed to read API key" in result.stderr
    assert result.stdout == ""


def test_not_a_repository(runner, key_file, tmp_path):
    plain = tmp_path / "plain"
    plain.mkdir()

    result = runner.invoke(cli, ["-a", key_file, "-w", str(plain)])

    assert result.exit_code == 1
    assert "Failed to open Git repository" in result.stderr


def test_api_error_reports_status_and_body(runner, committed_repo, key_file, openai_client):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(401, request=request, text='{"error": "invalid key"}')
    openai_client.chat.completions.create.side_effect = openai.AuthenticationError(
        "invalid key", response=response, body=None
    )
    write(committed_repo, "new.txt", "x\n")

    result = runner.invoke(cli, ["-a", key_file, "-w", committed_repo.working_tree_dir])

    assert result.exit_code == 1
    assert "API response status: 401" in result.stderr
    assert 'Response body:\n{"error": "invalid key"}' in result.stderr
    assert result.stdout == ""


def test_key_from_environment(runner, committed_repo, openai_client, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    write(committed_repo, "new.txt", "x\n")

    result = runner.invoke(cli, ["-w", committed_repo.working_tree_dir])

    assert result.exit_code == 0, result.output
    assert openai_client.factory.call_args.args == ("sk-env",)


def test_verbose_logs_to_stderr(runner, committed_repo, key_file, openai_client):
    write(committed_repo, "new.txt", "x\n")

    result = runner.invoke(cli, ["-v", "-a", key_file, "-w", committed_repo.working_tree_dir])

    assert result.exit_code == 0, result.output
    assert "Collected changes for 1 file(s)" in result.stderr
    assert result.stdout == "Update greeting\n\n- Change a.txt\n"


def test_setup_saves_key(runner, isolated_env):
    result = runner.invoke(cli, ["setup"], input="sk-new\n")

    assert result.exit_code == 0, result.output
    env_path = os.path.join(str(isolated_env), ".commit-gpt", ".env")
    with open(env_path) as f:
        assert f.read() == "OPENAI_API_KEY=sk-new\n"


def test_setup_keeps_existing_configuration(runner, isolated_env):
    runner.invoke(cli, ["setup"], input="sk-first\n")

    result = runner.invoke(cli, ["setup"], input="n\n")

    assert "Setup canceled." in result.stdout
    with open(os.path.join(str(isolated_env), ".commit-gpt", ".env")) as f:
        assert f.read() == "OPENAI_API_KEY=sk-first\n"


def test_hook_commands(runner, committed_repo):
    workdir = committed_repo.working_tree_dir

    result = runner.invoke(cli, ["-w", workdir, "hook", "install", "--model", "gpt-4o"])
    assert result.exit_code == 0, result.output
    assert "Git hook installed successfully" in result.stdout

    result = runner.invoke(cli, ["-w", workdir, "hook", "status"])
    assert result.exit_code == 0
    assert "Hook is installed." in result.stdout

    result = runner.invoke(cli, ["-w", workdir, "hook", "uninstall"])
    assert result.exit_code == 0
    assert "removed successfully" in result.stdout

    result = runner.invoke(cli, ["-w", workdir, "hook", "uninstall"])
    assert result.exit_code == 1
    assert "No commit-gpt hook found" in result.stderr


def test_hook_status_outside_repository(runner, tmp_path):
    plain = tmp_path / "plain"
    plain.mkdir()

    result = runner.invoke(cli, ["-w", str(plain), "hook", "status"])

    assert result.exit_code == 1
    assert "Not a Git repository." in result.stderr


def test_version(runner):
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "0.1.0" in result.stdout
