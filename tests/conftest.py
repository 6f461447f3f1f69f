import git
import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real home directory, .env files and API keys."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))

    # setenv first so that monkeypatch restores the original state afterwards
    for name in ("OPENAI_API_KEY", "OPENAI_BASE_URL", "COMMIT_GPT_MODEL"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)

    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)

    yield home

    logger.remove()


@pytest.fixture
def repo(tmp_path):
    """An empty repository on an unborn branch."""
    path = tmp_path / "repo"
    path.mkdir()
    repo = git.Repo.init(path)
    with repo.config_writer() as config:
        config.set_value("user", "name", "Test User")
        config.set_value("user", "email", "test@example.com")
        config.set_value("commit", "gpgsign", "false")
    yield repo
    repo.close()


def write(repo, name, content):
    path = repo.working_tree_dir + "/" + name
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    return path


def commit_all(repo, message="Initial commit"):
    repo.git.add(A=True)
    repo.git.commit("-m", message, "--no-verify")


@pytest.fixture
def committed_repo(repo):
    """A repository with one commit holding a.txt and b.txt."""
    write(repo, "a.txt", "first line\nsecond line\n")
    write(repo, "b.txt", "to be deleted\n")
    commit_all(repo)
    return repo
