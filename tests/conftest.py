import git
import pytest


@pytest.fixture
def repo(tmp_path):
    """A throwaway repository with one commit, so HEAD exists."""
    root = tmp_path / "project"
    root.mkdir()
    r = git.Repo.init(root)
    with r.config_writer() as cw:
        cw.set_value("user", "name", "Test User")
        cw.set_value("user", "email", "test@example.com")
        cw.set_value("commit", "gpgsign", "false")

    (root / "README.md").write_text("# project\n", encoding="utf-8")
    r.index.add(["README.md"])
    r.index.commit("Initial commit")
    return r


@pytest.fixture
def git_dir(repo):
    return repo.git_dir
