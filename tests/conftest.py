import os
import shutil
import sys
from pathlib import Path

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'gitabra' and tests/ importable as 'helpers'
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


from gitabra.core.loop import reset_host_loop
from gitabra.core.utils.stdlib_logging import reset_stdlib_logging_for_tests
from helpers.cache_utils import reset_gitabra_caches
from helpers.git_helpers import git_init


def pytest_collection_modifyitems(config, items):  # type: ignore[no-untyped-def]
    if shutil.which("git"):
        return
    skip = pytest.mark.skip(reason="git executable not found")
    for item in items:
        if "requires_git" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(autouse=True)
def _isolate_gitabra_state(tmp_path_factory, monkeypatch):
    """Fresh host loop, caches and user config dir for every test."""
    home = tmp_path_factory.mktemp("gitabra-home")
    monkeypatch.setenv("GITABRA_HOME", str(home))
    # Developer shells may carry overrides that would change defaults.
    for key in list(os.environ):
        if key.startswith("GITABRA_") and "__" in key:
            monkeypatch.delenv(key, raising=False)
    reset_gitabra_caches()
    yield
    reset_host_loop()
    reset_gitabra_caches()
    reset_stdlib_logging_for_tests()


@pytest.fixture
def isolated_project_env(tmp_path, monkeypatch):
    """A plain (non-git) project directory used as cwd for the test."""
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    return project


@pytest.fixture
def git_repo(tmp_path, monkeypatch):
    """A git repository with one commit, used as cwd for the test."""
    repo = tmp_path / "repo"
    repo.mkdir()
    git_init(repo)
    monkeypatch.chdir(repo)
    return repo
