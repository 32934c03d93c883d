"""
Shared fixtures: a local "upstream" KernelSU repository and a fake kernel tree.
"""
import subprocess
from pathlib import Path

import pytest

from ksu_setup.config_manager import IntegrationConfig


DRIVERS_MAKEFILE = """\
# SPDX-License-Identifier: GPL-2.0
obj-y += base/
obj-$(CONFIG_USB) += usb/
"""

DRIVERS_KCONFIG = """\
# SPDX-License-Identifier: GPL-2.0
menu "Device Drivers"

source "drivers/base/Kconfig"

source "drivers/usb/Kconfig"

endmenu
"""


def git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=repo, check=True, capture_output=True, text=True
    )
    return result.stdout.strip()


def commit_file(repo: Path, name: str, content: str, message: str) -> str:
    path = repo / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    git(repo, "add", name)
    git(repo, "commit", "-m", message)
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture(autouse=True)
def git_identity(monkeypatch):
    """Make commits and stashes work regardless of the host git config."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.delenv("KSU_SETUP_REPO_URL", raising=False)


@pytest.fixture
def upstream_repo(tmp_path):
    """Create an upstream module repository.

    History on main: v1.0.0 -> v1.1.0 -> one untagged commit.
    Branch 'dev' forks from v1.1.0 with one extra commit.
    """
    repo_path = tmp_path / "upstream"
    repo_path.mkdir()
    git(repo_path, "init")
    git(repo_path, "symbolic-ref", "HEAD", "refs/heads/main")

    commit_file(repo_path, "kernel/Kconfig", 'config KSU\n\ttristate "KernelSU"\n', "Initial commit")
    git(repo_path, "tag", "v1.0.0")

    commit_file(repo_path, "kernel/Makefile", "obj-$(CONFIG_KSU) += kernelsu.o\n", "Add Makefile")
    git(repo_path, "tag", "v1.1.0")

    git(repo_path, "checkout", "-b", "dev")
    commit_file(repo_path, "kernel/dev.c", "/* dev */\n", "Dev work")
    git(repo_path, "checkout", "main")

    commit_file(repo_path, "README.md", "# KernelSU\n", "Post-release commit")

    return repo_path


@pytest.fixture
def untagged_upstream_repo(tmp_path):
    """Upstream repository with a single commit on main and no tags."""
    repo_path = tmp_path / "upstream-untagged"
    repo_path.mkdir()
    git(repo_path, "init")
    git(repo_path, "symbolic-ref", "HEAD", "refs/heads/main")
    commit_file(repo_path, "kernel/Kconfig", "config KSU\n", "Initial commit")
    return repo_path


@pytest.fixture
def kernel_tree(tmp_path):
    """Create a minimal kernel source tree with drivers/Makefile and drivers/Kconfig."""
    root = tmp_path / "kernel"
    drivers = root / "drivers"
    drivers.mkdir(parents=True)
    (drivers / "Makefile").write_text(DRIVERS_MAKEFILE)
    (drivers / "Kconfig").write_text(DRIVERS_KCONFIG)
    return root


@pytest.fixture
def integration_config(upstream_repo):
    """Configuration cloning from the local upstream repository."""
    return IntegrationConfig(repo_url=str(upstream_repo))


@pytest.fixture
def run_git():
    """Return a helper running git in a directory and returning stdout."""
    return git
