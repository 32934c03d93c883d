"""
End-to-end tests for setup, cleanup and ref listing on a fake kernel tree.
"""
import os

import pytest

from ksu_setup.git_manager import GitCommandError
from ksu_setup.paths import DriversDirNotFoundError
from ksu_setup.revision import RevisionKind
from ksu_setup.setup_manager import SetupManager

SOURCE_LINE = 'source "drivers/kernelsu/Kconfig"'


@pytest.fixture
def manager(kernel_tree, integration_config):
    return SetupManager(kernel_tree, integration_config)


def test_missing_drivers_dir(tmp_path, integration_config):
    with pytest.raises(DriversDirNotFoundError):
        SetupManager(tmp_path, integration_config)


class TestSetup:
    """Test SetupManager.setup()."""

    def test_fresh_tree_no_args(self, manager, kernel_tree):
        """Fresh tree: clone, latest tag, symlink, one line in each build file."""
        result = manager.setup()

        assert result.cloned is True
        assert result.sync.checked_out == "v1.1.0"
        assert result.integration.symlink_created

        link = kernel_tree / "drivers" / "kernelsu"
        assert link.is_symlink()
        assert (link / "Kconfig").exists()
        assert (kernel_tree / "drivers" / "Makefile").read_text().count("kernelsu") == 1
        assert (kernel_tree / "drivers" / "Kconfig").read_text().count(SOURCE_LINE) == 1

    def test_setup_twice_is_idempotent(self, manager, kernel_tree):
        manager.setup()
        second = manager.setup()

        assert second.cloned is False
        assert not second.integration.makefile_modified
        assert not second.integration.kconfig_modified
        assert (kernel_tree / "drivers" / "Makefile").read_text().count("kernelsu") == 1
        assert (kernel_tree / "drivers" / "Kconfig").read_text().count(SOURCE_LINE) == 1

    def test_setup_tag(self, manager):
        result = manager.setup("v1.0.0")

        assert result.sync.revision.kind == RevisionKind.TAG
        assert result.sync.used_fallback is False
        assert result.sync.description == "v1.0.0"

    def test_setup_branch(self, manager):
        result = manager.setup("dev")

        assert result.sync.revision.kind == RevisionKind.BRANCH
        assert result.sync.branch == "dev"

    def test_setup_unknown_target_falls_back(self, manager):
        result = manager.setup("does-not-exist")

        assert result.sync.revision.kind == RevisionKind.AUTO
        assert result.sync.used_fallback is True
        assert result.sync.checked_out == "v1.1.0"
        assert "[+] Done." in result.summary()

    def test_setup_common_drivers_layout(self, tmp_path, integration_config):
        root = tmp_path / "gki"
        drivers = root / "common" / "drivers"
        drivers.mkdir(parents=True)
        (drivers / "Makefile").write_text("obj-y += base/\n")
        (drivers / "Kconfig").write_text('menu "Device Drivers"\nendmenu\n')

        SetupManager(root, integration_config).setup()

        link = drivers / "kernelsu"
        assert os.readlink(link) == os.path.join("..", "..", "KernelSU", "kernel")
        assert (link / "Makefile").exists()

    def test_clone_failure_propagates(self, kernel_tree, integration_config, tmp_path):
        integration_config.repo_url = str(tmp_path / "missing")

        with pytest.raises(GitCommandError):
            SetupManager(kernel_tree, integration_config).setup()

        assert not (kernel_tree / "drivers" / "kernelsu").exists()


class TestCleanup:
    """Test SetupManager.cleanup()."""

    def test_cleanup_after_setup(self, manager, kernel_tree):
        original_kconfig = (kernel_tree / "drivers" / "Kconfig").read_text()
        manager.setup()

        result = manager.cleanup()

        assert result.symlink_removed
        assert result.makefile_reverted
        assert result.kconfig_reverted
        assert result.clone_removed
        assert not os.path.lexists(kernel_tree / "drivers" / "kernelsu")
        assert "kernelsu" not in (kernel_tree / "drivers" / "Makefile").read_text()
        assert (kernel_tree / "drivers" / "Kconfig").read_text() == original_kconfig
        assert not (kernel_tree / "KernelSU").exists()

    def test_cleanup_never_set_up(self, manager):
        result = manager.cleanup()

        assert not any([
            result.symlink_removed,
            result.makefile_reverted,
            result.kconfig_reverted,
            result.clone_removed,
        ])


class TestListRefs:
    def test_list_refs(self, manager):
        manager.setup()

        listing = manager.list_refs()

        assert "origin/dev" in listing.branches
        assert listing.tags == ["v1.1.0", "v1.0.0"]
        # HEAD is detached at v1.1.0, so the untagged main commit is not listed
        assert len(listing.commits) == 2
        assert listing.commits[0].endswith("Add Makefile")

        text = listing.format()
        assert text.startswith("[+] Available branches:")
        assert "[+] Recent tags:\nv1.1.0\nv1.0.0" in text

    def test_list_refs_without_clone(self, manager):
        assert manager.list_refs() is None
