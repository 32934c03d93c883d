"""
KernelSU setup orchestration - setup/update, cleanup and ref listing for a
kernel tree.
"""
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .config_manager import IntegrationConfig
from .git_manager import GitManager
from .integrator import BuildTreeIntegrator, CleanupResult, IntegrationResult
from .paths import KernelTree, resolve_kernel_tree
from .revision import classify_revision
from .sync import RepoSynchronizer, SyncResult

logger = logging.getLogger(__name__)


@dataclass
class SetupResult:
    """Result of a setup/update run."""

    sync: SyncResult
    integration: IntegrationResult
    cloned: bool = False

    def summary(self) -> str:
        lines = self.sync.status_lines()
        if self.sync.used_fallback and self.sync.checked_out is None:
            lines.append("[!] Requested revision unavailable, working copy left on its current ref")
        lines.append("[+] Done.")
        return "\n".join(lines)


@dataclass
class RefListing:
    """Branches, tags and commits available in the working copy."""

    branches: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    commits: List[str] = field(default_factory=list)

    def format(self) -> str:
        sections = [
            ("[+] Available branches:", self.branches),
            ("[+] Recent tags:", self.tags),
            ("[+] Recent commits:", self.commits),
        ]
        return "\n\n".join("\n".join([title, *items]) for title, items in sections)


class SetupManager:
    """Ties path resolution, synchronization and integration together."""

    def __init__(self, kernel_root: Path, config: Optional[IntegrationConfig] = None):
        """
        Args:
            kernel_root: Kernel source root

        Raises:
            DriversDirNotFoundError: If the tree has no drivers directory
        """
        self.config = config or IntegrationConfig()
        self.tree: KernelTree = resolve_kernel_tree(kernel_root)
        self.module_dir = self.tree.module_dir(self.config.module_dir_name)
        self.integrator = BuildTreeIntegrator(self.tree, self.config)

    def setup(self, target: Optional[str] = None) -> SetupResult:
        """Set up or update the module at target (latest tag if None).

        Raises:
            GitCommandError: If cloning or fetching fails
        """
        logger.info("[+] Setting up KernelSU...")

        synchronizer = RepoSynchronizer(
            self.module_dir,
            self.config.repo_url,
            self.config.clone_name,
            fallback_branches=self.config.fallback_branches,
        )
        revision = classify_revision(target, synchronizer.git, self.config.repo_url)

        cloned = synchronizer.ensure_clone()
        sync_result = synchronizer.sync(revision)
        integration = self.integrator.integrate()

        logger.info("[+] Done.")
        return SetupResult(sync=sync_result, integration=integration, cloned=cloned)

    def cleanup(self) -> CleanupResult:
        """Revert every modification setup makes, including the clone."""
        logger.info("[+] Cleaning up...")
        result = self.integrator.revert()

        if self.module_dir.is_dir():
            shutil.rmtree(self.module_dir)
            result.clone_removed = True
            logger.info(f"[-] {self.module_dir.name} directory deleted.")

        return result

    def list_refs(self) -> Optional[RefListing]:
        """List remote branches, recent v* tags and recent commits.

        Returns:
            RefListing, or None if the working copy does not exist
        """
        if not self.module_dir.is_dir():
            logger.error(f"[!] {self.module_dir.name} directory not found")
            return None

        git = GitManager(self.module_dir)
        return RefListing(
            branches=git.list_remote_branches(),
            tags=git.list_recent_tags(),
            commits=git.list_recent_commits(),
        )
