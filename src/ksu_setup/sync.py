"""
Repository synchronization - clone, update and check out the KernelSU tree.

Checkout failures are never fatal: they drop to the fallback chain (latest
tag, then the configured default branches). Only clone and fetch failures
propagate, as GitCommandError.
"""
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .git_manager import GitManager
from .revision import Revision, RevisionKind

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of a synchronization."""

    revision: Revision
    used_fallback: bool
    checked_out: Optional[str]  # None if every checkout attempt failed
    branch: Optional[str] = None
    commit: Optional[str] = None
    description: Optional[str] = None

    def status_lines(self) -> List[str]:
        return [
            "[+] Current status:",
            f"    Branch: {self.branch or 'detached'}",
            f"    Commit: {self.commit or ''}",
            f"    Description: {self.description or ''}",
        ]


class RepoSynchronizer:
    """Keeps the module working copy at the requested revision."""

    def __init__(
        self,
        repo_path: Path,
        repo_url: str,
        clone_name: str,
        fallback_branches: Optional[List[str]] = None
    ):
        """
        Args:
            repo_path: Final location of the working copy
            repo_url: Repository to clone
            clone_name: Directory name git clone creates, renamed to repo_path
            fallback_branches: Branches tried when no tag exists
        """
        self.repo_path = Path(repo_path)
        self.repo_url = repo_url
        self.clone_name = clone_name
        self.fallback_branches = fallback_branches or ["main", "master"]
        self.git = GitManager(self.repo_path)

    def ensure_clone(self) -> bool:
        """Clone the repository unless the working copy already exists.

        Returns:
            True if a fresh clone was made

        Raises:
            GitCommandError: If the clone fails
        """
        if self.git.is_git_repo():
            return False
        if self.repo_path.exists():
            logger.warning(f"[!] {self.repo_path} is not a git repository, removing it")
            shutil.rmtree(self.repo_path)

        cloned = self.git.clone(self.repo_url, self.clone_name)
        if cloned != self.repo_path:
            cloned.rename(self.repo_path)
        logger.info(f"[+] Repository cloned and renamed to {self.repo_path.name}.")
        return True

    def sync(self, revision: Revision) -> SyncResult:
        """Stash, fetch and check out revision, falling back on failure.

        Raises:
            GitCommandError: If fetching fails
        """
        logger.info(f"[-] Current branch: {self.git.get_current_branch() or 'detached'}")

        if self.git.stash():
            logger.info("[-] Stashed current changes.")

        logger.info("[+] Fetching updates...")
        self.git.fetch_all()

        used_fallback = False
        checked_out: Optional[str] = None

        if revision.requested:
            logger.info(f"[+] Attempting to checkout: {revision.spec} (type: {revision.kind.value})")
            checked_out = self._checkout(revision)
            if checked_out is None:
                used_fallback = True
                checked_out = self.checkout_fallback()
        else:
            used_fallback = True
            checked_out = self.checkout_fallback()

        result = SyncResult(
            revision=revision,
            used_fallback=used_fallback,
            checked_out=checked_out,
            branch=self.git.get_current_branch(),
            commit=self.git.get_last_commit_oneline(),
            description=self.git.describe(),
        )
        for line in result.status_lines():
            logger.info(line)
        return result

    def _checkout(self, revision: Revision) -> Optional[str]:
        """Check out revision according to its kind. Returns the ref used or None."""
        spec = revision.spec
        git = self.git

        if revision.kind == RevisionKind.BRANCH:
            if git.checkout(spec):
                logger.info(f"[-] Successfully checked out branch: {spec}")
                if git.pull("origin", spec):
                    logger.info("[+] Updated branch to latest")
                return spec
            logger.warning(f"[!] Failed to checkout branch: {spec}")
            return None

        if revision.kind == RevisionKind.TAG:
            if git.checkout(f"refs/tags/{spec}") or git.checkout(spec):
                logger.info(f"[-] Successfully checked out tag: {spec}")
                return spec
            logger.warning(f"[!] Failed to checkout tag: {spec}")
            return None

        if revision.kind == RevisionKind.COMMIT:
            if git.checkout(spec):
                logger.info(f"[-] Successfully checked out commit: {spec}")
                return spec
            logger.warning(f"[!] Failed to checkout commit: {spec}")
            return None

        # AUTO: let git resolve the name (branches, tags, HEAD~1, ...)
        if git.checkout(spec):
            logger.info(f"[-] Successfully checked out: {spec}")
            if git.is_symbolic_head() and git.pull():
                logger.info("[+] Updated to latest")
            return spec
        logger.warning(f"[!] Failed to checkout: {spec}")
        return None

    def checkout_fallback(self) -> Optional[str]:
        """Check out the latest tag, or a default branch if there are no tags.

        Returns:
            The ref checked out, or None if the working copy stayed where it was
        """
        logger.info("[!] Falling back to latest tag...")
        latest_tag = self.git.get_latest_tag()
        if latest_tag:
            if self.git.checkout(latest_tag):
                logger.info(f"[-] Checked out latest tag: {latest_tag}")
                return latest_tag
            logger.error(f"[!] Could not checkout latest tag: {latest_tag}")
            return None

        logger.info("[!] No tags found, staying on current branch")
        for branch in self.fallback_branches:
            if self.git.checkout(branch):
                return branch
        logger.warning(f"[!] Could not checkout {'/'.join(self.fallback_branches)}")
        return None
