"""
Git operations manager for the KernelSU working copy.

Every git invocation goes through GitManager.run(), which captures output and
either returns the completed process (callers branch on the exit status) or,
with check=True, raises GitCommandError carrying git's exit status.
"""
import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

# Timeout for quick local queries (rev-parse, describe, log, ...)
QUERY_TIMEOUT = 30


class GitCommandError(Exception):
    """A git command exited with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int, stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        message = f"'{' '.join(self.command)}' failed with exit status {returncode}"
        if stderr.strip():
            message += f": {stderr.strip()}"
        super().__init__(message)


class GitManager:
    """Manages git operations on a single working copy."""

    def __init__(self, repo_path: Path):
        """Initialize git manager.

        Args:
            repo_path: Path to the git working copy (may not exist yet)
        """
        self.repo_path = Path(repo_path)

    def run(
        self,
        *args: str,
        check: bool = False,
        timeout: Optional[int] = None,
        cwd: Optional[Path] = None
    ) -> subprocess.CompletedProcess:
        """Run a git command in the working copy.

        Args:
            *args: git arguments (without the leading 'git')
            check: Raise GitCommandError on non-zero exit
            timeout: Timeout in seconds, None waits forever
            cwd: Directory to run in (defaults to the working copy)

        Returns:
            The completed process with text stdout/stderr

        Raises:
            GitCommandError: If check is True and git fails, or if the git
                executable is missing (exit status 127, as from a shell)
        """
        cmd = ["git", *args]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd or self.repo_path,
                capture_output=True,
                text=True,
                timeout=timeout
            )
        except FileNotFoundError as e:
            # A missing cwd is reported with the directory as filename
            if e.filename != cmd[0]:
                raise
            raise GitCommandError(cmd, 127, "git: command not found") from e
        if check and result.returncode != 0:
            raise GitCommandError(cmd, result.returncode, result.stderr)
        return result

    def _query(self, *args: str) -> Optional[str]:
        """Run a read-only git query, returning stripped stdout or None on error."""
        try:
            result = self.run(*args, timeout=QUERY_TIMEOUT)
        except (subprocess.SubprocessError, OSError) as e:
            logger.debug(f"git {' '.join(args)} failed: {e}")
            return None
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def is_git_repo(self) -> bool:
        """Check if the path is the top of a git working copy.

        A plain directory inside some other repository (for example a
        kernel tree checked out with git) does not count.
        """
        if not self.repo_path.is_dir():
            return False
        toplevel = self._query("rev-parse", "--show-toplevel")
        return toplevel is not None and Path(toplevel).resolve() == self.repo_path.resolve()

    def clone(self, url: str, dest_name: str) -> Path:
        """Clone url into a directory named dest_name next to the working copy.

        Args:
            url: Repository URL
            dest_name: Directory name for the clone, relative to the parent
                of repo_path

        Returns:
            Path of the new clone

        Raises:
            GitCommandError: If the clone fails
        """
        parent = self.repo_path.parent
        logger.info(f"[+] Cloning {url} ...")
        self.run("clone", url, dest_name, check=True, cwd=parent)
        return parent / dest_name

    def stash(self) -> bool:
        """Stash local modifications. Returns True if git stash succeeded."""
        try:
            return self.run("stash").returncode == 0
        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Failed to stash: {e}")
            return False

    def fetch_all(self) -> None:
        """Fetch all remotes including tags.

        Raises:
            GitCommandError: If the fetch fails
        """
        self.run("fetch", "--all", "--tags", check=True)

    def checkout(self, ref: str) -> bool:
        """Check out ref. git's error output is discarded; only the status counts."""
        try:
            result = self.run("checkout", ref)
        except (subprocess.SubprocessError, OSError) as e:
            logger.debug(f"checkout {ref} failed: {e}")
            return False
        if result.returncode != 0:
            logger.debug(f"checkout {ref} failed: {result.stderr.strip()}")
        return result.returncode == 0

    def pull(self, remote: Optional[str] = None, branch: Optional[str] = None) -> bool:
        """Pull into the current branch. Returns True on success."""
        args = ["pull"]
        if remote:
            args.append(remote)
            if branch:
                args.append(branch)
        try:
            result = self.run(*args)
        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Failed to pull: {e}")
            return False
        if result.returncode != 0:
            logger.warning(f"[!] git {' '.join(args)} failed: {result.stderr.strip()}")
        return result.returncode == 0

    def is_symbolic_head(self) -> bool:
        """True when HEAD points at a branch rather than a detached commit."""
        return self._query("symbolic-ref", "-q", "HEAD") is not None

    def get_current_branch(self) -> Optional[str]:
        """Get current branch name.

        Returns:
            Branch name or None if detached HEAD
        """
        branch = self._query("rev-parse", "--abbrev-ref", "HEAD")
        # 'HEAD' means detached
        return None if branch in (None, "", "HEAD") else branch

    def get_current_commit(self) -> Optional[str]:
        """Get current commit SHA."""
        return self._query("rev-parse", "HEAD")

    def get_last_commit_oneline(self) -> Optional[str]:
        return self._query("log", "--oneline", "-1")

    def describe(self) -> Optional[str]:
        """Describe HEAD by its nearest tag, or by its short SHA if untagged."""
        return self._query("describe", "--tags") or self._query("rev-parse", "--short", "HEAD")

    def get_latest_tag(self) -> Optional[str]:
        """Most recent tag reachable from HEAD, or None if there is none."""
        return self._query("describe", "--abbrev=0", "--tags") or None

    def list_remote_refs(self, url: str, kind: str) -> List[str]:
        """List ref names on a remote without cloning it.

        Args:
            url: Remote URL or name
            kind: 'tags' or 'heads'

        Returns:
            Short ref names (peeled '^{}' tag entries folded in), or an empty
            list if the remote could not be queried
        """
        prefix = f"refs/{kind}/"
        try:
            result = self.run("ls-remote", f"--{kind}", url, cwd=self.repo_path.parent)
        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Failed to query remote {url}: {e}")
            return []

        if result.returncode != 0:
            logger.debug(f"ls-remote {url} failed: {result.stderr.strip()}")
            return []

        names = []
        # Each line is: <sha>\t<refname>
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) != 2 or not parts[1].startswith(prefix):
                continue
            name = parts[1][len(prefix):]
            if name.endswith("^{}"):
                name = name[:-3]
            if name not in names:
                names.append(name)
        return names

    def list_remote_branches(self, max_count: int = 10) -> List[str]:
        """Remote-tracking branches, skipping symbolic entries like origin/HEAD -> origin/main."""
        output = self._query("branch", "-r")
        if not output:
            return []
        branches = [line.strip() for line in output.splitlines() if "->" not in line]
        return branches[:max_count]

    def list_recent_tags(self, pattern: str = "v*", max_count: int = 10) -> List[str]:
        output = self._query("tag", "-l", "--sort=-version:refname", pattern)
        if not output:
            return []
        return output.splitlines()[:max_count]

    def list_recent_commits(self, max_count: int = 10) -> List[str]:
        output = self._query("log", "--oneline", f"-{max_count}")
        if not output:
            return []
        return output.splitlines()
