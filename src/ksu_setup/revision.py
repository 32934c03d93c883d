"""
Revision classification - is the user's target a commit, a tag, or a branch?
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .git_manager import GitManager

logger = logging.getLogger(__name__)

# Abbreviated or full lowercase SHA-1
COMMIT_RE = re.compile(r"^[0-9a-f]{7,40}$")


class RevisionKind(Enum):
    """How a target revision will be checked out."""

    COMMIT = "commit"
    TAG = "tag"
    BRANCH = "branch"
    AUTO = "auto"  # Unknown; handed to git checkout as-is


@dataclass
class Revision:
    """A requested revision and its classification."""

    spec: Optional[str]
    kind: RevisionKind = RevisionKind.AUTO

    @property
    def requested(self) -> bool:
        return bool(self.spec)


def classify_revision(spec: Optional[str], git: GitManager, remote: str) -> Revision:
    """Classify spec, querying the remote only when the pattern is ambiguous.

    Args:
        spec: User-supplied commit, tag or branch name (None for latest tag)
        git: GitManager used for ls-remote queries
        remote: URL of the module repository

    Returns:
        Revision with the detected kind
    """
    if not spec:
        return Revision(spec=None)

    logger.info(f"[+] Target specified: {spec}")

    if COMMIT_RE.match(spec):
        logger.info("[+] Detected commit hash")
        return Revision(spec, RevisionKind.COMMIT)

    if spec in git.list_remote_refs(remote, "tags"):
        logger.info("[+] Detected tag")
        return Revision(spec, RevisionKind.TAG)

    if spec in git.list_remote_refs(remote, "heads"):
        logger.info("[+] Detected branch")
        return Revision(spec, RevisionKind.BRANCH)

    logger.info("[+] Type not determined, will try auto-detection")
    return Revision(spec, RevisionKind.AUTO)
