"""
Build-tree integration - symlink the module into drivers/ and patch the
drivers Makefile and Kconfig.

Each edit is guarded by a content check so setup can run repeatedly, and
each revert step is independent so half-applied trees clean up without
errors.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List

from .config_manager import IntegrationConfig
from .paths import KernelTree

logger = logging.getLogger(__name__)


@dataclass
class IntegrationResult:
    """Which edits an integration pass performed."""

    symlink_created: bool = False
    makefile_modified: bool = False
    kconfig_modified: bool = False


@dataclass
class CleanupResult:
    """Which edits a cleanup pass reverted."""

    symlink_removed: bool = False
    makefile_reverted: bool = False
    kconfig_reverted: bool = False
    clone_removed: bool = False


def _read_text(path: Path) -> str:
    # Bytes that are not UTF-8 and CRLF endings survive a read/write round trip
    with open(path, "r", encoding="utf-8", errors="surrogateescape", newline="") as f:
        return f.read()


def _read_lines(path: Path) -> List[str]:
    """Split on newlines only, keeping them, so joining restores the file."""
    lines = [line + "\n" for line in _read_text(path).split("\n")]
    lines[-1] = lines[-1][:-1]
    if not lines[-1]:
        lines.pop()
    return lines


def _write_lines(path: Path, lines: List[str]) -> None:
    with open(path, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
        f.write("".join(lines))


def delete_matching_lines(path: Path, predicate: Callable[[str], bool]) -> bool:
    """Remove every line of path for which predicate is true.

    Returns:
        True if the file changed
    """
    if not path.is_file():
        return False
    lines = _read_lines(path)
    kept = [line for line in lines if not predicate(line)]
    if len(kept) == len(lines):
        return False
    _write_lines(path, kept)
    return True


def insert_before_first(path: Path, marker: str, new_line: str) -> bool:
    """Insert new_line before the first line containing marker.

    Returns:
        True if the line was inserted, False if no line contains marker
    """
    lines = _read_lines(path)
    for index, line in enumerate(lines):
        if marker in line:
            lines.insert(index, new_line + "\n")
            _write_lines(path, lines)
            return True
    return False


class BuildTreeIntegrator:
    """Applies and reverts the drivers/ edits for one kernel tree."""

    def __init__(self, tree: KernelTree, config: IntegrationConfig):
        self.tree = tree
        self.config = config

    @property
    def link_path(self) -> Path:
        return self.tree.module_link(self.config.link_name)

    @property
    def link_target(self) -> str:
        """Path of the module's kernel/ subtree relative to the drivers directory."""
        module_kernel = self.tree.module_dir(self.config.module_dir_name) / "kernel"
        return os.path.relpath(module_kernel, self.tree.driver_dir)

    def integrate(self) -> IntegrationResult:
        """Create the symlink and add the Makefile and Kconfig entries."""
        result = IntegrationResult()
        result.symlink_created = self.create_symlink()

        if self.tree.makefile.is_file() and self.config.link_name in _read_text(self.tree.makefile):
            logger.debug("Makefile already references the module")
        else:
            with open(self.tree.makefile, "a", encoding="utf-8") as f:
                f.write(f"\n{self.config.makefile_line}\n")
            result.makefile_modified = True
            logger.info("[+] Modified Makefile.")

        kconfig_line = self.config.kconfig_line
        if not self.tree.kconfig.is_file():
            logger.warning(f"[!] {self.tree.kconfig} not found, Kconfig not modified")
        elif kconfig_line in _read_text(self.tree.kconfig):
            logger.debug("Kconfig already sources the module")
        elif insert_before_first(self.tree.kconfig, "endmenu", kconfig_line):
            result.kconfig_modified = True
            logger.info("[+] Modified Kconfig.")
        else:
            logger.warning(f"[!] No endmenu in {self.tree.kconfig}, Kconfig not modified")

        return result

    def create_symlink(self) -> bool:
        """Point the module link at the clone, replacing any previous link or file."""
        link = self.link_path
        if link.is_symlink() or link.is_file():
            link.unlink()
        elif link.exists():
            logger.error(f"[!] {link} exists and is not a symlink, leaving it alone")
            return False

        os.symlink(self.link_target, link)
        logger.info("[+] Symlink created.")
        return True

    def revert(self) -> CleanupResult:
        """Remove the symlink and the Makefile and Kconfig entries if present."""
        result = CleanupResult()

        if self.link_path.is_symlink():
            self.link_path.unlink()
            result.symlink_removed = True
            logger.info("[-] Symlink removed.")

        link_name = self.config.link_name
        if delete_matching_lines(self.tree.makefile, lambda line: link_name in line):
            result.makefile_reverted = True
            logger.info("[-] Makefile reverted.")

        kconfig_path = self.config.kconfig_path
        if delete_matching_lines(self.tree.kconfig, lambda line: kconfig_path in line):
            result.kconfig_reverted = True
            logger.info("[-] Kconfig reverted.")

        return result
