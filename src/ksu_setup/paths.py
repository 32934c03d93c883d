"""
Kernel tree layout - locating the drivers directory and the files we patch.
"""
from dataclasses import dataclass
from pathlib import Path

# Checked in order: GKI trees keep the kernel under common/
DRIVER_DIR_CANDIDATES = ("common/drivers", "drivers")


class DriversDirNotFoundError(Exception):
    """Neither drivers directory layout exists under the kernel root."""

    def __init__(self, root: Path):
        self.root = root
        super().__init__('"drivers/" directory not found.')


@dataclass
class KernelTree:
    """Paths inside a kernel source tree."""

    root: Path
    driver_dir: Path

    @property
    def makefile(self) -> Path:
        return self.driver_dir / "Makefile"

    @property
    def kconfig(self) -> Path:
        return self.driver_dir / "Kconfig"

    def module_link(self, link_name: str) -> Path:
        return self.driver_dir / link_name

    def module_dir(self, module_dir_name: str) -> Path:
        return self.root / module_dir_name


def resolve_kernel_tree(root: Path) -> KernelTree:
    """Locate the drivers directory under root.

    Args:
        root: Kernel root (usually the current directory)

    Returns:
        KernelTree for the first layout that exists

    Raises:
        DriversDirNotFoundError: If no candidate directory exists
    """
    root = Path(root).absolute()
    for candidate in DRIVER_DIR_CANDIDATES:
        driver_dir = root / candidate
        if driver_dir.is_dir():
            return KernelTree(root=root, driver_dir=driver_dir)
    raise DriversDirNotFoundError(root)
