"""
Integration configuration - which repository to clone and how to wire it in.
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_REPO_URL = "https://github.com/SukiSU-Ultra/SukiSU-Ultra"

# Overrides the repository URL from the config file
REPO_URL_ENV = "KSU_SETUP_REPO_URL"

CONFIG_VERSION = "1.0"


@dataclass
class IntegrationConfig:
    """Names and locations used when integrating the module."""

    repo_url: str = DEFAULT_REPO_URL
    clone_name: str = "SukiSU-Ultra"  # Directory git clone creates before the rename
    module_dir_name: str = "KernelSU"  # Clone location, relative to the kernel root
    link_name: str = "kernelsu"  # Symlink inside the drivers directory
    config_symbol: str = "KSU"
    fallback_branches: List[str] = field(default_factory=lambda: ["main", "master"])

    @property
    def makefile_line(self) -> str:
        return f"obj-$(CONFIG_{self.config_symbol}) += {self.link_name}/"

    @property
    def kconfig_path(self) -> str:
        """Module Kconfig path as seen from the kernel source root."""
        return f"drivers/{self.link_name}/Kconfig"

    @property
    def kconfig_line(self) -> str:
        return f'source "{self.kconfig_path}"'

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IntegrationConfig":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        unknown = set(data) - set(known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**known)


class ConfigManager:
    """Loads the integration configuration."""

    def __init__(self, config_file: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: JSON config path (default: ~/.ksu-setup/config.json)
        """
        if config_file is None:
            config_file = Path.home() / ".ksu-setup" / "config.json"

        self.config_file = Path(config_file)

    def load(self) -> IntegrationConfig:
        """
        Load the configuration, falling back to defaults if no file exists.

        Returns:
            IntegrationConfig with the environment override applied
        """
        if self.config_file.exists():
            try:
                with open(self.config_file, "r") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Failed to load config: {e}")
                raise

            version = data.get("version", CONFIG_VERSION)
            if version != CONFIG_VERSION:
                logger.warning(f"Unknown config version: {version}")

            config = IntegrationConfig.from_dict(data.get("integration", {}))
            logger.debug(f"Loaded config from {self.config_file}")
        else:
            logger.debug(f"Config file not found: {self.config_file}")
            config = IntegrationConfig()

        env_url = os.environ.get(REPO_URL_ENV)
        if env_url:
            config.repo_url = env_url

        return config
