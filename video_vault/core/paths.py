"""
On-disk layout of a vault: root directory, store file, per-item directories.
Nothing here touches the filesystem.
"""

import tempfile
from dataclasses import dataclass
from pathlib import Path

from video_vault.core.constants import VAULT_DIR_NAME, VAULT_STORE_FILENAME


def expand_home(path: str, home: Path | None = None) -> Path:
    """Expand a leading '~/' to the home directory. Any other form is returned as-is."""
    if path.startswith("~/"):
        return (home or Path.home()) / path[2:]
    return Path(path)


@dataclass(frozen=True)
class VaultPaths:
    vault_root: Path

    @property
    def store_path(self) -> Path:
        return self.vault_root / VAULT_STORE_FILENAME

    def item_dir(self, item_id: str) -> Path:
        return self.vault_root / item_id


def resolve_vault_paths(base_path: str | Path | None = None,
                        home: Path | None = None) -> VaultPaths:
    """
    Compute the vault layout under base_path.
    With no base_path the system temp directory is used.
    """
    if base_path is None or str(base_path) == "":
        base = Path(tempfile.gettempdir())
    else:
        base = expand_home(str(base_path), home)
    return VaultPaths(vault_root=base / VAULT_DIR_NAME)
