"""
Vault persistence: one JSON file per vault root.

Layout:
    {"videos": {"<id>": {<record fields>}, ...}}

The whole vault is read on load and written on save; there are no partial
updates. Callers hold vault_lock() across a load/save cycle. It combines a per-path
thread lock with an exclusive flock on a sidecar file, so runs in other
processes wait too.
"""

import fcntl
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path

from video_vault.core.constants import (
    ErrorCode, StageName, VAULT_STORE_FILENAME, VAULT_LOCK_FILENAME, VAULT_TOP_LEVEL_KEY,
)
from video_vault.core.error_codes import VaultError
from video_vault.core.models import Vault, VideoRecord

logger = logging.getLogger(__name__)

_locks: dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def store_path_for(vault_root: Path) -> Path:
    return vault_root / VAULT_STORE_FILENAME


def thread_lock_for(vault_root: Path) -> threading.Lock:
    """Return the process-wide lock for this vault root."""
    key = str(Path(vault_root).resolve(strict=False))
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.Lock()
        return lock


@contextmanager
def vault_lock(vault_root: Path):
    """
    Hold exclusive access to the vault under vault_root, across threads and
    processes, for the duration of the with-block.
    """
    vault_root = Path(vault_root)
    with thread_lock_for(vault_root):
        lock_path = vault_root / VAULT_LOCK_FILENAME
        try:
            vault_root.mkdir(parents=True, exist_ok=True)
            handle = open(lock_path, "a+")
        except OSError as e:
            raise VaultError(ErrorCode.STORE_WRITE_FAILED,
                             f"Cannot open vault lock {lock_path}: {e}",
                             stage=StageName.STORE)
        with handle:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def load_vault(vault_root: Path) -> Vault:
    """
    Load the vault stored under vault_root.
    A missing store file means no items yet and yields an empty vault.
    Raises VaultError(STORE_CORRUPT) when the file exists but cannot be parsed.
    """
    path = store_path_for(vault_root)
    if not path.exists():
        logger.debug("No store at %s; starting with an empty vault", path)
        return Vault()

    try:
        raw = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise VaultError(ErrorCode.STORE_CORRUPT,
                         f"Vault store {path} is not valid UTF-8: {e}",
                         stage=StageName.STORE)
    except OSError as e:
        raise VaultError(ErrorCode.STORE_CORRUPT,
                         f"Cannot read vault store {path}: {e}",
                         stage=StageName.STORE)

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise VaultError(ErrorCode.STORE_CORRUPT,
                         f"Vault store {path} is not valid JSON: {e}",
                         stage=StageName.STORE)

    return _vault_from_data(data, path)


def _vault_from_data(data, path: Path) -> Vault:
    if not isinstance(data, dict):
        raise VaultError(ErrorCode.STORE_CORRUPT,
                         f"Vault store {path}: top level must be an object",
                         stage=StageName.STORE)
    # An empty file body of '{}' is treated as an empty vault
    videos = data.get(VAULT_TOP_LEVEL_KEY, {})
    if not isinstance(videos, dict):
        raise VaultError(ErrorCode.STORE_CORRUPT,
                         f"Vault store {path}: '{VAULT_TOP_LEVEL_KEY}' must be an object",
                         stage=StageName.STORE)

    vault = Vault()
    for item_id, entry in videos.items():
        if not isinstance(entry, dict):
            raise VaultError(ErrorCode.STORE_CORRUPT,
                             f"Vault store {path}: entry {item_id} is not an object",
                             stage=StageName.STORE)
        try:
            record = VideoRecord.from_dict(entry)
        except (TypeError, ValueError) as e:
            raise VaultError(ErrorCode.STORE_CORRUPT,
                             f"Vault store {path}: entry {item_id}: {e}",
                             stage=StageName.STORE)
        if record.id != item_id:
            raise VaultError(ErrorCode.STORE_CORRUPT,
                             f"Vault store {path}: key {item_id} holds record {record.id}",
                             stage=StageName.STORE)
        vault.put(record)

    logger.debug("Loaded %d record(s) from %s", len(vault), path)
    return vault


def save_vault(vault_root: Path, vault: Vault):
    """
    Write the full vault to its store file, creating vault_root if needed.
    The file is replaced atomically so a crash never leaves a half-written store.
    """
    path = store_path_for(vault_root)

    try:
        body = json.dumps({VAULT_TOP_LEVEL_KEY: vault.to_dict()},
                          indent=2, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise VaultError(ErrorCode.STORE_SERIALIZE_FAILED,
                         f"Cannot serialise vault: {e}",
                         stage=StageName.STORE, retryable=False)

    tmp_name = None
    try:
        vault_root.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".vault-", suffix=".tmp",
                                        dir=str(vault_root))
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(body + "\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise VaultError(ErrorCode.STORE_WRITE_FAILED,
                         f"Cannot write vault store {path}: {e}",
                         stage=StageName.STORE)
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.warning("Could not remove temp store file %s", tmp_name)

    logger.debug("Saved %d record(s) to %s", len(vault), path)
