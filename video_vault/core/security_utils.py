"""
Security utilities for VideoTranscriber Vault.
- Filename sanitization for exports
- Safe subprocess execution (argument arrays only)
- API key resolution (environment, then macOS Keychain)
"""

import os
import re
import subprocess
import pathlib
import logging

from video_vault.core.constants import (
    UNSAFE_FILENAME_CHARS,
    MAX_FOLDER_NAME_LEN,
    KEYCHAIN_SERVICE,
    KEYCHAIN_ACCOUNT,
    API_KEY_ENV,
)

logger = logging.getLogger(__name__)


# ── Filename / path safety ────────────────────────────────────────────

def sanitize_title(title: str | None) -> str:
    """Sanitize a video title for use as a folder name."""
    if not title:
        return ""
    safe = re.sub(UNSAFE_FILENAME_CHARS, '_', title)
    safe = safe.replace('..', '')
    safe = re.sub(r'[_\s]+', ' ', safe).strip()
    if len(safe) > MAX_FOLDER_NAME_LEN:
        safe = safe[:MAX_FOLDER_NAME_LEN].rstrip()
    # Leading dots would hide the folder
    safe = safe.strip('.')
    return safe


def safe_output_path(output_root: pathlib.Path, title: str | None, item_id: str) -> pathlib.Path:
    """
    Build an export folder under output_root. Enforces that the resolved
    result stays inside output_root; falls back to 'video_<item_id>'.
    """
    sanitized = sanitize_title(title) or f"video_{item_id}"

    candidate = output_root / sanitized
    real_root = output_root.resolve(strict=False)
    real_candidate = candidate.resolve(strict=False)
    if real_root not in real_candidate.parents:
        logger.warning("Export folder %r escapes %s; using id folder", sanitized, output_root)
        candidate = output_root / f"video_{item_id}"

    return candidate


# ── Subprocess safety ─────────────────────────────────────────────────

def run_subprocess(args: list[str], redact: tuple = (), **kwargs) -> subprocess.CompletedProcess:
    """
    Execute a subprocess using argument arrays only.
    shell=True is explicitly forbidden. Values in redact are masked in the log.
    """
    if not isinstance(args, (list, tuple)):
        raise TypeError("Subprocess args must be a list/tuple, not a string")

    kwargs.pop('shell', None)

    logger.debug("Running subprocess: %s",
                 ' '.join("***" if a in redact else str(a) for a in args))
    return subprocess.run(args, shell=False, **kwargs)


def run_subprocess_capture(args: list[str], timeout: int = 300, redact: tuple = (), **kwargs) -> subprocess.CompletedProcess:
    """Run subprocess and capture stdout/stderr as text."""
    return run_subprocess(
        args,
        capture_output=True,
        text=True,
        errors='replace',
        timeout=timeout,
        redact=redact,
        **kwargs,
    )


# ── API key resolution ────────────────────────────────────────────────

def resolve_api_key(provider_env: str | None = None) -> str | None:
    """
    Find the summarization API key.
    Order: VIDEO_VAULT_API_KEY, the provider's own variable, the login Keychain.
    """
    for name in (API_KEY_ENV, provider_env):
        if name:
            value = os.environ.get(name, "").strip()
            if value:
                return value
    return keychain_get_api_key()


def keychain_get_api_key() -> str | None:
    """Retrieve the API key from the macOS Keychain, if available."""
    try:
        result = run_subprocess_capture([
            "security", "find-generic-password",
            "-s", KEYCHAIN_SERVICE,
            "-a", KEYCHAIN_ACCOUNT,
            "-w",  # print password only
        ], timeout=10)
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
    except (subprocess.TimeoutExpired, FileNotFoundError):
        pass
    except OSError as e:
        logger.warning("Keychain read failed: %s", type(e).__name__)
    return None


def keychain_set_api_key(api_key: str) -> bool:
    """Store or update the API key in the macOS Keychain."""
    try:
        result = run_subprocess_capture([
            "security", "add-generic-password",
            "-s", KEYCHAIN_SERVICE,
            "-a", KEYCHAIN_ACCOUNT,
            "-w", api_key,
            "-U",  # update if exists
        ], timeout=10, redact=(api_key,))
        return result.returncode == 0
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.error("Keychain write failed: %s", type(e).__name__)
        return False


def keychain_delete_api_key() -> bool:
    """Delete the API key from the macOS Keychain."""
    try:
        result = run_subprocess_capture([
            "security", "delete-generic-password",
            "-s", KEYCHAIN_SERVICE,
            "-a", KEYCHAIN_ACCOUNT,
        ], timeout=10)
        return result.returncode == 0
    except (subprocess.TimeoutExpired, OSError):
        return False
