"""
Diagnostics: external tool availability probes and version detection.
"""

import shutil
import logging
import subprocess

from video_vault.core.security_utils import run_subprocess_capture
from video_vault.core.error_codes import VaultError
from video_vault.core.constants import (
    ErrorCode, YTDLP_BIN, WHISPER_BIN, TOOL_PROBE_TIMEOUT_SEC,
)

logger = logging.getLogger(__name__)


def require_tool(binary: str, probe_args: list[str], stage: str) -> str:
    """
    Check that an external tool can be run.
    Returns the probe's stdout; raises VaultError(TOOL_UNAVAILABLE) otherwise.
    """
    if shutil.which(binary) is None:
        raise VaultError(ErrorCode.TOOL_UNAVAILABLE,
                         f"'{binary}' was not found on PATH; install it or set its path in config",
                         stage=stage)
    try:
        result = run_subprocess_capture([binary, *probe_args], timeout=TOOL_PROBE_TIMEOUT_SEC)
    except subprocess.TimeoutExpired:
        raise VaultError(ErrorCode.TOOL_UNAVAILABLE,
                         f"'{binary}' did not answer within {TOOL_PROBE_TIMEOUT_SEC}s",
                         stage=stage)
    except OSError as e:
        raise VaultError(ErrorCode.TOOL_UNAVAILABLE,
                         f"'{binary}' could not be started: {e}",
                         stage=stage)

    if result.returncode != 0:
        raise VaultError(ErrorCode.TOOL_UNAVAILABLE,
                         f"'{binary}' probe failed (rc={result.returncode})",
                         stage=stage, detail=result.stderr)
    return result.stdout or ""


def get_ytdlp_version(binary: str = YTDLP_BIN) -> str:
    """Return yt-dlp version string, or error message."""
    try:
        return require_tool(binary, ["--version"], "diagnostics").strip()
    except VaultError as e:
        return e.message


def get_whisper_status(binary: str = WHISPER_BIN) -> str:
    """whisper has no --version flag; report where it was found."""
    try:
        require_tool(binary, ["--help"], "diagnostics")
    except VaultError as e:
        return e.message
    return f"available at {shutil.which(binary)}"


def get_diagnostics(ytdlp_bin: str = YTDLP_BIN, whisper_bin: str = WHISPER_BIN) -> dict:
    """Gather tool diagnostic information."""
    return {
        "ytdlp_version": get_ytdlp_version(ytdlp_bin),
        "whisper": get_whisper_status(whisper_bin),
    }
