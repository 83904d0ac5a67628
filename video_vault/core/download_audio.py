"""
Audio download via yt-dlp.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from video_vault.core.security_utils import run_subprocess_capture
from video_vault.core.diagnostics import require_tool
from video_vault.core.error_codes import VaultError, list_directory
from video_vault.core.constants import (
    ErrorCode, StageName, AUDIO_EXTENSIONS, YTDLP_BIN, DEFAULT_AUDIO_FORMAT,
    DOWNLOAD_OUTPUT_TEMPLATE, DOWNLOAD_TIMEOUT_SEC, TITLE_PROBE_TIMEOUT_SEC,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DownloadResult:
    audio_path: str
    title: str


def find_audio_file(directory: Path) -> Path | None:
    """First file in directory iteration order with a recognised audio extension."""
    if not directory.is_dir():
        return None
    for entry in directory.iterdir():
        if entry.is_file() and entry.suffix.lower().lstrip('.') in AUDIO_EXTENSIONS:
            return entry
    return None


def fetch_title(video_url: str, ytdlp_bin: str = YTDLP_BIN) -> str | None:
    """Ask yt-dlp for the title without downloading. Returns None on any failure."""
    args = [ytdlp_bin, "--get-title", "--skip-download", "--no-playlist", video_url]
    try:
        result = run_subprocess_capture(args, timeout=TITLE_PROBE_TIMEOUT_SEC)
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.warning("Title probe failed for %s: %s", video_url, e)
        return None

    if result.returncode != 0:
        logger.warning("Title probe failed for %s (rc=%d): %s",
                       video_url, result.returncode, (result.stderr or "")[:300])
        return None

    lines = [ln.strip() for ln in (result.stdout or "").splitlines() if ln.strip()]
    return lines[0] if lines else None


def download_audio(video_url: str, item_dir: Path,
                   audio_format: str = DEFAULT_AUDIO_FORMAT,
                   ytdlp_bin: str = YTDLP_BIN,
                   timeout: int = DOWNLOAD_TIMEOUT_SEC) -> DownloadResult:
    """
    Download a video's audio track into item_dir using yt-dlp.
    Returns the path of the extracted audio file and the video title.
    """
    require_tool(ytdlp_bin, ["--version"], StageName.DOWNLOAD)

    title = fetch_title(video_url, ytdlp_bin)

    item_dir.mkdir(parents=True, exist_ok=True)
    output_template = str(item_dir / DOWNLOAD_OUTPUT_TEMPLATE)

    args = [
        ytdlp_bin,
        "--no-playlist",
        "--extract-audio",
        "--audio-format", audio_format,
        "--output", output_template,
        video_url,
    ]

    try:
        result = run_subprocess_capture(args, timeout=timeout)
    except subprocess.TimeoutExpired:
        raise VaultError(ErrorCode.DOWNLOAD_FAILED,
                         f"yt-dlp did not finish within {timeout}s",
                         stage=StageName.DOWNLOAD)
    except OSError as e:
        raise VaultError(ErrorCode.TOOL_UNAVAILABLE,
                         f"yt-dlp could not be started: {e}",
                         stage=StageName.DOWNLOAD)

    if result.returncode != 0:
        raise VaultError(ErrorCode.DOWNLOAD_FAILED,
                         f"yt-dlp download failed (rc={result.returncode})",
                         stage=StageName.DOWNLOAD, detail=result.stderr)

    audio_path = find_audio_file(item_dir)
    if audio_path is None:
        raise VaultError(ErrorCode.ARTIFACT_MISSING,
                         f"yt-dlp reported success but no audio file was found in {item_dir}",
                         stage=StageName.DOWNLOAD, detail=list_directory(item_dir))

    audio_path = audio_path.resolve()
    logger.info("Downloaded audio: %s", audio_path)
    return DownloadResult(audio_path=str(audio_path), title=title or audio_path.stem)
