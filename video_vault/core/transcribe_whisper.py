"""
Speech-to-text via the whisper command line tool.
whisper writes <audio stem>.txt next to the audio file; we read it back.
"""

import logging
import subprocess
from pathlib import Path

from video_vault.core.security_utils import run_subprocess_capture
from video_vault.core.diagnostics import require_tool
from video_vault.core.error_codes import VaultError, list_directory
from video_vault.core.constants import (
    ErrorCode, StageName, TRANSCRIPT_EXTENSION, WHISPER_BIN,
    DEFAULT_WHISPER_MODEL, TRANSCRIBE_TIMEOUT_SEC,
)

logger = logging.getLogger(__name__)


def find_transcript_file(audio_path: Path) -> Path | None:
    """
    Locate the transcript written for audio_path: '<stem>.txt' beside it,
    else the first '.txt' file in the same directory.
    """
    preferred = audio_path.with_suffix(f".{TRANSCRIPT_EXTENSION}")
    if preferred.is_file():
        return preferred

    directory = audio_path.parent
    if not directory.is_dir():
        return None
    for entry in directory.iterdir():
        if entry.is_file() and entry.suffix.lower() == f".{TRANSCRIPT_EXTENSION}":
            return entry
    return None


def transcribe_audio(audio_path: str | Path,
                     model: str = DEFAULT_WHISPER_MODEL,
                     language: str | None = None,
                     whisper_bin: str = WHISPER_BIN,
                     timeout: int = TRANSCRIBE_TIMEOUT_SEC) -> str:
    """Transcribe an audio file and return the trimmed transcript text."""
    audio_path = Path(audio_path)
    require_tool(whisper_bin, ["--help"], StageName.TRANSCRIBE)

    args = [
        whisper_bin,
        str(audio_path),
        "--model", model,
        "--output_format", TRANSCRIPT_EXTENSION,
        "--output_dir", str(audio_path.parent),
    ]
    if language:
        args.extend(["--language", language])

    try:
        result = run_subprocess_capture(args, timeout=timeout)
    except subprocess.TimeoutExpired:
        raise VaultError(ErrorCode.TRANSCRIBE_FAILED,
                         f"whisper did not finish within {timeout}s",
                         stage=StageName.TRANSCRIBE)
    except OSError as e:
        raise VaultError(ErrorCode.TOOL_UNAVAILABLE,
                         f"whisper could not be started: {e}",
                         stage=StageName.TRANSCRIBE)

    if result.returncode != 0:
        raise VaultError(ErrorCode.TRANSCRIBE_FAILED,
                         f"whisper failed (rc={result.returncode})",
                         stage=StageName.TRANSCRIBE, detail=result.stderr)

    transcript_path = find_transcript_file(audio_path)
    if transcript_path is None:
        raise VaultError(ErrorCode.ARTIFACT_MISSING,
                         f"whisper reported success but no transcript was found for {audio_path.name}",
                         stage=StageName.TRANSCRIBE, detail=list_directory(audio_path.parent))

    text = transcript_path.read_text(encoding='utf-8', errors='replace').strip()
    logger.info("Transcript read from %s (%d chars)", transcript_path, len(text))
    return text
