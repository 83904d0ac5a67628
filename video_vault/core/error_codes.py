"""
Standardised error handling for VideoTranscriber Vault.
"""

from video_vault.core.constants import ErrorCode, RETRYABLE_ERRORS, MAX_DIAGNOSTIC_CHARS


class VaultError(Exception):
    """Raised when a pipeline stage or the record store hits a known error condition."""

    def __init__(self, code: str, message: str, stage: str | None = None,
                 detail: str | None = None, retryable: bool | None = None):
        self.code = code
        self.message = message
        self.stage = stage
        # tool stderr or a directory listing, kept for diagnosis
        self.detail = detail[:MAX_DIAGNOSTIC_CHARS] if detail else None
        # auto-detect retryable from code if not explicitly set
        self.retryable = retryable if retryable is not None else (code in RETRYABLE_ERRORS)
        prefix = f"[{code}]" if not stage else f"[{code}] {stage}:"
        super().__init__(f"{prefix} {message}")

    def describe(self) -> str:
        """Single human-readable line plus the attached diagnostic, if any."""
        text = str(self)
        if self.detail:
            text += "\n" + self.detail
        return text


def is_retryable(code: str) -> bool:
    return code in RETRYABLE_ERRORS


def list_directory(path) -> str:
    """Directory listing attached to ArtifactMissing errors."""
    try:
        names = sorted(p.name for p in path.iterdir())
    except OSError as e:
        return f"(cannot list {path}: {e})"
    if not names:
        return f"{path} is empty"
    return f"Contents of {path}:\n" + "\n".join(f"  {n}" for n in names)
