"""
Shared constants for VideoTranscriber Vault.
Single source of truth: imported by every other module.
"""

import pathlib

# ── Application identity ──────────────────────────────────────────────
APP_NAME = "VideoTranscriberVault"
APP_SLUG = "video-transcriber"
APP_VERSION = "1.0.0"

# ── Filesystem paths ─────────────────────────────────────────────────
HOME = pathlib.Path.home()

APP_SUPPORT_DIR = HOME / ".config" / APP_SLUG
CONFIG_PATH = APP_SUPPORT_DIR / "config.json"
LOG_DIR = APP_SUPPORT_DIR / "logs"
LOG_FILE = LOG_DIR / "app.log"

# ── Vault layout ─────────────────────────────────────────────────────
VAULT_DIR_NAME = "video-transcriber-vault"
VAULT_STORE_FILENAME = "vault.json"
VAULT_LOCK_FILENAME = "vault.lock"
VAULT_TOP_LEVEL_KEY = "videos"

# Length of the hex digest prefix used as an item id
ID_HEX_LENGTH = 16

# Recognised audio extensions, lowercase, without the dot
AUDIO_EXTENSIONS = ("wav", "mp3", "m4a", "aac", "flac", "ogg")
TRANSCRIPT_EXTENSION = "txt"

# ── Keychain identifiers ─────────────────────────────────────────────
KEYCHAIN_SERVICE = "VideoTranscriberVault:Summary"
KEYCHAIN_ACCOUNT = "default"
API_KEY_ENV = "VIDEO_VAULT_API_KEY"

# ── Pipeline stages (ordered) ────────────────────────────────────────
class Stage:
    NEW = "NEW"
    DOWNLOADED = "DOWNLOADED"
    TRANSCRIBED = "TRANSCRIBED"
    SUMMARIZED = "SUMMARIZED"

# Stage names used when reporting which step failed
class StageName:
    STORE = "store"
    DOWNLOAD = "download"
    TRANSCRIBE = "transcribe"
    SUMMARIZE = "summarize"

# ── Error codes ───────────────────────────────────────────────────────
class ErrorCode:
    # Fatal for the run, user must install or configure something
    TOOL_UNAVAILABLE = "ERR_TOOL_UNAVAILABLE"
    INVALID_URL = "ERR_INVALID_URL"

    # Tool ran but signalled failure
    DOWNLOAD_FAILED = "ERR_DOWNLOAD_FAILED"
    TRANSCRIBE_FAILED = "ERR_TRANSCRIBE_FAILED"

    # Tool succeeded but the expected output is not on disk
    ARTIFACT_MISSING = "ERR_ARTIFACT_MISSING"

    # Transcription attempted without a known audio path
    MISSING_AUDIO_ARTIFACT = "ERR_MISSING_AUDIO_ARTIFACT"

    # Persistence layer
    STORE_CORRUPT = "ERR_STORE_CORRUPT"
    STORE_WRITE_FAILED = "ERR_STORE_WRITE_FAILED"
    STORE_SERIALIZE_FAILED = "ERR_STORE_SERIALIZE_FAILED"

# Running the pipeline again may succeed without user intervention
RETRYABLE_ERRORS = {
    ErrorCode.DOWNLOAD_FAILED,
    ErrorCode.TRANSCRIBE_FAILED,
    ErrorCode.ARTIFACT_MISSING,
}

# ── External tools ────────────────────────────────────────────────────
YTDLP_BIN = "yt-dlp"
WHISPER_BIN = "whisper"
DEFAULT_AUDIO_FORMAT = "wav"
DOWNLOAD_OUTPUT_TEMPLATE = "%(title)s.%(ext)s"
DEFAULT_WHISPER_MODEL = "base"

TOOL_PROBE_TIMEOUT_SEC = 30
TITLE_PROBE_TIMEOUT_SEC = 60
DOWNLOAD_TIMEOUT_SEC = 1800       # 30 minutes
TRANSCRIBE_TIMEOUT_SEC = 7200     # 2 hours

# ── Summarization ─────────────────────────────────────────────────────
class ProviderName:
    OPENAI = "openai"
    DEEPSEEK = "deepseek"

DEFAULT_PROVIDER = ProviderName.OPENAI
SUMMARY_TIMEOUT_SEC = 120
SUMMARY_MAX_TOKENS = 1000
SUMMARY_TEMPERATURE = 0.3

# Characters of transcript sent to the API; long transcripts are cut
SUMMARY_MAX_INPUT_CHARS = 60000

# Sentences kept by the local fallback summary
FALLBACK_SENTENCE_COUNT = 3

# ── Misc ──────────────────────────────────────────────────────────────
# Characters forbidden in folder names (macOS + Windows + safety)
UNSAFE_FILENAME_CHARS = r'[<>:"/\\|?*\x00-\x1f]'
MAX_FOLDER_NAME_LEN = 200

# Max chars of tool stderr kept on an error
MAX_DIAGNOSTIC_CHARS = 2000
