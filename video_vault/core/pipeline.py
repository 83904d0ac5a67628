"""
Pipeline orchestrator.
Takes one video URL through download -> transcribe -> summarize, resuming
from whatever the vault says is already done.

Per item the state only moves forward:
    NEW -> DOWNLOADED -> TRANSCRIBED -> SUMMARIZED
There is no persisted "running" state. A crash mid-stage leaves the record
at its last completed stage, which is where the next run picks up.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from video_vault.core.constants import (
    ErrorCode, StageName, AUDIO_EXTENSIONS, DEFAULT_PROVIDER, DEFAULT_AUDIO_FORMAT,
    DEFAULT_WHISPER_MODEL, YTDLP_BIN, WHISPER_BIN,
    DOWNLOAD_TIMEOUT_SEC, TRANSCRIBE_TIMEOUT_SEC, SUMMARY_TIMEOUT_SEC,
    SUMMARY_MAX_TOKENS, SUMMARY_TEMPERATURE,
)
from video_vault.core.error_codes import VaultError, list_directory
from video_vault.core.models import Vault, VideoRecord
from video_vault.core.paths import VaultPaths, resolve_vault_paths
from video_vault.core.vault_store import load_vault, save_vault, vault_lock
from video_vault.core.download_audio import DownloadResult, download_audio, find_audio_file
from video_vault.core.transcribe_whisper import transcribe_audio
from video_vault.core.summarize import SummaryResult, summarize_transcript, get_provider
from video_vault.core.security_utils import resolve_api_key

logger = logging.getLogger(__name__)

Downloader = Callable[[str, Path], DownloadResult]
Transcriber = Callable[[str], str]
Summarizer = Callable[[str, Optional[str], str], SummaryResult]


class VaultPipeline:
    """
    Runs the three-stage pipeline for one URL at a time against a vault.

    The adapters default to yt-dlp, whisper and the chat completions API;
    any of them can be replaced with a callable of the same shape.
    Emits on_record_updated after every persisted change.
    """

    def __init__(self, config: dict | None = None,
                 downloader: Downloader | None = None,
                 transcriber: Transcriber | None = None,
                 summarizer: Summarizer | None = None,
                 api_key_resolver: Callable[[str], str | None] | None = None):
        self.config = config or {}
        self.downloader = downloader or self._download
        self.transcriber = transcriber or self._transcribe
        self.summarizer = summarizer or self._summarize
        self.api_key_resolver = api_key_resolver or resolve_api_key

        # Callbacks
        self.on_record_updated: Optional[Callable[[VideoRecord], None]] = None

    # ── Config helpers ────────────────────────────────────────────────

    @property
    def base_path(self) -> str | None:
        return self.config.get('base_path')

    @property
    def provider(self) -> str:
        return self.config.get('summary_provider') or DEFAULT_PROVIDER

    # ── Default adapters ──────────────────────────────────────────────

    def _download(self, url: str, item_dir: Path) -> DownloadResult:
        return download_audio(
            url, item_dir,
            audio_format=self.config.get('audio_format', DEFAULT_AUDIO_FORMAT),
            ytdlp_bin=self.config.get('ytdlp_path', YTDLP_BIN),
            timeout=self.config.get('download_timeout_sec', DOWNLOAD_TIMEOUT_SEC),
        )

    def _transcribe(self, audio_path: str) -> str:
        return transcribe_audio(
            audio_path,
            model=self.config.get('whisper_model', DEFAULT_WHISPER_MODEL),
            language=self.config.get('whisper_language'),
            whisper_bin=self.config.get('whisper_path', WHISPER_BIN),
            timeout=self.config.get('transcribe_timeout_sec', TRANSCRIBE_TIMEOUT_SEC),
        )

    def _summarize(self, transcript: str, api_key: str | None, provider: str) -> SummaryResult:
        return summarize_transcript(
            transcript, api_key=api_key, provider=provider,
            model=self.config.get('summary_model'),
            max_tokens=self.config.get('summary_max_tokens', SUMMARY_MAX_TOKENS),
            temperature=self.config.get('summary_temperature', SUMMARY_TEMPERATURE),
            timeout=self.config.get('summary_timeout_sec', SUMMARY_TIMEOUT_SEC),
        )

    # ── Run ───────────────────────────────────────────────────────────

    def run(self, url: str, base_path: str | Path | None = None) -> VideoRecord:
        """
        Bring the item for url as far through the pipeline as possible.
        Returns the final record; raises VaultError naming the failed stage.
        """
        paths = resolve_vault_paths(base_path if base_path is not None else self.base_path)
        with vault_lock(paths.vault_root):
            return self._run_locked(url, paths)

    def _run_locked(self, url: str, paths: VaultPaths) -> VideoRecord:
        vault = load_vault(paths.vault_root)
        record, created = vault.get_or_create(url)
        if created:
            logger.info("New item %s for %s", record.id, url)
        else:
            logger.info("Resuming item %s at stage %s", record.id, record.stage)

        item_dir = paths.item_dir(record.id)
        try:
            item_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise VaultError(ErrorCode.STORE_WRITE_FAILED,
                             f"Cannot create item directory {item_dir}: {e}",
                             stage=StageName.STORE)

        self._repair_audio_reference(record, item_dir, vault, paths)

        if not record.downloaded:
            self._run_download(record, item_dir, vault, paths)

        if not record.transcribed:
            self._run_transcribe(record, vault, paths)

        if not record.summarized and record.transcript_content is not None:
            self._run_summarize(record, vault, paths)

        return record

    # ── Stages ────────────────────────────────────────────────────────

    def _repair_audio_reference(self, record: VideoRecord, item_dir: Path,
                                vault: Vault, paths: VaultPaths):
        """
        Downloaded but no audio path on record: look for the file again.
        Nothing found is not an error here; transcription will report it.
        """
        if not record.downloaded or record.audio_file is not None:
            return
        found = find_audio_file(item_dir)
        if found is None:
            logger.warning("Item %s is marked downloaded but no audio file is in %s",
                           record.id, item_dir)
            return
        record.audio_file = str(found.resolve())
        logger.info("Repaired audio reference for %s: %s", record.id, record.audio_file)
        self._persist(record, vault, paths)

    def _run_download(self, record: VideoRecord, item_dir: Path,
                      vault: Vault, paths: VaultPaths):
        logger.info("Downloading %s", record.url)
        result = self.downloader(record.url, item_dir)

        audio_path = Path(result.audio_path).resolve()
        if not audio_path.is_file():
            raise VaultError(ErrorCode.ARTIFACT_MISSING,
                             f"Download finished but {audio_path} does not exist",
                             stage=StageName.DOWNLOAD, detail=list_directory(item_dir))
        if audio_path.suffix.lower().lstrip(".") not in AUDIO_EXTENSIONS:
            raise VaultError(ErrorCode.ARTIFACT_MISSING,
                             f"Download finished but {audio_path.name} is not an audio file",
                             stage=StageName.DOWNLOAD, detail=list_directory(item_dir))

        record.downloaded = True
        record.audio_file = str(audio_path)
        record.title = result.title
        self._persist(record, vault, paths)

    def _run_transcribe(self, record: VideoRecord, vault: Vault, paths: VaultPaths):
        if record.audio_file is None:
            raise VaultError(ErrorCode.MISSING_AUDIO_ARTIFACT,
                             f"Item {record.id} is marked downloaded but has no audio file",
                             stage=StageName.TRANSCRIBE, retryable=False)

        logger.info("Transcribing %s", record.audio_file)
        text = self.transcriber(record.audio_file)

        record.transcribed = True
        record.transcript_content = text
        self._persist(record, vault, paths)

    def _run_summarize(self, record: VideoRecord, vault: Vault, paths: VaultPaths):
        provider = get_provider(self.provider)
        api_key = self.api_key_resolver(provider.api_key_env)

        logger.info("Summarizing %s with %s", record.id, provider.name if api_key else "local fallback")
        result = self.summarizer(record.transcript_content, api_key, provider.name)
        if result.used_fallback and api_key:
            logger.warning("Summary for %s fell back to the local summary", record.id)

        record.summarized = True
        record.summary_content = result.text
        self._persist(record, vault, paths)

    # ── Persistence ───────────────────────────────────────────────────

    def _persist(self, record: VideoRecord, vault: Vault, paths: VaultPaths):
        """Write the whole vault before the next stage starts."""
        record.touch()
        vault.put(record)
        save_vault(paths.vault_root, vault)
        logger.debug("Persisted %s at stage %s", record.id, record.stage)
        if self.on_record_updated:
            self.on_record_updated(record)
