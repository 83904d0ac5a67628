"""
Vault data models (plain dataclasses) for VideoTranscriber Vault.
"""

import logging
import time
from dataclasses import dataclass, field, fields, asdict
from typing import Optional

from video_vault.core.constants import Stage
from video_vault.core.identity import derive_id

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("title", "audio_file", "transcript_content", "summary_content",
                "created_at", "updated_at")


def now_ts() -> str:
    """Seconds since the epoch, as text."""
    return str(int(time.time()))


@dataclass
class VideoRecord:
    id: str                          # derive_id(url)
    url: str
    title: Optional[str] = None
    downloaded: bool = False
    transcribed: bool = False
    summarized: bool = False
    audio_file: Optional[str] = None
    transcript_content: Optional[str] = None
    summary_content: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def new(cls, url: str) -> "VideoRecord":
        now = now_ts()
        return cls(id=derive_id(url), url=url, created_at=now, updated_at=now)

    @property
    def stage(self) -> str:
        if not self.downloaded:
            return Stage.NEW
        if not self.transcribed:
            return Stage.DOWNLOADED
        if not self.summarized:
            return Stage.TRANSCRIBED
        return Stage.SUMMARIZED

    def touch(self):
        self.updated_at = now_ts()

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "VideoRecord":
        """Build a record from its stored form. Unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        missing = [k for k in ("id", "url") if not isinstance(values.get(k), str)]
        if missing:
            raise ValueError(f"record is missing {', '.join(missing)}")
        for flag in ("downloaded", "transcribed", "summarized"):
            if not isinstance(values.get(flag, False), bool):
                raise ValueError(f"record {values['id']}: '{flag}' must be a boolean")
        for name in _TEXT_FIELDS:
            value = values.get(name)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"record {values['id']}: '{name}' must be text or null")
        return cls(**values)


@dataclass
class Vault:
    """In-memory mapping of item id to record."""
    videos: dict[str, VideoRecord] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.videos)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self.videos

    def get(self, item_id: str) -> VideoRecord | None:
        return self.videos.get(item_id)

    def put(self, record: VideoRecord):
        self.videos[record.id] = record

    def get_or_create(self, url: str) -> tuple[VideoRecord, bool]:
        """
        Return (record, created). A new record is only held in memory;
        it reaches disk with the next save.
        """
        item_id = derive_id(url)
        record = self.videos.get(item_id)
        if record is not None:
            if record.url != url:
                logger.warning("Id %s already holds %s; %s hashes to the same id",
                               item_id, record.url, url)
            return record, False
        record = VideoRecord.new(url)
        self.videos[item_id] = record
        return record, True

    def find(self, id_or_url: str) -> VideoRecord | None:
        """Look up by id, then by URL."""
        return self.videos.get(id_or_url) or self.videos.get(derive_id(id_or_url))

    def records(self) -> list[VideoRecord]:
        return sorted(self.videos.values(), key=lambda r: r.created_at or "")

    def to_dict(self) -> dict:
        return {item_id: rec.to_dict() for item_id, rec in self.videos.items()}
