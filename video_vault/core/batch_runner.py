"""
Batch runner.
Feeds a list of URLs through the pipeline one at a time. A failed item is
recorded and the batch moves on; the vault keeps whatever that item finished.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from video_vault.core.error_codes import VaultError
from video_vault.core.models import VideoRecord
from video_vault.core.pipeline import VaultPipeline

logger = logging.getLogger(__name__)


@dataclass
class BatchOutcome:
    url: str
    record: Optional[VideoRecord] = None
    error: Optional[VaultError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchRunner:
    """Processes URLs sequentially and can be asked to stop between items."""

    def __init__(self, pipeline: VaultPipeline):
        self.pipeline = pipeline
        self._stop_after_current = threading.Event()

        # Callbacks
        self.on_item_started: Optional[Callable[[int, str], None]] = None
        self.on_item_finished: Optional[Callable[[int, BatchOutcome], None]] = None

    def stop_after_current(self):
        """Stop once the item being processed finishes."""
        self._stop_after_current.set()

    def run(self, urls: list[str], base_path: str | Path | None = None) -> list[BatchOutcome]:
        self._stop_after_current.clear()
        outcomes = []
        for idx, url in enumerate(urls):
            if self._stop_after_current.is_set():
                logger.info("Batch stopped after %d of %d item(s)", idx, len(urls))
                break

            if self.on_item_started:
                self.on_item_started(idx, url)

            try:
                record = self.pipeline.run(url, base_path)
                outcome = BatchOutcome(url=url, record=record)
            except VaultError as e:
                logger.error("Item %s failed: %s", url, e)
                outcome = BatchOutcome(url=url, error=e)

            outcomes.append(outcome)
            if self.on_item_finished:
                self.on_item_finished(idx, outcome)

        failed = sum(1 for o in outcomes if not o.ok)
        logger.info("Batch finished: %d ok, %d failed", len(outcomes) - failed, failed)
        return outcomes
