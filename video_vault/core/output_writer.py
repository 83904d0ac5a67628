"""
Output writer: exports a vault record as a Markdown file.
"""

import logging
from pathlib import Path

from video_vault.core.models import VideoRecord
from video_vault.core.security_utils import safe_output_path

logger = logging.getLogger(__name__)


def render_markdown(record: VideoRecord) -> str:
    title = record.title or f"video_{record.id}"
    lines = [f"# {title}", "", f"Source: {record.url}", f"Stage: {record.stage}", ""]
    lines += ["## Summary", "", record.summary_content or "_Not summarized yet._", ""]
    lines += ["## Transcript", "", record.transcript_content or "_Not transcribed yet._", ""]
    return "\n".join(lines)


def export_record(record: VideoRecord, output_root: Path) -> Path:
    """
    Write <OutputRoot>/<SanitizedTitle>/<id>.md
    Returns the path to the written file.
    """
    folder = safe_output_path(output_root, record.title, record.id)
    folder.mkdir(parents=True, exist_ok=True)

    output_file = folder / f"{record.id}.md"
    output_file.write_text(render_markdown(record), encoding='utf-8')

    logger.info("Exported %s to %s", record.id, output_file)
    return output_file
