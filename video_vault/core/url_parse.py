"""
Video URL validation and batch input parsing.
Any http(s) URL with a host is accepted; yt-dlp decides what it can fetch.
"""

import csv
import logging
from urllib.parse import urlparse

from video_vault.core.constants import ErrorCode
from video_vault.core.error_codes import VaultError

logger = logging.getLogger(__name__)


def is_video_url(url: str) -> bool:
    """Quick check that a string is an absolute http(s) URL."""
    url = (url or "").strip()
    if not url or any(c.isspace() for c in url):
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def validate_url(url: str) -> str:
    """
    Validate a video URL and return it stripped of surrounding whitespace.
    Raises VaultError if invalid.
    """
    if not is_video_url(url):
        raise VaultError(ErrorCode.INVALID_URL, f"Not a valid http(s) URL: {url!r}",
                         retryable=False)
    return url.strip()


def parse_input_lines(text: str) -> list[str]:
    """
    Parse pasted text into a list of URLs.
    - Trims whitespace
    - Ignores empty lines and '#' comments
    - Skips anything that is not an http(s) URL, with a warning
    - Drops repeats, keeping first occurrence order
    """
    urls = []
    seen = set()
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith('#'):
            continue
        if not is_video_url(line):
            logger.warning("Line %d is not a URL, skipping: %r", lineno, line[:80])
            continue
        if line in seen:
            continue
        seen.add(line)
        urls.append(line)
    return urls


def parse_csv_file(filepath: str) -> list[str]:
    """
    Parse a CSV file for URLs.
    - If the header has a 'url' column (case-insensitive), use that column
    - Else use the first column
    """
    with open(filepath, 'r', encoding='utf-8', errors='replace', newline='') as f:
        rows = list(csv.reader(f))

    if not rows:
        return []

    header = rows[0]
    url_col_idx = 0
    for i, col in enumerate(header):
        if col.strip().lower() in ('url', 'video_url'):
            url_col_idx = i
            rows = rows[1:]
            break
    else:
        # No recognised header; keep the first row only if it is data
        if not (header and is_video_url(header[0])):
            rows = rows[1:]

    cells = [row[url_col_idx].strip() for row in rows if url_col_idx < len(row)]
    return parse_input_lines("\n".join(cells))


def parse_txt_file(filepath: str) -> list[str]:
    """Parse a .txt file containing one URL per line."""
    with open(filepath, 'r', encoding='utf-8', errors='replace') as f:
        return parse_input_lines(f.read())


def parse_input_file(filepath: str) -> list[str]:
    """Parse a .txt or .csv file for URLs."""
    if str(filepath).lower().endswith('.csv'):
        return parse_csv_file(filepath)
    return parse_txt_file(filepath)
