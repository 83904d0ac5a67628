"""
Stable item identity derived from the source URL.
"""

import hashlib

from video_vault.core.constants import ID_HEX_LENGTH


def derive_id(url: str) -> str:
    """
    Return the first 16 hex characters of SHA-256 over the URL's UTF-8 bytes.
    The URL is hashed exactly as given; no normalisation is applied.
    """
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:ID_HEX_LENGTH]
