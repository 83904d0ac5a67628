"""
VideoTranscriber Vault — build script.

Usage:
    # Development (editable install):
    pip install -e ".[test]"

    # Then:
    video-vault doctor
    video-vault run https://www.youtube.com/watch?v=...
"""

from setuptools import setup, find_namespace_packages

APP_NAME = "video-transcriber-vault"

setup(
    name=APP_NAME,
    version="1.0.0",
    description="Resumable video download, transcription and summarization vault",
    packages=find_namespace_packages(include=["video_vault", "video_vault.*"]),
    install_requires=[
        "requests>=2.28.0",
    ],
    extras_require={
        # External tools the default adapters shell out to
        "tools": [
            "yt-dlp>=2024.1.0",
            "openai-whisper>=20231117",
        ],
        "test": [
            "pytest>=7.0",
        ],
    },
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "video-vault=video_vault.console.cli_main:main",
        ],
    },
)
