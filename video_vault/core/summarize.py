"""
Transcript summarization through an OpenAI-compatible chat completions API.

This stage has no failure case visible to the caller: a missing key, a
network error, a non-200 response or a malformed body all produce the
deterministic local summary instead.
"""

import re
import logging
from dataclasses import dataclass

import requests

from video_vault.core.constants import (
    ProviderName, DEFAULT_PROVIDER, SUMMARY_TIMEOUT_SEC, SUMMARY_MAX_TOKENS,
    SUMMARY_TEMPERATURE, SUMMARY_MAX_INPUT_CHARS, FALLBACK_SENTENCE_COUNT,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SummaryProvider:
    name: str
    endpoint: str
    default_model: str
    api_key_env: str


PROVIDERS = {
    ProviderName.OPENAI: SummaryProvider(
        name=ProviderName.OPENAI,
        endpoint="https://api.openai.com/v1/chat/completions",
        default_model="gpt-4o-mini",
        api_key_env="OPENAI_API_KEY",
    ),
    ProviderName.DEEPSEEK: SummaryProvider(
        name=ProviderName.DEEPSEEK,
        endpoint="https://api.deepseek.com/chat/completions",
        default_model="deepseek-chat",
        api_key_env="DEEPSEEK_API_KEY",
    ),
}


def get_provider(name: str | None) -> SummaryProvider:
    """Look up a provider by tag; unknown tags fall back to the default provider."""
    key = (name or "").strip().lower()
    provider = PROVIDERS.get(key)
    if provider is None:
        if key:
            logger.warning("Unknown summary provider %r; using %s", name, DEFAULT_PROVIDER)
        provider = PROVIDERS[DEFAULT_PROVIDER]
    return provider


@dataclass(frozen=True)
class SummaryResult:
    text: str
    provider: str
    used_fallback: bool


_SYSTEM_PROMPT = (
    "You summarize video transcripts. Write a concise summary in the language "
    "of the transcript: a one-paragraph overview followed by the key points as "
    "a bulleted list."
)

_SENTENCE_SPLIT = re.compile(r'(?<=[.!?。！？])\s+|\n+')


def build_messages(transcript: str) -> list[dict]:
    text = transcript
    if len(text) > SUMMARY_MAX_INPUT_CHARS:
        text = text[:SUMMARY_MAX_INPUT_CHARS]
    return [
        {"role": "system", "content": _SYSTEM_PROMPT},
        {"role": "user", "content": f"Summarize this transcript:\n\n{text}"},
    ]


def local_summary(transcript: str) -> str:
    """
    Deterministic summary built without any API: word count, the first few
    non-empty sentences, and a hint about configuring an API key.
    """
    word_count = len(transcript.split())
    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(transcript) if s and s.strip()]
    lead = sentences[:FALLBACK_SENTENCE_COUNT]

    parts = [f"Transcript length: {word_count} words."]
    if lead:
        parts.append("Opening:\n" + "\n".join(f"- {s}" for s in lead))
    parts.append("Note: this is a basic local summary. Configure an API key "
                 "for a higher-quality AI summary.")
    return "\n\n".join(parts)


def extract_summary_text(response_json) -> str | None:
    """Pull choices[0].message.content out of a chat completions response."""
    try:
        content = response_json["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(content, str) or not content.strip():
        return None
    return content.strip()


def summarize_transcript(transcript: str, api_key: str | None = None,
                         provider: str | None = DEFAULT_PROVIDER,
                         model: str | None = None,
                         max_tokens: int = SUMMARY_MAX_TOKENS,
                         temperature: float = SUMMARY_TEMPERATURE,
                         timeout: int = SUMMARY_TIMEOUT_SEC) -> SummaryResult:
    """Summarize a transcript. Always returns a result."""
    chosen = get_provider(provider)

    if not api_key:
        logger.info("No API key configured; using local summary")
        return SummaryResult(text=local_summary(transcript), provider="local", used_fallback=True)

    payload = {
        "model": model or chosen.default_model,
        "messages": build_messages(transcript),
        "max_tokens": max_tokens,
        "temperature": temperature,
    }
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    summary = None
    try:
        resp = requests.post(chosen.endpoint, headers=headers, json=payload, timeout=timeout)
        if resp.status_code != 200:
            # Never log the key; the body is enough to diagnose
            body = resp.text[:300] if resp.text else "No response body"
            logger.warning("%s returned %d: %s", chosen.name, resp.status_code, body)
        else:
            summary = extract_summary_text(resp.json())
            if summary is None:
                logger.warning("%s response had no summary content", chosen.name)
    except requests.exceptions.Timeout:
        logger.warning("%s request timed out after %ds", chosen.name, timeout)
    except requests.exceptions.RequestException as e:
        logger.warning("%s request failed: %s", chosen.name, type(e).__name__)
    except ValueError:
        logger.warning("%s returned a body that is not JSON", chosen.name)

    if summary is None:
        return SummaryResult(text=local_summary(transcript), provider="local", used_fallback=True)

    logger.info("Summary generated by %s (%d chars)", chosen.name, len(summary))
    return SummaryResult(text=summary, provider=chosen.name, used_fallback=False)
