#!/usr/bin/env python3
"""
Unit tests for VideoTranscriber Vault core modules.
Tests cover: identity, paths, record store, URL parsing, security utils,
config, and the download / transcribe / summarize adapters.
"""

import sys
import json
import tempfile
import subprocess
from pathlib import Path
from unittest import mock

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import unittest

import requests

from video_vault.core.constants import ErrorCode, Stage, StageName, VAULT_DIR_NAME
from video_vault.core.identity import derive_id
from video_vault.core.paths import expand_home, resolve_vault_paths
from video_vault.core.models import Vault, VideoRecord
from video_vault.core.vault_store import (
    load_vault, save_vault, vault_lock, thread_lock_for, store_path_for,
)
from video_vault.core.error_codes import VaultError, is_retryable
from video_vault.core.url_parse import (
    is_video_url, validate_url, parse_input_lines, parse_csv_file,
)
from video_vault.core.security_utils import sanitize_title, safe_output_path, resolve_api_key
from video_vault.core.config import AppConfig
from video_vault.core.download_audio import download_audio, find_audio_file
from video_vault.core.transcribe_whisper import transcribe_audio
from video_vault.core.summarize import (
    summarize_transcript, local_summary, get_provider, PROVIDERS,
)
from video_vault.core.output_writer import export_record


def _completed(args, returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args, returncode, stdout, stderr)


def _tools_present():
    """Patch the availability probe so every tool looks installed."""
    return [
        mock.patch("video_vault.core.diagnostics.shutil.which", return_value="/usr/bin/tool"),
        mock.patch("video_vault.core.diagnostics.run_subprocess_capture",
                   side_effect=lambda args, **kw: _completed(args, 0, "2024.01.01\n")),
    ]


class TestIdentity(unittest.TestCase):
    """Test item id derivation."""

    def test_deterministic(self):
        url = "https://example.com/v1"
        self.assertEqual(derive_id(url), derive_id(url))

    def test_known_value(self):
        # sha256("https://example.com/v1")[:16]
        import hashlib
        expected = hashlib.sha256(b"https://example.com/v1").hexdigest()[:16]
        self.assertEqual(derive_id("https://example.com/v1"), expected)

    def test_shape(self):
        item_id = derive_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ")
        self.assertEqual(len(item_id), 16)
        self.assertTrue(all(c in "0123456789abcdef" for c in item_id))

    def test_different_urls(self):
        self.assertNotEqual(derive_id("https://example.com/v1"),
                            derive_id("https://example.com/v2"))

    def test_total_over_any_string(self):
        self.assertEqual(len(derive_id("")), 16)
        self.assertEqual(len(derive_id("视频 链接")), 16)


class TestPaths(unittest.TestCase):
    """Test vault path resolution."""

    def test_expand_home(self):
        self.assertEqual(expand_home("~/videos", home=Path("/home/u")), Path("/home/u/videos"))

    def test_other_forms_unchanged(self):
        self.assertEqual(expand_home("~other/videos", home=Path("/home/u")), Path("~other/videos"))
        self.assertEqual(expand_home("/data/videos", home=Path("/home/u")), Path("/data/videos"))
        self.assertEqual(expand_home("relative/dir", home=Path("/home/u")), Path("relative/dir"))

    def test_layout(self):
        paths = resolve_vault_paths("/data")
        self.assertEqual(paths.vault_root, Path("/data") / VAULT_DIR_NAME)
        self.assertEqual(paths.store_path, Path("/data") / VAULT_DIR_NAME / "vault.json")
        self.assertEqual(paths.item_dir("abc"), Path("/data") / VAULT_DIR_NAME / "abc")

    def test_home_relative_base(self):
        paths = resolve_vault_paths("~/Downloads", home=Path("/home/u"))
        self.assertEqual(paths.vault_root, Path("/home/u/Downloads") / VAULT_DIR_NAME)

    def test_default_is_temp_dir(self):
        paths = resolve_vault_paths(None)
        self.assertEqual(paths.vault_root, Path(tempfile.gettempdir()) / VAULT_DIR_NAME)
        self.assertEqual(resolve_vault_paths("").vault_root, paths.vault_root)


class TestModels(unittest.TestCase):
    """Test the item record."""

    def test_new_record(self):
        rec = VideoRecord.new("https://example.com/v1")
        self.assertEqual(rec.id, derive_id("https://example.com/v1"))
        self.assertFalse(rec.downloaded or rec.transcribed or rec.summarized)
        self.assertIsNone(rec.audio_file)
        self.assertIsNone(rec.title)
        self.assertEqual(rec.created_at, rec.updated_at)
        self.assertTrue(rec.created_at.isdigit())

    def test_stage(self):
        rec = VideoRecord.new("https://example.com/v1")
        self.assertEqual(rec.stage, Stage.NEW)
        rec.downloaded = True
        self.assertEqual(rec.stage, Stage.DOWNLOADED)
        rec.transcribed = True
        self.assertEqual(rec.stage, Stage.TRANSCRIBED)
        rec.summarized = True
        self.assertEqual(rec.stage, Stage.SUMMARIZED)

    def test_get_or_create(self):
        vault = Vault()
        rec, created = vault.get_or_create("https://example.com/v1")
        self.assertTrue(created)
        again, created = vault.get_or_create("https://example.com/v1")
        self.assertFalse(created)
        self.assertIs(rec, again)
        self.assertEqual(len(vault), 1)

    def test_find_by_id_or_url(self):
        vault = Vault()
        rec, _ = vault.get_or_create("https://example.com/v1")
        self.assertIs(vault.find(rec.id), rec)
        self.assertIs(vault.find("https://example.com/v1"), rec)
        self.assertIsNone(vault.find("https://example.com/other"))

    def test_from_dict_ignores_unknown_keys(self):
        rec = VideoRecord.from_dict({"id": "x", "url": "u", "extra": 1})
        self.assertEqual(rec.id, "x")

    def test_from_dict_rejects_bad_flags(self):
        with self.assertRaises(ValueError):
            VideoRecord.from_dict({"id": "x", "url": "u", "downloaded": "yes"})

    def test_from_dict_rejects_non_text_fields(self):
        for name in ("title", "audio_file", "transcript_content", "summary_content"):
            with self.assertRaises(ValueError, msg=name):
                VideoRecord.from_dict({"id": "x", "url": "u", name: 5})
        rec = VideoRecord.from_dict({"id": "x", "url": "u", "audio_file": None})
        self.assertIsNone(rec.audio_file)


class TestVaultStore(unittest.TestCase):
    """Test vault persistence."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name) / "nested" / VAULT_DIR_NAME

    def tearDown(self):
        self._tmp.cleanup()

    def _sample_vault(self) -> Vault:
        vault = Vault()
        a, _ = vault.get_or_create("https://example.com/a")
        a.title = "Café — épisode 1"
        a.downloaded = True
        a.audio_file = "/tmp/a.wav"
        a.transcribed = True
        a.transcript_content = "Bonjour.\nLine two."
        vault.get_or_create("https://example.com/b")
        return vault

    def test_missing_store_is_empty(self):
        vault = load_vault(self.root)
        self.assertEqual(len(vault), 0)
        self.assertFalse(self.root.exists())

    def test_round_trip(self):
        vault = self._sample_vault()
        save_vault(self.root, vault)
        self.assertEqual(load_vault(self.root), vault)

    def test_round_trip_empty(self):
        save_vault(self.root, Vault())
        self.assertEqual(load_vault(self.root), Vault())

    def test_file_layout(self):
        vault = self._sample_vault()
        save_vault(self.root, vault)
        data = json.loads(store_path_for(self.root).read_text(encoding="utf-8"))
        self.assertEqual(set(data), {"videos"})
        rec_id = derive_id("https://example.com/b")
        self.assertIsNone(data["videos"][rec_id]["audio_file"])
        self.assertIs(data["videos"][rec_id]["downloaded"], False)

    def test_save_overwrites(self):
        vault = self._sample_vault()
        save_vault(self.root, vault)
        vault.get_or_create("https://example.com/c")
        save_vault(self.root, vault)
        self.assertEqual(len(load_vault(self.root)), 3)
        # No temp files left behind
        self.assertEqual([p.name for p in self.root.iterdir()], ["vault.json"])

    def test_corrupt_json(self):
        self.root.mkdir(parents=True)
        store_path_for(self.root).write_text("{not json", encoding="utf-8")
        with self.assertRaises(VaultError) as ctx:
            load_vault(self.root)
        self.assertEqual(ctx.exception.code, ErrorCode.STORE_CORRUPT)
        self.assertIn("not valid JSON", ctx.exception.message)

    def test_not_utf8(self):
        self.root.mkdir(parents=True)
        store_path_for(self.root).write_bytes(b'{"videos": {"\xff\xfe": 1}}')
        with self.assertRaises(VaultError) as ctx:
            load_vault(self.root)
        self.assertEqual(ctx.exception.code, ErrorCode.STORE_CORRUPT)
        self.assertEqual(ctx.exception.stage, StageName.STORE)
        self.assertIn("UTF-8", ctx.exception.message)

    def test_corrupt_shape(self):
        self.root.mkdir(parents=True)
        for body in ('[]', '{"videos": []}', '{"videos": {"x": 5}}',
                     '{"videos": {"x": {"id": "x"}}}',
                     '{"videos": {"x": {"id": "y", "url": "u"}}}',
                     '{"videos": {"x": {"id": "x", "url": "u", "audio_file": 5}}}'):
            store_path_for(self.root).write_text(body, encoding="utf-8")
            with self.assertRaises(VaultError, msg=body) as ctx:
                load_vault(self.root)
            self.assertEqual(ctx.exception.code, ErrorCode.STORE_CORRUPT)

    def test_write_failure(self):
        blocker = Path(self._tmp.name) / "blocker"
        blocker.write_text("a file, not a directory")
        with self.assertRaises(VaultError) as ctx:
            save_vault(blocker, Vault())
        self.assertEqual(ctx.exception.code, ErrorCode.STORE_WRITE_FAILED)
        self.assertEqual(ctx.exception.stage, StageName.STORE)

    def test_serialize_failure(self):
        vault = Vault()
        rec, _ = vault.get_or_create("https://example.com/a")
        rec.title = object()
        with self.assertRaises(VaultError) as ctx:
            save_vault(self.root, vault)
        self.assertEqual(ctx.exception.code, ErrorCode.STORE_SERIALIZE_FAILED)
        self.assertFalse(store_path_for(self.root).exists())

    def test_lock_is_per_path(self):
        self.assertIs(thread_lock_for(self.root), thread_lock_for(self.root))
        self.assertIsNot(thread_lock_for(self.root), thread_lock_for(self.root.parent))

    def test_lock_creates_sidecar_and_releases(self):
        with vault_lock(self.root):
            self.assertTrue((self.root / "vault.lock").exists())
            self.assertTrue(thread_lock_for(self.root).locked())
        self.assertFalse(thread_lock_for(self.root).locked())
        # Reacquiring after release does not block
        with vault_lock(self.root):
            save_vault(self.root, Vault())
        self.assertEqual(len(load_vault(self.root)), 0)


class TestErrorCodes(unittest.TestCase):
    """Test error code handling."""

    def test_retryable(self):
        self.assertTrue(is_retryable(ErrorCode.DOWNLOAD_FAILED))
        self.assertTrue(is_retryable(ErrorCode.TRANSCRIBE_FAILED))
        self.assertFalse(is_retryable(ErrorCode.TOOL_UNAVAILABLE))
        self.assertFalse(is_retryable(ErrorCode.STORE_CORRUPT))

    def test_message_names_stage(self):
        err = VaultError(ErrorCode.DOWNLOAD_FAILED, "boom", stage=StageName.DOWNLOAD,
                         detail="ERROR: Unsupported URL")
        self.assertIn("download", str(err))
        self.assertIn("ERROR: Unsupported URL", err.describe())
        self.assertTrue(err.retryable)


class TestURLParsing(unittest.TestCase):
    """Test URL validation and batch parsing."""

    def test_is_video_url(self):
        self.assertTrue(is_video_url("https://www.youtube.com/watch?v=dQw4w9WgXcQ"))
        self.assertTrue(is_video_url("http://example.com/v1"))
        self.assertFalse(is_video_url("ftp://example.com/v1"))
        self.assertFalse(is_video_url("not a url"))
        self.assertFalse(is_video_url(""))
        self.assertFalse(is_video_url("https://"))

    def test_validate_raises_on_invalid(self):
        with self.assertRaises(VaultError) as ctx:
            validate_url("www.example.com")
        self.assertEqual(ctx.exception.code, ErrorCode.INVALID_URL)

    def test_validate_strips(self):
        self.assertEqual(validate_url("  https://example.com/v1 \n"), "https://example.com/v1")

    def test_parse_input_lines(self):
        text = """
        # weekly list
        https://www.youtube.com/watch?v=dQw4w9WgXcQ
        https://vimeo.com/123

        not a url
        https://www.youtube.com/watch?v=dQw4w9WgXcQ
        """
        self.assertEqual(parse_input_lines(text), [
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://vimeo.com/123",
        ])

    def test_parse_input_lines_empty(self):
        self.assertEqual(parse_input_lines(""), [])
        self.assertEqual(parse_input_lines("   \n\n  "), [])

    def test_parse_csv_with_header(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "list.csv"
            path.write_text("name,url\nfirst,https://example.com/1\nsecond,bad\n", encoding="utf-8")
            self.assertEqual(parse_csv_file(str(path)), ["https://example.com/1"])


class TestSecurityUtils(unittest.TestCase):
    """Test security utilities."""

    def test_sanitize_title_special_chars(self):
        result = sanitize_title('Video: "Test" <script>')
        self.assertNotIn('"', result)
        self.assertNotIn('<', result)

    def test_sanitize_title_path_traversal(self):
        self.assertNotIn('..', sanitize_title("../../../etc/passwd"))

    def test_sanitize_title_empty(self):
        self.assertEqual(sanitize_title(None), "")
        self.assertEqual(sanitize_title("..."), "")

    def test_safe_output_path_empty_title(self):
        root = Path("/tmp/test_output")
        self.assertEqual(safe_output_path(root, "", "abc"), root / "video_abc")

    def test_safe_output_path_stays_inside(self):
        root = Path("/tmp/test_output")
        result = safe_output_path(root, "../../etc/passwd", "abc")
        self.assertIn(root.resolve(), result.resolve().parents)

    def test_resolve_api_key_env_order(self):
        env = {"VIDEO_VAULT_API_KEY": "", "OPENAI_API_KEY": "sk-provider"}
        with mock.patch.dict("os.environ", env), \
                mock.patch("video_vault.core.security_utils.keychain_get_api_key", return_value=None):
            self.assertEqual(resolve_api_key("OPENAI_API_KEY"), "sk-provider")
        env["VIDEO_VAULT_API_KEY"] = "sk-global"
        with mock.patch.dict("os.environ", env):
            self.assertEqual(resolve_api_key("OPENAI_API_KEY"), "sk-global")

    def test_resolve_api_key_keychain_fallback(self):
        with mock.patch.dict("os.environ", {"VIDEO_VAULT_API_KEY": "", "DEEPSEEK_API_KEY": ""}), \
                mock.patch("video_vault.core.security_utils.keychain_get_api_key", return_value="sk-kc"):
            self.assertEqual(resolve_api_key("DEEPSEEK_API_KEY"), "sk-kc")


class TestConfig(unittest.TestCase):
    """Test configuration loading and validation."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "cfg" / "config.json"

    def tearDown(self):
        self._tmp.cleanup()

    def test_defaults(self):
        cfg = AppConfig(self.path)
        self.assertIsNone(cfg.base_path)
        self.assertEqual(cfg.summary_provider, "openai")
        self.assertFalse(self.path.exists())

    def test_set_persists(self):
        cfg = AppConfig(self.path)
        cfg.set("base_path", "~/Videos")
        cfg.set("summary_provider", "DeepSeek")
        reloaded = AppConfig(self.path)
        self.assertEqual(reloaded.base_path, "~/Videos")
        self.assertEqual(reloaded.summary_provider, "deepseek")

    def test_validation(self):
        cfg = AppConfig(self.path)
        cfg.set("download_timeout_sec", "1")
        self.assertEqual(cfg.get("download_timeout_sec"), 10)
        cfg.set("summary_temperature", 9)
        self.assertEqual(cfg.get("summary_temperature"), 2.0)
        cfg.set("summary_provider", "nope")
        self.assertEqual(cfg.summary_provider, "openai")
        cfg.set("audio_format", "MP3")
        self.assertEqual(cfg.get("audio_format"), "mp3")
        cfg.set("base_path", "  ")
        self.assertIsNone(cfg.base_path)

    def test_unknown_key(self):
        with self.assertRaises(KeyError):
            AppConfig(self.path).set("colour", "blue")

    def test_corrupt_file_uses_defaults(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{broken", encoding="utf-8")
        self.assertEqual(AppConfig(self.path).summary_provider, "openai")


class TestDownloadAdapter(unittest.TestCase):
    """Test the yt-dlp download stage with the subprocess layer stubbed."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.item_dir = Path(self._tmp.name) / "item"
        self.patches = _tools_present()
        for p in self.patches:
            p.start()

    def tearDown(self):
        for p in self.patches:
            p.stop()
        self._tmp.cleanup()

    def _fake_ytdlp(self, title="My Title", produce="My Title.wav", returncode=0, stderr=""):
        calls = []

        def run(args, **kwargs):
            calls.append(args)
            if "--get-title" in args:
                if title is None:
                    return _completed(args, 1, "", "ERROR: no title")
                return _completed(args, 0, title + "\n")
            if produce:
                (self.item_dir / produce).write_bytes(b"RIFF")
            return _completed(args, returncode, "", stderr)

        return run, calls

    def test_success(self):
        run, calls = self._fake_ytdlp()
        with mock.patch("video_vault.core.download_audio.run_subprocess_capture", side_effect=run):
            result = download_audio("https://example.com/v1", self.item_dir)
        self.assertEqual(result.title, "My Title")
        self.assertEqual(Path(result.audio_path), (self.item_dir / "My Title.wav").resolve())
        full_run = calls[-1]
        self.assertIn("--extract-audio", full_run)
        self.assertIn(str(self.item_dir / "%(title)s.%(ext)s"), full_run)
        self.assertEqual(full_run[-1], "https://example.com/v1")

    def test_title_probe_failure_uses_file_stem(self):
        run, _ = self._fake_ytdlp(title=None, produce="clip.m4a")
        with mock.patch("video_vault.core.download_audio.run_subprocess_capture", side_effect=run):
            result = download_audio("https://example.com/v1", self.item_dir)
        self.assertEqual(result.title, "clip")

    def test_tool_missing(self):
        with mock.patch("video_vault.core.diagnostics.shutil.which", return_value=None):
            with self.assertRaises(VaultError) as ctx:
                download_audio("https://example.com/v1", self.item_dir)
        self.assertEqual(ctx.exception.code, ErrorCode.TOOL_UNAVAILABLE)
        self.assertEqual(ctx.exception.stage, StageName.DOWNLOAD)

    def test_tool_failure_carries_stderr(self):
        run, _ = self._fake_ytdlp(produce=None, returncode=1, stderr="ERROR: Unsupported URL")
        with mock.patch("video_vault.core.download_audio.run_subprocess_capture", side_effect=run):
            with self.assertRaises(VaultError) as ctx:
                download_audio("https://example.com/v1", self.item_dir)
        self.assertEqual(ctx.exception.code, ErrorCode.DOWNLOAD_FAILED)
        self.assertIn("Unsupported URL", ctx.exception.detail)

    def test_timeout(self):
        def run(args, **kwargs):
            if "--get-title" in args:
                return _completed(args, 0, "t\n")
            raise subprocess.TimeoutExpired(args, 5)

        with mock.patch("video_vault.core.download_audio.run_subprocess_capture", side_effect=run):
            with self.assertRaises(VaultError) as ctx:
                download_audio("https://example.com/v1", self.item_dir, timeout=5)
        self.assertEqual(ctx.exception.code, ErrorCode.DOWNLOAD_FAILED)

    def test_no_audio_after_success(self):
        run, _ = self._fake_ytdlp(produce="My Title.webm")
        with mock.patch("video_vault.core.download_audio.run_subprocess_capture", side_effect=run):
            with self.assertRaises(VaultError) as ctx:
                download_audio("https://example.com/v1", self.item_dir)
        self.assertEqual(ctx.exception.code, ErrorCode.ARTIFACT_MISSING)
        self.assertIn("My Title.webm", ctx.exception.detail)

    def test_find_audio_file_extensions(self):
        self.item_dir.mkdir()
        (self.item_dir / "notes.txt").write_text("x")
        self.assertIsNone(find_audio_file(self.item_dir))
        (self.item_dir / "track.FLAC").write_bytes(b"x")
        self.assertEqual(find_audio_file(self.item_dir).name, "track.FLAC")
        self.assertIsNone(find_audio_file(self.item_dir / "missing"))


class TestTranscribeAdapter(unittest.TestCase):
    """Test the whisper transcription stage with the subprocess layer stubbed."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        self.audio = self.dir / "talk.wav"
        self.audio.write_bytes(b"RIFF")
        self.patches = _tools_present()
        for p in self.patches:
            p.start()

    def tearDown(self):
        for p in self.patches:
            p.stop()
        self._tmp.cleanup()

    def _run_writing(self, name, text, returncode=0, stderr=""):
        def run(args, **kwargs):
            if name:
                (self.dir / name).write_text(text, encoding="utf-8")
            return _completed(args, returncode, "", stderr)
        return run

    def test_reads_stem_transcript(self):
        (self.dir / "aaa.txt").write_text("other", encoding="utf-8")
        run = self._run_writing("talk.txt", "  Hello there.\n\n")
        with mock.patch("video_vault.core.transcribe_whisper.run_subprocess_capture",
                        side_effect=run) as m:
            text = transcribe_audio(self.audio, model="tiny", language="en")
        self.assertEqual(text, "Hello there.")
        args = m.call_args[0][0]
        self.assertEqual(args[1], str(self.audio))
        self.assertIn("--output_dir", args)
        self.assertIn("en", args)

    def test_falls_back_to_any_txt(self):
        run = self._run_writing("transcript.txt", "fallback text")
        with mock.patch("video_vault.core.transcribe_whisper.run_subprocess_capture", side_effect=run):
            self.assertEqual(transcribe_audio(self.audio), "fallback text")

    def test_missing_transcript(self):
        run = self._run_writing(None, "")
        with mock.patch("video_vault.core.transcribe_whisper.run_subprocess_capture", side_effect=run):
            with self.assertRaises(VaultError) as ctx:
                transcribe_audio(self.audio)
        self.assertEqual(ctx.exception.code, ErrorCode.ARTIFACT_MISSING)
        self.assertIn("talk.wav", ctx.exception.detail)

    def test_tool_failure(self):
        run = self._run_writing(None, "", returncode=2, stderr="RuntimeError: bad file")
        with mock.patch("video_vault.core.transcribe_whisper.run_subprocess_capture", side_effect=run):
            with self.assertRaises(VaultError) as ctx:
                transcribe_audio(self.audio)
        self.assertEqual(ctx.exception.code, ErrorCode.TRANSCRIBE_FAILED)
        self.assertEqual(ctx.exception.stage, StageName.TRANSCRIBE)
        self.assertIn("bad file", ctx.exception.detail)

    def test_tool_missing(self):
        with mock.patch("video_vault.core.diagnostics.shutil.which", return_value=None):
            with self.assertRaises(VaultError) as ctx:
                transcribe_audio(self.audio)
        self.assertEqual(ctx.exception.code, ErrorCode.TOOL_UNAVAILABLE)


class TestSummarize(unittest.TestCase):
    """Test summarization and its local fallback."""

    TRANSCRIPT = "First point here. Second point!  Third one? Fourth is left out."

    def _response(self, status=200, body=None):
        resp = mock.Mock()
        resp.status_code = status
        resp.text = json.dumps(body) if body is not None else ""
        resp.json.return_value = body
        return resp

    def test_local_summary(self):
        summary = local_summary(self.TRANSCRIPT)
        self.assertIn("11 words", summary)
        self.assertIn("- First point here.", summary)
        self.assertIn("- Third one?", summary)
        self.assertNotIn("Fourth", summary)
        self.assertIn("API key", summary)
        self.assertEqual(summary, local_summary(self.TRANSCRIPT))

    def test_local_summary_empty_transcript(self):
        summary = local_summary("")
        self.assertIn("0 words", summary)

    def test_no_key_uses_fallback(self):
        with mock.patch("video_vault.core.summarize.requests.post") as post:
            result = summarize_transcript(self.TRANSCRIPT, api_key=None)
        post.assert_not_called()
        self.assertTrue(result.used_fallback)
        self.assertEqual(result.text, local_summary(self.TRANSCRIPT))

    def test_remote_success(self):
        body = {"choices": [{"message": {"role": "assistant", "content": "  A summary.  "}}]}
        with mock.patch("video_vault.core.summarize.requests.post",
                        return_value=self._response(200, body)) as post:
            result = summarize_transcript(self.TRANSCRIPT, api_key="sk-test", provider="deepseek")
        self.assertEqual(result.text, "A summary.")
        self.assertFalse(result.used_fallback)
        self.assertEqual(result.provider, "deepseek")

        url = post.call_args[0][0]
        kwargs = post.call_args[1]
        self.assertEqual(url, PROVIDERS["deepseek"].endpoint)
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer sk-test")
        payload = kwargs["json"]
        self.assertEqual(payload["model"], "deepseek-chat")
        self.assertEqual(set(payload), {"model", "messages", "max_tokens", "temperature"})
        self.assertIn(self.TRANSCRIPT, payload["messages"][-1]["content"])

    def test_http_error_falls_back(self):
        with mock.patch("video_vault.core.summarize.requests.post",
                        return_value=self._response(401, {"error": "bad key"})):
            result = summarize_transcript(self.TRANSCRIPT, api_key="sk-test")
        self.assertTrue(result.used_fallback)

    def test_network_error_falls_back(self):
        with mock.patch("video_vault.core.summarize.requests.post",
                        side_effect=requests.exceptions.ConnectionError("down")):
            result = summarize_transcript(self.TRANSCRIPT, api_key="sk-test")
        self.assertTrue(result.used_fallback)
        self.assertTrue(result.text)

    def test_malformed_response_falls_back(self):
        for body in ({}, {"choices": []}, {"choices": [{"message": {"content": ""}}]}):
            with mock.patch("video_vault.core.summarize.requests.post",
                            return_value=self._response(200, body)):
                result = summarize_transcript(self.TRANSCRIPT, api_key="sk-test")
            self.assertTrue(result.used_fallback, body)

    def test_unknown_provider_uses_default(self):
        self.assertEqual(get_provider("mystery").name, "openai")
        self.assertEqual(get_provider(None).name, "openai")
        self.assertEqual(get_provider(" DeepSeek ").name, "deepseek")


class TestOutputWriter(unittest.TestCase):
    """Test Markdown export."""

    def test_export_record(self):
        rec = VideoRecord.new("https://example.com/v1")
        rec.title = "A/B Test"
        rec.summary_content = "Short summary."
        with tempfile.TemporaryDirectory() as tmpdir:
            out = export_record(rec, Path(tmpdir))
            text = out.read_text(encoding="utf-8")
            self.assertEqual(out.name, f"{rec.id}.md")
            self.assertEqual(out.parent.name, "A B Test")
        self.assertIn("# A/B Test", text)
        self.assertIn("Short summary.", text)
        self.assertIn("_Not transcribed yet._", text)


if __name__ == "__main__":
    unittest.main()
