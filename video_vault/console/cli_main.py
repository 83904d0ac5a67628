"""
Command-line front end for VideoTranscriber Vault.
"""

import sys
import json
import logging
import argparse
import getpass
from pathlib import Path

from video_vault.core.constants import APP_NAME, APP_VERSION, LOG_FILE, ErrorCode
from video_vault.core.config import AppConfig
from video_vault.core.error_codes import VaultError
from video_vault.core.models import VideoRecord
from video_vault.core.paths import resolve_vault_paths
from video_vault.core.vault_store import load_vault, vault_lock
from video_vault.core.pipeline import VaultPipeline
from video_vault.core.batch_runner import BatchRunner
from video_vault.core.url_parse import validate_url, parse_input_file
from video_vault.core.output_writer import export_record
from video_vault.core.summarize import PROVIDERS, get_provider
from video_vault.core.diagnostics import get_diagnostics
from video_vault.core.security_utils import (
    resolve_api_key, keychain_set_api_key, keychain_delete_api_key,
)

logger = logging.getLogger("video_vault")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def setup_logging(verbose: bool = False, log_file: Path | None = LOG_FILE):
    """File log always; stderr too when verbose."""
    handlers = []
    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError:
            pass  # read-only home; stderr only
    if verbose or not handlers:
        handlers.append(logging.StreamHandler(sys.stderr))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def _print_record(record: VideoRecord):
    print(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))


def _load_config(args) -> AppConfig:
    return AppConfig(Path(args.config).expanduser() if args.config else None)


def _pipeline_config(args, config: AppConfig) -> dict:
    data = config.as_dict()
    if getattr(args, 'provider', None):
        data['summary_provider'] = get_provider(args.provider).name
    return data


def _base_path(args, config: AppConfig):
    return args.base_path if args.base_path is not None else config.base_path


# ── Commands ──────────────────────────────────────────────────────────

def cmd_run(args, config: AppConfig) -> int:
    url = validate_url(args.url)
    pipeline = VaultPipeline(_pipeline_config(args, config))
    pipeline.on_record_updated = lambda r: print(f"  {r.id}: {r.stage}", file=sys.stderr)
    record = pipeline.run(url, _base_path(args, config))
    _print_record(record)
    return EXIT_OK


def cmd_batch(args, config: AppConfig) -> int:
    try:
        urls = parse_input_file(args.file)
    except OSError as e:
        print(f"Cannot read {args.file}: {e}", file=sys.stderr)
        return EXIT_USAGE
    if not urls:
        print("No URLs found", file=sys.stderr)
        return EXIT_USAGE

    runner = BatchRunner(VaultPipeline(_pipeline_config(args, config)))
    runner.on_item_started = lambda i, u: print(f"[{i + 1}/{len(urls)}] {u}", file=sys.stderr)

    def _finished(idx, outcome):
        if outcome.ok:
            print(f"  ok: {outcome.record.id} {outcome.record.stage}", file=sys.stderr)
        else:
            print(f"  failed: {outcome.error}", file=sys.stderr)

    runner.on_item_finished = _finished
    try:
        outcomes = runner.run(urls, _base_path(args, config))
    except KeyboardInterrupt:
        print("Interrupted; finished items are saved in the vault", file=sys.stderr)
        return EXIT_FAILED
    return EXIT_OK if all(o.ok for o in outcomes) else EXIT_FAILED


def _find_record(args, config: AppConfig) -> VideoRecord | None:
    paths = resolve_vault_paths(_base_path(args, config))
    with vault_lock(paths.vault_root):
        vault = load_vault(paths.vault_root)
    return vault.find(args.item)


def cmd_list(args, config: AppConfig) -> int:
    paths = resolve_vault_paths(_base_path(args, config))
    with vault_lock(paths.vault_root):
        vault = load_vault(paths.vault_root)
    if not len(vault):
        print(f"Vault at {paths.vault_root} is empty")
        return EXIT_OK
    for rec in vault.records():
        print(f"{rec.id}  {rec.stage:<11}  {rec.title or '-'}  {rec.url}")
    return EXIT_OK


def cmd_show(args, config: AppConfig) -> int:
    record = _find_record(args, config)
    if record is None:
        print(f"No item matches {args.item!r}", file=sys.stderr)
        return EXIT_FAILED
    _print_record(record)
    return EXIT_OK


def cmd_export(args, config: AppConfig) -> int:
    record = _find_record(args, config)
    if record is None:
        print(f"No item matches {args.item!r}", file=sys.stderr)
        return EXIT_FAILED
    out = export_record(record, Path(args.dest).expanduser())
    print(out)
    return EXIT_OK


def cmd_doctor(args, config: AppConfig) -> int:
    info = get_diagnostics(config.get('ytdlp_path'), config.get('whisper_path'))
    provider = get_provider(config.summary_provider)
    paths = resolve_vault_paths(_base_path(args, config))
    print(f"{APP_NAME} {APP_VERSION}")
    print(f"yt-dlp:    {info['ytdlp_version']}")
    print(f"whisper:   {info['whisper']}")
    print(f"config:    {config.path}")
    print(f"vault:     {paths.store_path}")
    print(f"provider:  {provider.name} ({provider.endpoint})")
    print(f"api key:   {'found' if resolve_api_key(provider.api_key_env) else 'not configured (local summaries)'}")
    print(f"log:       {LOG_FILE}")
    return EXIT_OK


def cmd_config(args, config: AppConfig) -> int:
    if args.key is None:
        print(json.dumps(config.as_dict(), indent=2))
        return EXIT_OK
    if args.value is None:
        print(json.dumps(config.get(args.key)))
        return EXIT_OK
    try:
        config.set(args.key, args.value)
    except KeyError as e:
        print(e.args[0], file=sys.stderr)
        return EXIT_USAGE
    print(json.dumps(config.get(args.key)))
    return EXIT_OK


def cmd_set_key(args, config: AppConfig) -> int:
    if args.delete:
        ok = keychain_delete_api_key()
    else:
        key = getpass.getpass("API key: ").strip()
        if not key:
            print("Empty key, nothing stored", file=sys.stderr)
            return EXIT_USAGE
        ok = keychain_set_api_key(key)
    if not ok:
        print("Keychain update failed (macOS only); use the VIDEO_VAULT_API_KEY "
              "environment variable instead", file=sys.stderr)
        return EXIT_FAILED
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="video-vault",
        description="Download, transcribe and summarize videos into a resumable vault.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="log to stderr at DEBUG")
    parser.add_argument("--config", help="path to config.json")
    parser.add_argument("--base-path", help="directory holding the vault (default: config, then temp dir)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("run", help="process one URL")
    p.add_argument("url")
    p.add_argument("--provider", choices=sorted(PROVIDERS))
    p.set_defaults(func=cmd_run)

    p = sub.add_parser("batch", help="process every URL in a .txt or .csv file")
    p.add_argument("file")
    p.add_argument("--provider", choices=sorted(PROVIDERS))
    p.set_defaults(func=cmd_batch)

    p = sub.add_parser("list", help="list vault items")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("show", help="print one record as JSON")
    p.add_argument("item", help="item id or URL")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("export", help="write a record as Markdown")
    p.add_argument("item", help="item id or URL")
    p.add_argument("dest", help="output folder")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("doctor", help="check external tools and settings")
    p.set_defaults(func=cmd_doctor)

    p = sub.add_parser("config", help="show or change settings")
    p.add_argument("key", nargs="?")
    p.add_argument("value", nargs="?")
    p.set_defaults(func=cmd_config)

    p = sub.add_parser("set-key", help="store the summary API key in the macOS Keychain")
    p.add_argument("--delete", action="store_true")
    p.set_defaults(func=cmd_set_key)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    logger.debug("%s %s: %s", APP_NAME, APP_VERSION, args.command)

    config = _load_config(args)
    try:
        return args.func(args, config)
    except VaultError as e:
        logger.error("%s", e.describe())
        print(e.describe(), file=sys.stderr)
        return EXIT_USAGE if e.code == ErrorCode.INVALID_URL else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
