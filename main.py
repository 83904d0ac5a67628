#!/usr/bin/env python3
"""
VideoTranscriber Vault — command-line launcher.
Runs from a source checkout without installing the package.
"""

import sys
import logging
import traceback
from pathlib import Path

# ── Determine project root ────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

logger = logging.getLogger("video_vault")


def main() -> int:
    try:
        from video_vault.console.cli_main import main as run_cli
        return run_cli()
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        logger.critical("Fatal error: %s\n%s", error_msg, traceback.format_exc())
        print(f"Fatal error: {error_msg}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
