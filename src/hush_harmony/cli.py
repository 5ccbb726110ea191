"""CLI wrapper for running the collector against simulated providers."""

from __future__ import annotations

import argparse
import sys

from .config import CollectorSettings
from .daemon import DaemonConfig, run_daemon


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run the hush-harmony noise collector")
    parser.add_argument("--config", help="Path to TOML configuration file")
    parser.add_argument("--duration", type=float, default=None, help="Seconds to run before exiting")
    parser.add_argument("--share-on-exit", action="store_true", help="Re-submit the latest reading on exit")
    args = parser.parse_args(argv)

    settings = CollectorSettings.from_toml(args.config) if args.config else CollectorSettings()
    try:
        started = run_daemon(settings, DaemonConfig(duration_s=args.duration, share_on_exit=args.share_on_exit))
    except KeyboardInterrupt:
        return 130
    return 0 if started else 1


if __name__ == "__main__":
    sys.exit(main())
