# -*- coding: utf-8 -*-
"""
Autoradio - command line entry point
Reads a session snapshot (JSON) and writes the next autoplay tracks as JSON
"""
import argparse
import json
import logging
import sys
from typing import Any, Dict, Optional, TextIO

from autoradio.config_loader import Config
from autoradio.engine.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from autoradio.logging_utils import add_logging_args, configure_logging, resolve_log_level, set_session_id
from autoradio.snapshot import DEFAULT_LIMIT, recommend_from_snapshot, result_to_dict

logger = logging.getLogger("autoradio.cli")


class AutoplayApp:
    """Command line orchestrator"""

    def __init__(self, config_path: Optional[str] = None):
        self.config: Optional[Config] = Config(config_path) if config_path else None
        self.engine_config: EngineConfig = (
            self.config.engine_config() if self.config is not None else DEFAULT_ENGINE_CONFIG
        )
        self.default_limit = self.config.default_limit if self.config is not None else DEFAULT_LIMIT

    def run(self, snapshot: Dict[str, Any], limit: Optional[int] = None, seed: Optional[str] = None) -> Dict[str, Any]:
        """Run one autoplay decision; CLI flags override snapshot values."""
        snapshot = dict(snapshot)
        if limit is not None:
            snapshot["limit"] = limit
        if seed is not None:
            snapshot["session_seed"] = seed
        set_session_id(snapshot.get("session_seed"))

        result = recommend_from_snapshot(
            snapshot,
            config=self.engine_config,
            default_limit=self.default_limit,
        )
        logger.info("Selected %d track(s)", len(result.tracks))
        return result_to_dict(result)


def _read_snapshot(stream: TextIO) -> Dict[str, Any]:
    payload = json.load(stream)
    if not isinstance(payload, dict):
        raise ValueError("Snapshot must be a JSON object")
    return payload


def main(argv=None) -> int:
    """Entry point"""
    parser = argparse.ArgumentParser(
        description="Pick the next autoplay tracks for a listening session snapshot"
    )
    parser.add_argument(
        "snapshot",
        nargs="?",
        default="-",
        help="Path to a JSON session snapshot ('-' or omitted reads stdin)"
    )
    parser.add_argument(
        "--config",
        type=str,
        metavar="PATH",
        help="YAML config file (engine weights, logging, default limit)"
    )
    parser.add_argument(
        "--limit",
        type=int,
        help="Number of tracks to return (overrides the snapshot)"
    )
    parser.add_argument(
        "--seed",
        type=str,
        help="Session seed for deterministic jitter and shuffling (overrides the snapshot)"
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="JSON indentation for the response (default: 2)"
    )
    add_logging_args(parser)
    args = parser.parse_args(argv)

    # stdout carries the JSON response, so logs go to stderr
    configure_logging(
        level=resolve_log_level(args),
        log_file=args.log_file,
        show_session_id=args.show_session_id,
        session_id=args.seed,
        stream=sys.stderr,
    )

    try:
        app = AutoplayApp(config_path=args.config)
        if args.snapshot == "-":
            snapshot = _read_snapshot(sys.stdin)
        else:
            with open(args.snapshot, "r", encoding="utf-8") as f:
                snapshot = _read_snapshot(f)
        response = app.run(snapshot, limit=args.limit, seed=args.seed)
    except FileNotFoundError as e:
        logger.error("File not found: %s", e)
        return 1
    except ValueError as e:
        # json.JSONDecodeError is a ValueError
        logger.error("Invalid input or configuration: %s", e)
        return 1

    json.dump(response, sys.stdout, indent=args.indent, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
