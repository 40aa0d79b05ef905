"""Cruxboard CLI.

Usage:
    python -m cruxboard run --topic TEXT --personas a,b[,c] [--mode MODE] [--out FILE]
    python -m cruxboard replay FILE
    python -m cruxboard personas

`run` writes the event stream as NDJSON (stdout by default). `replay` folds an
NDJSON event file and prints the final state as JSON.

Exit codes:
    0: Debate complete / replay succeeded
    1: Error event, configuration error or internal error
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, TextIO

from pydantic import ValidationError

from cruxboard.config import DebateSettings, load_settings
from cruxboard.debate.orchestrator import build_runner
from cruxboard.debate.replay import replay_events
from cruxboard.errors import ConfigurationError
from cruxboard.models.debate import DebateConfig, DebateMode
from cruxboard.models.events import dump_event
from cruxboard.observability.tracing import configure_tracing
from cruxboard.personas import PersonaRegistry
from cruxboard.services.collaborators import LLMCollaborator
from cruxboard.services.llm.factory import create_llm_client

logger = logging.getLogger(__name__)


def _output_error(code: str, message: str) -> None:
    print(json.dumps({"code": code, "message": message}, sort_keys=True), file=sys.stderr)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _split_ids(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _build_config(args: argparse.Namespace, settings: DebateSettings) -> DebateConfig:
    caps: dict[str, Any] = {}
    for name in ("max_rounds", "max_turns", "max_graph_rounds", "max_messages"):
        value = getattr(args, name)
        if value is not None:
            caps[name] = value
    try:
        return DebateConfig(
            topic=args.topic,
            persona_ids=_split_ids(args.personas),
            mode=DebateMode(args.mode),
            debate_id=args.debate_id,
            summary_token_budget=settings.summary_token_budget,
            seed=args.seed,
            **caps,
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid debate configuration: {e}") from e


async def _stream(runner: Any, out: TextIO) -> None:
    async for event in runner.events():
        out.write(dump_event(event) + "\n")
        out.flush()


def cmd_run(args: argparse.Namespace) -> int:
    """Run one debate and write its events."""
    settings = load_settings()
    _configure_logging(args.log_level or settings.log_level)
    configure_tracing()

    config = _build_config(args, settings)
    registry = PersonaRegistry.from_file(settings.personas_file)
    personas = registry.resolve(config.persona_ids)
    collaborator = LLMCollaborator(create_llm_client(settings))
    runner = build_runner(config, collaborator, personas)

    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            asyncio.run(_stream(runner, f))
        print(f"Events written to: {args.out}", file=sys.stderr)
    else:
        asyncio.run(_stream(runner, sys.stdout))

    return 1 if runner.error is not None else 0


def cmd_replay(args: argparse.Namespace) -> int:
    """Fold an NDJSON event file and print the final state."""
    path = Path(args.file)
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        _output_error("READ_FAILED", f"Cannot read {path}: {e}")
        return 1

    try:
        state = replay_events(line for line in lines if line.strip())
    except ValidationError as e:
        _output_error("INVALID_EVENT", str(e))
        return 1

    print(state.model_dump_json(indent=2))
    return 1 if state.error is not None else 0


def cmd_personas(args: argparse.Namespace) -> int:
    settings = load_settings()
    registry = PersonaRegistry.from_file(settings.personas_file)
    for persona in registry.all():
        print(f"{persona.id}\t{persona.name}")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cruxboard",
        description="Cruxboard - multi-agent debates that surface cruxes",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    run_parser = subparsers.add_parser("run", help="Run a debate and stream NDJSON events")
    run_parser.add_argument("--topic", required=True, help="Debate topic")
    run_parser.add_argument(
        "--personas", required=True, help="Comma-separated persona ids (at least two)"
    )
    run_parser.add_argument(
        "--mode",
        choices=[m.value for m in DebateMode],
        default=DebateMode.BLITZ.value,
        help="Debate mode (default: blitz)",
    )
    run_parser.add_argument("--out", help="Write events to FILE instead of stdout")
    run_parser.add_argument("--debate-id", dest="debate_id", default="debate-0")
    run_parser.add_argument("--seed", type=int, help="Seed for scheduler jitter")
    run_parser.add_argument("--max-rounds", dest="max_rounds", type=int)
    run_parser.add_argument("--max-turns", dest="max_turns", type=int)
    run_parser.add_argument("--max-graph-rounds", dest="max_graph_rounds", type=int)
    run_parser.add_argument("--max-messages", dest="max_messages", type=int)
    run_parser.add_argument(
        "--log-level", dest="log_level", help="Logging level (default: CRUXBOARD_LOG_LEVEL)"
    )

    replay_parser = subparsers.add_parser("replay", help="Fold an NDJSON event file")
    replay_parser.add_argument("file", help="NDJSON event file")

    subparsers.add_parser("personas", help="List available personas")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point. Returns the process exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        if args.command == "run":
            return cmd_run(args)
        if args.command == "replay":
            return cmd_replay(args)
        if args.command == "personas":
            return cmd_personas(args)
        return 0
    except ConfigurationError as e:
        _output_error("CONFIGURATION_ERROR", str(e))
        return 1
    except Exception as e:
        logger.exception("Unexpected CLI failure")
        _output_error("INTERNAL_ERROR", str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
