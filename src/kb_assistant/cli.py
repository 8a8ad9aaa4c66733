"""Command-line entry point: ``kb-assistant ingest | ask | stats | history``."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from kb_assistant.config import configure_logging
from kb_assistant.exceptions import KBAssistantError
from kb_assistant.ingestion.models import PageSpec
from kb_assistant.service import build_assistant


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kb-assistant", description="Knowledge base assistant")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Scrape, chunk, embed, and store pages")
    ingest.add_argument(
        "--page",
        nargs=2,
        action="append",
        metavar=("URL", "LABEL"),
        help="Page to ingest (repeatable); defaults to the built-in page list",
    )

    ask = sub.add_parser("ask", help="Answer a question from the knowledge base")
    ask.add_argument("question")

    history = sub.add_parser("history", help="Show recent answers")
    history.add_argument("--limit", type=int, default=10)

    sub.add_parser("stats", help="Show vector-store statistics")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        assistant = build_assistant()
        if args.command == "ingest":
            pages = [PageSpec(url=url, label=label) for url, label in args.page or []]
            output = asyncio.run(assistant.ingest(pages)).model_dump(mode="json")
        elif args.command == "ask":
            output = asyncio.run(assistant.ask(args.question)).model_dump(mode="json")
        elif args.command == "history":
            output = [r.model_dump(mode="json") for r in assistant.history_list(args.limit)]
        else:
            stats = assistant.stats()
            output = {"total_vector_count": stats.value.total_vector_count, "degraded": stats.degraded}
    except KBAssistantError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
