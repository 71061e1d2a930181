#!/usr/bin/env python3
"""
Ask questions about a plain-text document from the command line.

Loads the file into an in-memory document store and runs the same
pipeline the service uses (prompt → model with retry → parse). Provider
and credentials come from the environment / .env (see docqa/config.py).

Usage:
    uv run python scripts/ask_document.py notes.txt "What is the deadline?"
    uv run python scripts/ask_document.py notes.txt "Who signed?" "When?"
    uv run python scripts/ask_document.py notes.txt --recommend
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from docqa.config import get_settings
from docqa.errors import DocQAError
from docqa.services.qa import build_qa_service
from docqa.services.stores import InMemoryDocumentStore, InMemoryQueryHistoryStore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("path", type=Path, help="UTF-8 text file to query")
    parser.add_argument("questions", nargs="*", help="One or more questions")
    parser.add_argument(
        "--recommend",
        action="store_true",
        help="Print suggested questions instead of answering",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    documents = InMemoryDocumentStore()
    document = documents.add(
        args.path.read_text(encoding="utf-8"),
        name=args.path.name,
        size=args.path.stat().st_size,
    )
    service = build_qa_service(
        settings, documents=documents, history_store=InMemoryQueryHistoryStore(),
    )

    if args.recommend:
        for question in await service.recommend_questions(document.document_id):
            print(f"- {question}")
        return 0

    if not args.questions:
        print("No questions given (or pass --recommend).", file=sys.stderr)
        return 2

    if len(args.questions) == 1:
        result = await service.answer_one(document.document_id, args.questions[0])
        print(result.text)
        print(
            f"[confidence={result.confidence:.2f} can_answer={result.can_answer} "
            f"time={result.processing_time_ms}ms tokens~{result.estimated_tokens}]"
        )
        return 0

    items = await service.answer_batch(document.document_id, args.questions)
    for item in items:
        print(f"Q{item.index + 1}: {item.question}")
        if item.success:
            print(f"  {item.result.text} (confidence={item.result.confidence:.2f})")
        else:
            print(f"  FAILED [{item.error_type}]: {item.error}")
    return 0 if all(item.success for item in items) else 1


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        sys.exit(asyncio.run(run(args)))
    except DocQAError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
