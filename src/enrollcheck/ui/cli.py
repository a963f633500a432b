from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from enrollcheck.adapters.sqlalchemy import startup
from enrollcheck.app import (
    load_student,
    process_enrollment,
    save_student,
    sign_document,
    student_documents,
)
from enrollcheck.config import ConfigurationError, configure_logging
from enrollcheck.domain.documents import group_documents
from enrollcheck.domain.errors import PayloadValidationError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from enrollcheck.domain.documents import DocumentResolution

log = logging.getLogger(__name__)


def _identifier(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise argparse.ArgumentTypeError("identifier must not be blank")
    return stripped


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Verify and reconcile student enrollments")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the SQL tables for the local store")

    process = subparsers.add_parser(
        "process", help="Reconcile an approved enrollment into student records"
    )
    process.add_argument("enrollment_id", type=_identifier, help="Enrollment to reconcile")

    show = subparsers.add_parser("show", help="Print a student record as JSON")
    show.add_argument(
        "seed_id",
        type=_identifier,
        help="PersonalData id or student id of the record to show",
    )

    save = subparsers.add_parser("save", help="Save an edited student record")
    save.add_argument("seed_id", type=_identifier, help="PersonalData id or student id to save")
    save.add_argument(
        "--file",
        type=Path,
        required=True,
        help="JSON file holding the edited record (as printed by 'show')",
    )

    documents = subparsers.add_parser("documents", help="List a student's documents")
    documents.add_argument("student_ref", type=_identifier, help="Student reference to look up")
    documents.add_argument(
        "--sign",
        action="store_true",
        help="Also print a time-limited download URL for each document",
    )

    return parser.parse_args(list(argv))


def _read_edited_record(path: Path) -> dict[str, Any]:
    try:
        loaded = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Cannot read edited record from {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ValueError(f"Edited record in {path} must be a JSON object")
    return loaded


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))  # noqa: T201


async def _print_documents(resolution: DocumentResolution, *, sign: bool) -> None:
    if not resolution.linked:
        print("No enrollment linkage found for this student.")  # noqa: T201
        return
    if resolution.empty:
        print(f"No documents uploaded (enrollment {resolution.document_set_key}).")  # noqa: T201
        return
    for group in group_documents(resolution.documents):
        print(f"{group.label}:")  # noqa: T201
        for document in group.documents:
            line = f"  - {document.file_name} [{document.status or 'unknown'}]"
            if sign and document.storage_path:
                line += f" {await sign_document(document)}"
            print(line)  # noqa: T201


async def _run(args: argparse.Namespace) -> None:
    if args.command == "process":
        result = await process_enrollment(args.enrollment_id)
        _print_json(
            {
                "enrollment_id": str(result.enrollment_id),
                "student_id": str(result.student_id),
                "written": {str(kind): str(row) for kind, row in result.written.items()},
                "skipped": [str(kind) for kind in result.skipped],
                "attempts": result.attempts,
            }
        )
    elif args.command == "show":
        aggregate = await load_student(args.seed_id)
        _print_json(aggregate.as_record())
    elif args.command == "save":
        saved = await save_student(args.seed_id, args.edited)
        log.info("Saved student %s", saved.owner)
    elif args.command == "documents":
        resolution = await student_documents(args.student_ref)
        await _print_documents(resolution, sign=args.sign)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "save":
            parsed_args.edited = _read_edited_record(parsed_args.file)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "init-db":
            engine = startup()
            log.info("Tables ready at %s", engine.url.render_as_string(hide_password=True))
        else:
            asyncio.run(_run(parsed_args))
    except (ConfigurationError, PayloadValidationError):
        log.exception("Invalid input or configuration")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def entrypoint() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    entrypoint()
