from __future__ import annotations

import argparse
import contextlib
import io
import json
import sys
from collections.abc import Callable
from pathlib import Path

from structure_check.checklist import checklist_as_json, load_checklist
from structure_check.commands import check
from structure_check.errors import ArtifactWriteError, ChecklistError


CommandHandler = Callable[[argparse.Namespace], int]

SETUP_ERROR_EXIT_CODE = 2


def _add_workspace_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--workspace-root",
        default=".",
        help="Project root to validate (default: current directory)",
    )


def _add_checklist_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--checklist",
        required=False,
        help="Checklist JSON overriding the bundled default.",
    )


def _add_json_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the run summary JSON to stdout.",
    )


def _add_orchestrator_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--orchestrator",
        action="store_true",
        help="Machine mode: stdout emits one JSON object only; human logs go to stderr.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="structure-check",
        description="Validate that a project root carries its expected artifacts.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser("check", help="Run every structure check against a project root")
    _add_workspace_arg(check_parser)
    _add_checklist_arg(check_parser)
    _add_json_arg(check_parser)
    _add_orchestrator_arg(check_parser)
    check_parser.add_argument(
        "--artifacts-dir",
        required=False,
        help="Write report.json, GateReport.md and summary.json under this directory (default: write nothing).",
    )
    check_parser.add_argument(
        "--strict",
        action="store_true",
        help="Escalate recommendation warnings to failures.",
    )

    list_parser = subparsers.add_parser("list", help="Print the effective checklist")
    _add_checklist_arg(list_parser)
    list_parser.add_argument("--json", action="store_true", help="Print checklist as machine-readable JSON")

    return parser


def _build_handlers() -> dict[str, CommandHandler]:
    return {
        "check": check.run,
    }


def _emit_orchestrator_json(captured: str, exit_code: int) -> int:
    text = captured.strip()
    if text:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            payload = {
                "message": "Expected machine output is invalid JSON.",
                "status": "fail",
            }
            exit_code = 1
    else:
        payload = {
            "message": "Expected machine output is missing.",
            "status": "fail",
        }
        exit_code = 1

    print(json.dumps(payload, indent=2, sort_keys=True))
    return exit_code


def _error_payload(command: str, error: ChecklistError | ArtifactWriteError) -> dict[str, object]:
    payload: dict[str, object] = {
        "schema_version": "1.0",
        "status": "fail",
        "command": command,
        "reason": error.reason,
        "detail": error.detail,
    }
    if isinstance(error, ChecklistError):
        payload["error_type"] = "checklist_error"
        payload["checklist_path"] = error.path
    else:
        payload["error_type"] = "artifact_write_error"
        payload["artifacts_path"] = error.path
    return payload


def _report_error(args: argparse.Namespace, error: ChecklistError | ArtifactWriteError) -> int:
    payload = _error_payload(args.command, error)
    if getattr(args, "orchestrator", False) or getattr(args, "json", False):
        print(json.dumps(payload, indent=2, sort_keys=True))
    else:
        what = "checklist could not be loaded" if isinstance(error, ChecklistError) else "artifacts could not be written"
        print(f"[structure_check] {what} for `{args.command}`", file=sys.stderr)
        print(f"reason: {payload['reason']}", file=sys.stderr)
        print(f"detail: {payload['detail']}", file=sys.stderr)
    return SETUP_ERROR_EXIT_CODE


def _list_checklist(args: argparse.Namespace) -> int:
    checklist = load_checklist(Path(args.checklist).resolve() if args.checklist else None)
    if args.json:
        print(json.dumps(checklist_as_json(checklist), indent=2, sort_keys=True))
        return 0
    print(f"manifest name: {checklist.manifest.name}")
    for rule in checklist.artifacts:
        print(f"{rule.path}: {', '.join(rule.kinds)}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "list":
            return _list_checklist(args)

        handler = _build_handlers().get(args.command)
        if handler is None:
            parser.error(f"No handler wired for command '{args.command}'")

        if not args.orchestrator:
            return handler(args)

        # the handler prints its summary JSON into the buffer, everything else goes to stderr
        args.json = True
        buffer = io.StringIO()
        print(f"[structure_check] orchestrator mode running `{args.command}`", file=sys.stderr)
        with contextlib.redirect_stdout(buffer):
            exit_code = handler(args)
        return _emit_orchestrator_json(buffer.getvalue(), exit_code=exit_code)
    except (ChecklistError, ArtifactWriteError) as exc:
        return _report_error(args, exc)
