from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from structure_check.checklist import load_checklist
from structure_check.runtime import CheckRun
from structure_check.validator import validate

NEXT_STEPS = {
    "core_files": "Add the missing core files (VERSION, package manifest, README) at the project root.",
    "version_format": "Write a bare MAJOR.MINOR.PATCH version (for example `1.0.0`) to the version file.",
    "manifest_fields": "Fix the manifest name, version, description and scripts fields.",
    "auxiliary_scripts": "Restore the missing scripts and mark them executable (`chmod +x`).",
}


def _gate_report(report_payload: dict[str, Any]) -> str:
    overall_status = report_payload["overall_status"]
    totals = report_payload["totals"]
    lines = [
        "# Structure Check GateReport",
        "",
        f"Status: {overall_status.upper()}",
        f"Strict mode: `{report_payload['strict_mode']}`",
        "",
        f"Checks run: {totals['checks']}",
        f"Failed: {totals['failed']}",
        f"Warnings: {totals['warned']}",
        "",
    ]
    for row in report_payload["checks"]:
        lines.append(f"## {row['name']}")
        lines.append(f"- status: `{row['status']}`")
        if row["errors"]:
            lines.append("- errors:")
            for item in row["errors"]:
                lines.append(f"  - {item}")
        if row["warnings"]:
            lines.append("- warnings:")
            for item in row["warnings"]:
                lines.append(f"  - {item}")
        lines.append("")

    pending = [row["name"] for row in report_payload["checks"] if row["status"] != "pass"]
    if pending:
        lines.append("Next fix steps:")
        for index, name in enumerate(pending, start=1):
            lines.append(f"{index}. {NEXT_STEPS[name]}")
        lines.append(f"{len(pending) + 1}. Re-run `python -m structure_check check`.")
    return "\n".join(lines) + "\n"


def run(args: Any) -> int:
    workspace_root = Path(args.workspace_root).resolve()
    strict_mode = bool(getattr(args, "strict", False))
    checklist_ref = getattr(args, "checklist", None)
    checklist = load_checklist(Path(checklist_ref).resolve() if checklist_ref else None)
    artifacts_dir = getattr(args, "artifacts_dir", None)

    print(f"[structure_check] validating {workspace_root}", file=sys.stderr)
    report = validate(workspace_root, checklist, strict_mode=strict_mode)
    for check in report.checks:
        print(f"[structure_check] {check.name}: {check.status}", file=sys.stderr)
        for error in check.errors:
            print(f"  - {error}", file=sys.stderr)

    check_run = CheckRun(
        name="structure_check",
        artifacts_root=Path(artifacts_dir) if artifacts_dir else None,
    )
    report_payload = report.to_dict()
    check_run.write_json("report.json", report_payload)
    check_run.write_text("GateReport.md", _gate_report(report_payload))

    overall_status = report.overall_status
    if overall_status == "fail":
        check_run.add_note("Project structure check failed.")
    elif overall_status == "warn":
        check_run.add_note("Project structure check passed with warnings.")
    else:
        check_run.add_note("Project structure check passed.")

    return check_run.finalize(
        "fail" if overall_status == "fail" else "pass",
        emit_json=bool(getattr(args, "json", False)),
        summary_updates={
            "failed_checks": [check.name for check in report.failed],
            "overall_status": overall_status,
            "strict_mode": strict_mode,
            "warnings_count": len(report.warned),
        },
    )
