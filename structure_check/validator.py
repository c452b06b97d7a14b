"""Project structure checks.

Each check resolves artifact paths against the project root, never writes to
it, and returns a ``CheckResult``. Failures are captured as
``StructureCheckError`` instances so a run reports every failing check.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from structure_check.checklist import Checklist
from structure_check.errors import (
    MalformedVersion,
    ManifestFieldMismatch,
    ManifestParseError,
    MissingArtifact,
    StructureCheckError,
)

SCHEMA_VERSION = "1.0"
SEMVER_PATTERN = re.compile(r"[0-9]+\.[0-9]+\.[0-9]+")
SEMVER_HINT = "MAJOR.MINOR.PATCH"


@dataclass
class CheckResult:
    name: str
    status: str = "pass"
    paths: list[str] = field(default_factory=list)
    failures: list[StructureCheckError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        return [str(item) for item in self.failures]

    def fail(self, error: StructureCheckError) -> None:
        self.failures.append(error)

    def finish(self, strict_mode: bool) -> "CheckResult":
        if self.failures:
            self.status = "fail"
        elif self.warnings and strict_mode:
            self.status = "fail"
        elif self.warnings:
            self.status = "warn"
        else:
            self.status = "pass"
        return self

    def to_dict(self) -> dict[str, Any]:
        errors = self.errors
        if not self.failures and self.warnings and self.status == "fail":
            errors = ["Strict mode escalated warnings to failure."]
        return {
            "errors": errors,
            "error_types": [type(item).__name__ for item in self.failures],
            "name": self.name,
            "paths": self.paths,
            "status": self.status,
            "warnings": self.warnings,
        }


@dataclass
class ValidationReport:
    workspace_root: Path
    strict_mode: bool
    checks: list[CheckResult]

    @property
    def overall_status(self) -> str:
        statuses = {check.status for check in self.checks}
        if "fail" in statuses:
            return "fail"
        if "warn" in statuses:
            return "warn"
        return "pass"

    @property
    def failed(self) -> list[CheckResult]:
        return [check for check in self.checks if check.status == "fail"]

    @property
    def warned(self) -> list[CheckResult]:
        return [check for check in self.checks if check.status == "warn"]

    def get(self, name: str) -> CheckResult:
        for check in self.checks:
            if check.name == name:
                return check
        raise KeyError(name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "checks": [check.to_dict() for check in self.checks],
            "overall_status": self.overall_status,
            "schema_version": SCHEMA_VERSION,
            "strict_mode": self.strict_mode,
            "totals": {
                "checks": len(self.checks),
                "failed": len(self.failed),
                "passed": len([check for check in self.checks if check.status == "pass"]),
                "warned": len(self.warned),
            },
            "workspace_root": str(self.workspace_root),
        }


def is_semver(value: Any) -> bool:
    return isinstance(value, str) and SEMVER_PATTERN.fullmatch(value) is not None


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def read_version(workspace_root: Path, rel_path: str) -> str:
    path = workspace_root / rel_path
    if not path.is_file():
        raise MissingArtifact(rel_path)
    raw = path.read_bytes()
    try:
        value = raw.decode("utf-8").strip()
    except UnicodeDecodeError as exc:
        raise MalformedVersion(raw.decode("utf-8", errors="replace").strip(), path=rel_path) from exc
    if not is_semver(value):
        raise MalformedVersion(value, path=rel_path)
    return value


def read_manifest(workspace_root: Path, rel_path: str) -> dict[str, Any]:
    path = workspace_root / rel_path
    if not path.is_file():
        raise MissingArtifact(rel_path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"), parse_constant=_reject_constant)
    except UnicodeDecodeError as exc:
        raise ManifestParseError(rel_path, str(exc)) from exc
    # JSONDecodeError and rejected NaN/Infinity constants
    except ValueError as exc:
        raise ManifestParseError(rel_path, str(exc)) from exc
    if not isinstance(payload, dict):
        raise ManifestParseError(rel_path, f"top level is {type(payload).__name__}, expected an object")
    return payload


def verify_manifest_fields(manifest: dict[str, Any], expected_name: str) -> None:
    """Raise ``ManifestFieldMismatch`` for the first field that is off."""
    name = manifest.get("name")
    if name != expected_name:
        raise ManifestFieldMismatch("name", expected_name, name)

    version = manifest.get("version")
    if not is_semver(version):
        raise ManifestFieldMismatch("version", SEMVER_HINT, version)

    description = manifest.get("description")
    if not (isinstance(description, str) and description):
        raise ManifestFieldMismatch("description", "non-empty string", description)

    scripts = manifest.get("scripts")
    if not scripts:
        raise ManifestFieldMismatch("scripts", "non-empty scripts table", scripts)


def check_core_files(workspace_root: Path, checklist: Checklist, strict_mode: bool = False) -> CheckResult:
    result = CheckResult(name="core_files", paths=checklist.paths_for("core"))
    for rel_path in result.paths:
        if not (workspace_root / rel_path).exists():
            result.fail(MissingArtifact(rel_path))
    return result.finish(strict_mode)


def check_version_format(workspace_root: Path, checklist: Checklist, strict_mode: bool = False) -> CheckResult:
    result = CheckResult(name="version_format", paths=checklist.paths_for("version"))
    for rel_path in result.paths:
        try:
            read_version(workspace_root, rel_path)
        except StructureCheckError as exc:
            result.fail(exc)
    return result.finish(strict_mode)


def _declared_version(workspace_root: Path, checklist: Checklist) -> str | None:
    for rel_path in checklist.paths_for("version"):
        try:
            return read_version(workspace_root, rel_path)
        except StructureCheckError:
            continue
    return None


def check_manifest_fields(workspace_root: Path, checklist: Checklist, strict_mode: bool = False) -> CheckResult:
    result = CheckResult(name="manifest_fields", paths=checklist.paths_for("manifest"))
    declared_version = _declared_version(workspace_root, checklist)
    for rel_path in result.paths:
        try:
            manifest = read_manifest(workspace_root, rel_path)
            verify_manifest_fields(manifest, checklist.manifest.name)
        except StructureCheckError as exc:
            result.fail(exc)
            continue
        if declared_version is not None and manifest["version"] != declared_version:
            result.warnings.append(
                f"`{rel_path}` version {manifest['version']} does not match VERSION {declared_version}."
            )
    return result.finish(strict_mode)


def check_auxiliary_scripts(workspace_root: Path, checklist: Checklist, strict_mode: bool = False) -> CheckResult:
    rules = checklist.rules_for("script")
    result = CheckResult(name="auxiliary_scripts", paths=[rule.path for rule in rules])
    for rule in rules:
        script = workspace_root / rule.path
        if not script.exists():
            result.fail(MissingArtifact(rule.path))
            continue
        if rule.executable and not script.stat().st_mode & 0o111:
            result.warnings.append(f"`{rule.path}` is not executable.")
    return result.finish(strict_mode)


CHECKS: tuple[tuple[str, Callable[[Path, Checklist, bool], CheckResult]], ...] = (
    ("core_files", check_core_files),
    ("version_format", check_version_format),
    ("manifest_fields", check_manifest_fields),
    ("auxiliary_scripts", check_auxiliary_scripts),
)


def validate(workspace_root: Path, checklist: Checklist, *, strict_mode: bool = False) -> ValidationReport:
    root = workspace_root.resolve()
    checks = [check(root, checklist, strict_mode) for _, check in CHECKS]
    return ValidationReport(workspace_root=root, strict_mode=strict_mode, checks=checks)
