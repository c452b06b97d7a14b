from __future__ import annotations

import json
from pathlib import Path, PurePosixPath
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from structure_check.errors import ChecklistError

CheckKind = Literal["core", "version", "manifest", "script"]


class ArtifactRule(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str = Field(..., description="Artifact path relative to the project root")
    kinds: list[CheckKind] = Field(..., min_length=1)
    executable: bool = Field(False, description="Recommend an executable bit on the file")

    @field_validator("path")
    @classmethod
    def _relative_path(cls, value: str) -> str:
        value = value.strip().replace("\\", "/")
        if not value:
            raise ValueError("path must not be empty")
        posix = PurePosixPath(value)
        if posix.is_absolute() or ".." in posix.parts:
            raise ValueError(f"path must stay inside the project root: {value}")
        return posix.as_posix()


class ManifestExpectations(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1, description="Exact expected package name")


class Checklist(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: str = "1.0"
    manifest: ManifestExpectations
    artifacts: list[ArtifactRule]

    def paths_for(self, kind: str) -> list[str]:
        return [rule.path for rule in self.artifacts if kind in rule.kinds]

    def rules_for(self, kind: str) -> list[ArtifactRule]:
        return [rule for rule in self.artifacts if kind in rule.kinds]


def default_checklist_path() -> Path:
    return Path(__file__).resolve().parent / "checklist.json"


def load_checklist(path: Optional[Path] = None) -> Checklist:
    checklist_path = path or default_checklist_path()
    if not checklist_path.is_file():
        raise ChecklistError(
            reason="checklist_missing",
            detail=f"Checklist file does not exist: {checklist_path}",
            path=str(checklist_path),
        )
    try:
        raw = json.loads(checklist_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ChecklistError(
            reason="checklist_invalid_json",
            detail=f"Checklist is not valid JSON: {exc}",
            path=str(checklist_path),
        ) from exc
    try:
        return Checklist.model_validate(raw)
    except ValidationError as exc:
        raise ChecklistError(
            reason="checklist_schema_error",
            detail=f"Checklist failed validation: {exc}",
            path=str(checklist_path),
        ) from exc


def checklist_as_json(checklist: Checklist) -> dict[str, object]:
    return checklist.model_dump(mode="json")
