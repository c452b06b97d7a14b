from __future__ import annotations

from typing import Any


class StructureCheckError(Exception):
    pass


class MissingArtifact(StructureCheckError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Missing artifact `{path}`.")


class MalformedVersion(StructureCheckError):
    def __init__(self, content: str, *, path: str = "VERSION") -> None:
        self.content = content
        self.path = path
        super().__init__(f"`{path}` is not a MAJOR.MINOR.PATCH version: {content!r}.")


class ManifestParseError(StructureCheckError):
    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"`{path}` is not a valid JSON manifest: {detail}")


class ManifestFieldMismatch(StructureCheckError):
    def __init__(self, field: str, expected: Any, actual: Any) -> None:
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(f"Manifest field `{field}` expected {expected!r}, got {actual!r}.")


class ChecklistError(StructureCheckError):
    def __init__(self, *, reason: str, detail: str, path: str | None = None) -> None:
        self.reason = reason
        self.detail = detail
        self.path = path
        super().__init__(detail)


class ArtifactWriteError(StructureCheckError):
    def __init__(self, *, path: str, detail: str) -> None:
        self.reason = "artifact_write_failed"
        self.path = path
        self.detail = detail
        super().__init__(f"Could not write artifacts under `{path}`: {detail}")
