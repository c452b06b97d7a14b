from __future__ import annotations

import json
import platform
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from structure_check.errors import ArtifactWriteError


TIME_FORMAT = "%Y%m%dT%H%M%SZ"


def utc_now_iso() -> str:
    return datetime.now(tz=timezone.utc).replace(microsecond=0).isoformat()


def utc_timestamp() -> str:
    return datetime.now(tz=timezone.utc).strftime(TIME_FORMAT)


def _dump_json(data: Any) -> str:
    return json.dumps(data, indent=2, sort_keys=True) + "\n"


def _mirror_dir(src: Path, dst: Path) -> None:
    if dst.is_dir() and not dst.is_symlink():
        shutil.rmtree(dst)
    elif dst.exists() or dst.is_symlink():
        dst.unlink()
    shutil.copytree(src, dst)


@dataclass
class CheckRun:
    """Collects run notes and, when ``artifacts_root`` is set, writes them to disk.

    Artifacts land in ``<artifacts_root>/<name>/<timestamp>/`` and are mirrored
    to ``<artifacts_root>/<name>/latest/``. Without ``artifacts_root`` nothing is
    written and ``finalize`` only builds (and optionally prints) the summary.
    """

    name: str
    artifacts_root: Path | None = None
    started_at: str = field(default_factory=utc_now_iso)
    notes: list[str] = field(default_factory=list)
    artifacts: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.timestamp = utc_timestamp()
        self.run_dir: Path | None = None
        self.latest_dir: Path | None = None
        if self.artifacts_root is not None:
            self.artifacts_root = self.artifacts_root.resolve()
            self.run_dir = self.artifacts_root / self.name / self.timestamp
            self.latest_dir = self.artifacts_root / self.name / "latest"

    @property
    def persists(self) -> bool:
        return self.run_dir is not None

    def _write(self, filename: str, text: str) -> None:
        if self.run_dir is None:
            return
        path = self.run_dir / filename
        try:
            self.run_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise ArtifactWriteError(path=str(self.run_dir), detail=str(exc)) from exc
        self.artifacts.append(path.relative_to(self.artifacts_root).as_posix())

    def write_text(self, filename: str, text: str) -> None:
        self._write(filename, text)

    def write_json(self, filename: str, data: Any) -> None:
        self._write(filename, _dump_json(data))

    def add_note(self, note: str) -> None:
        self.notes.append(note)

    def finalize(
        self,
        status: str,
        *,
        emit_json: bool = False,
        summary_updates: dict[str, Any] | None = None,
    ) -> int:
        summary: dict[str, Any] = {
            "artifacts": [],
            "ended_at": utc_now_iso(),
            "name": self.name,
            "notes": self.notes,
            "python_version": platform.python_version(),
            "started_at": self.started_at,
            "status": status,
        }
        if summary_updates:
            summary.update(summary_updates)
        if self.persists:
            summary_rel = (self.run_dir / "summary.json").relative_to(self.artifacts_root).as_posix()
            summary["artifacts"] = sorted(set(self.artifacts + [summary_rel]))
            self.write_json("summary.json", summary)
            try:
                _mirror_dir(self.run_dir, self.latest_dir)
            except OSError as exc:
                raise ArtifactWriteError(path=str(self.latest_dir), detail=str(exc)) from exc
        if emit_json:
            print(_dump_json(summary), end="")
        return 0 if status == "pass" else 1
