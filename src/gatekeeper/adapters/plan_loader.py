from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List


class PlanLoaderError(RuntimeError):
    """Exception raised when a plan or configuration document cannot be read."""


@dataclass(slots=True)
class LoadedDocument:
    """A decoded JSON document and the file it came from."""

    path: Path
    data: Any
    text: str


class PlanLoader:
    """Load Terraform plan JSON and ``*.tf.json`` configuration documents."""

    def __init__(self, paths: Iterable[str | os.PathLike[str]] = ()) -> None:
        self.paths = [Path(path).resolve() for path in paths]

    def load_documents(self) -> List[LoadedDocument]:
        """Load every configured path, failing on the first unreadable one."""

        return [self.load_document(path) for path in self.paths]

    # Artifact ingestion helpers -------------------------------------------------
    def load_document(self, path: str | os.PathLike[str]) -> LoadedDocument:
        path = Path(path)
        if not path.exists():
            raise PlanLoaderError(f"Terraform document not found: {path}")

        try:
            text = path.read_text(encoding="utf-8-sig")
        except OSError as exc:  # pragma: no cover - filesystem errors surfaced to caller
            raise PlanLoaderError(f"Failed to read Terraform document {path}") from exc
        except UnicodeDecodeError as exc:
            raise PlanLoaderError(f"Terraform document is not valid UTF-8: {path}") from exc

        return LoadedDocument(path=path, data=self._parse(text, path), text=text)

    def _parse(self, text: str, path: Path) -> Any:
        if not text.strip():
            raise PlanLoaderError(f"Terraform document is empty: {path}")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PlanLoaderError(f"Invalid JSON in {path}: {exc.msg} (line {exc.lineno})") from exc
        if not isinstance(data, dict):
            raise PlanLoaderError(f"Terraform document must be a JSON object: {path}")
        return data


__all__ = ["LoadedDocument", "PlanLoader", "PlanLoaderError"]
