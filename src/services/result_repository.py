"""Persistence of research results keyed by session id.

The orchestrator only needs "store this result under its session id" and
"fetch it back", so storage is reached through the small ResultRepository
protocol. Two implementations ship here: an in-memory store for tests and
embedding, and a JSON-file store writing one file per session.
"""

import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol

import structlog

from src.models.research import ResearchExecutionResult
from src.utils.security import PathSanitizer, validate_session_id

logger = structlog.get_logger()


class ResultRepository(Protocol):
    def save(self, result: ResearchExecutionResult) -> None:
        ...

    def get(self, session_id: str) -> Optional[ResearchExecutionResult]:
        ...


def _require_session_id(result: ResearchExecutionResult) -> str:
    if not result.session_id:
        raise ValueError("Cannot persist a result without a session id")
    return result.session_id


class InMemoryResultRepository:
    """Dict-backed repository"""

    def __init__(self) -> None:
        self._results: Dict[str, ResearchExecutionResult] = {}
        self._lock = threading.Lock()

    def save(self, result: ResearchExecutionResult) -> None:
        session_id = _require_session_id(result)
        with self._lock:
            self._results[session_id] = result

    def get(self, session_id: str) -> Optional[ResearchExecutionResult]:
        with self._lock:
            return self._results.get(session_id)

    def list_session_ids(self) -> List[str]:
        with self._lock:
            return list(self._results)


class JsonFileResultRepository:
    """Stores each result as ``<output_dir>/<session_id>.json``"""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.path_sanitizer = PathSanitizer(allowed_bases=[self.output_dir])

    def path_for(self, session_id: str) -> Path:
        validate_session_id(session_id)
        return self.path_sanitizer.safe_path(self.output_dir, f"{session_id}.json")

    def save(self, result: ResearchExecutionResult) -> None:
        """Save result to disk atomically"""
        path = self.path_for(_require_session_id(result))

        # Atomic write: write to .tmp then rename
        temp_path = path.with_suffix(".tmp")
        try:
            temp_path.write_text(result.model_dump_json(indent=2))
            temp_path.replace(path)
            logger.info("result_saved", path=str(path))
        except OSError as e:
            logger.error("result_save_failed", path=str(path), error=str(e))
            if temp_path.exists():
                temp_path.unlink()
            raise

    def get(self, session_id: str) -> Optional[ResearchExecutionResult]:
        path = self.path_for(session_id)
        if not path.exists():
            return None
        return ResearchExecutionResult.model_validate_json(path.read_text())

    def list_session_ids(self) -> List[str]:
        return sorted(p.stem for p in self.output_dir.glob("*.json"))
