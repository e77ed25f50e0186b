"""
File-based run progress.

One JSON file per source adapter, plus the global watermark file. Writes go
to a temp file in the same directory and are swapped in with os.replace, so
a crash never leaves a half-written checkpoint.
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from statepulse.config.constants import CHECKPOINT_FILES, WATERMARK_FILE
from statepulse.config.settings import settings
from statepulse.models.checkpoint import GlobalWatermark, RunCheckpoint

logger = logging.getLogger(__name__)


def _atomic_write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class CheckpointStore:
    """Load, save and clear RunCheckpoints under one directory."""

    def __init__(self, directory: Optional[Path] = None, filenames: Optional[Dict[str, str]] = None):
        self.directory = Path(directory if directory is not None else settings.DATA_DIR)
        self.filenames = filenames if filenames is not None else CHECKPOINT_FILES

    def path_for(self, source_id: str) -> Path:
        return self.directory / self.filenames.get(source_id, f"{source_id}-progress.json")

    def load(self, source_id: str) -> Optional[RunCheckpoint]:
        """Saved checkpoint for source_id, or None to start from scratch."""
        path = self.path_for(source_id)
        if not path.exists():
            return None
        try:
            return RunCheckpoint.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.error(f"Ignoring unreadable checkpoint {path}: {e}")
            return None

    def save(self, checkpoint: RunCheckpoint) -> None:
        _atomic_write(
            self.path_for(checkpoint.source_id),
            checkpoint.model_dump_json(by_alias=True, indent=2),
        )

    def clear(self, source_id: str) -> None:
        path = self.path_for(source_id)
        if path.exists():
            path.unlink()
            logger.debug(f"Cleared checkpoint {path}")

    def load_all(self) -> List[RunCheckpoint]:
        """All checkpoints currently on disk."""
        found = []
        for source_id in self.filenames:
            checkpoint = self.load(source_id)
            if checkpoint is not None:
                found.append(checkpoint)
        return found


class WatermarkStore:
    """The date of the last run attempt, shared by all daily sources."""

    def __init__(self, path: Optional[Path] = None, default: Optional[str] = None):
        self.path = Path(path) if path is not None else Path(settings.DATA_DIR) / WATERMARK_FILE
        self.default = default or settings.DEFAULT_SINCE

    def load(self) -> GlobalWatermark:
        if self.path.exists():
            try:
                return GlobalWatermark.model_validate_json(self.path.read_text(encoding="utf-8"))
            except (OSError, ValidationError) as e:
                logger.error(f"Ignoring unreadable watermark {self.path}: {e}")
        return GlobalWatermark(last_run_date=self.default)

    def save(self, last_run_date: str) -> GlobalWatermark:
        watermark = GlobalWatermark(last_run_date=last_run_date)
        _atomic_write(self.path, watermark.model_dump_json(by_alias=True, indent=2))
        return watermark
