"""Small state files kept next to the scripts: batch checkpoint and last uploaded blob name."""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from .config import LAST_UPLOAD_FILE

logger = logging.getLogger(__name__)


class Checkpoint:
    """Index of the next account a batch run should process, stored as {"lastIndex": n}."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> int:
        """Return the saved index; a missing or unreadable file means start over at 0."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return 0
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable checkpoint %s (%s); starting from 0", self.path, e)
            return 0
        index = data.get("lastIndex") if isinstance(data, dict) else None
        if not isinstance(index, int) or isinstance(index, bool) or index < 0:
            logger.warning("Ignoring invalid checkpoint %s; starting from 0", self.path)
            return 0
        return index

    def save(self, index: int) -> None:
        """Persist the next index by rewriting the file in one rename."""
        if index < 0:
            raise ValueError("Checkpoint index must be non-negative")
        current = self.load() if self.path.exists() else 0
        if index < current:
            raise ValueError(f"Checkpoint cannot move backwards ({current} -> {index})")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".progress-", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"lastIndex": index}, f, indent=2)
            os.chmod(tmp, self._file_mode())
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _file_mode(self) -> int:
        """Mode of the existing checkpoint, or what a plain open() would create (mkstemp uses 0600)."""
        try:
            return self.path.stat().st_mode & 0o777
        except FileNotFoundError:
            umask = os.umask(0)
            os.umask(umask)
            return 0o666 & ~umask


def set_last_upload(blob_name: str, path: Union[str, Path] = LAST_UPLOAD_FILE) -> Optional[OSError]:
    """Remember the last uploaded blob name; returns the error instead of raising."""
    try:
        Path(path).write_text(blob_name, encoding="utf-8")
        return None
    except OSError as e:
        return e


def get_last_upload(path: Union[str, Path] = LAST_UPLOAD_FILE) -> Optional[str]:
    try:
        return Path(path).read_text(encoding="utf-8").strip() or None
    except OSError:
        return None
