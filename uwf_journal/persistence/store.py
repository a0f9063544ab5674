"""
Key/value document store.

One JSON file per key under the data directory. Documents are always read
and written whole; writes go to a temporary file that is then renamed over
the target, so a reader never sees a half-written document.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..core.errors import ErrorCodes, StorageError

logger = logging.getLogger(__name__)

TRADES_KEY = "trades"
SETTINGS_KEY = "settings"
WATCHLIST_KEY = "watchlist"
CIRCUIT_BREAKER_KEY = "circuitBreaker"
META_KEY = "meta"

STORE_KEYS = (TRADES_KEY, SETTINGS_KEY, WATCHLIST_KEY, CIRCUIT_BREAKER_KEY, META_KEY)


class JsonStore:
    """
    Whole-document JSON store rooted at ``data_dir``.

    A document that exists but cannot be parsed is moved aside (suffix
    ``.corrupt-<timestamp>``) and reported as missing, so the journal starts
    from defaults without overwriting the damaged data.
    """

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir).expanduser()
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                ErrorCodes.STORAGE_WRITE_ERROR,
                detail=f"cannot create data directory {self.data_dir}",
                original_error=e,
            ) from e

    def path_for(self, key: str) -> Path:
        if not key or "/" in key or key.startswith("."):
            raise ValueError(f"Invalid store key: {key!r}")
        return self.data_dir / f"{key}.json"

    def exists(self, key: str) -> bool:
        return self.path_for(key).exists()

    def read(self, key: str, default: Any = None) -> Any:
        """Load the document stored under ``key``, or ``default`` when absent."""
        path = self.path_for(key)
        if not path.exists():
            return default

        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise StorageError(
                ErrorCodes.STORAGE_READ_ERROR, detail=str(path), original_error=e
            ) from e

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            quarantined = self._quarantine(path)
            logger.error(
                f"Unreadable document {path.name} ({e}); moved to {quarantined.name}",
                extra={"ctx_store_key": key},
            )
            return default

    def write(self, key: str, document: Any) -> None:
        """Replace the document stored under ``key``."""
        path = self.path_for(key)
        try:
            text = json.dumps(document, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(
                ErrorCodes.STORAGE_WRITE_ERROR, detail=str(path), original_error=e
            ) from e
        self._replace(key, text)
        logger.debug(f"Wrote {path.name}", extra={"ctx_store_key": key})

    def write_many(self, documents: Dict[str, Any], order: Optional[Iterable[str]] = None) -> None:
        """
        Write several documents, in ``order`` when given, as one unit.

        When a write fails, documents already replaced in this call are put
        back to their previous bytes (or removed if they did not exist) and
        the ``StorageError`` is re-raised.
        """
        keys = [key for key in (order or documents.keys()) if key in documents]
        previous = {key: self._raw(key) for key in keys}
        written: List[str] = []
        try:
            for key in keys:
                self.write(key, documents[key])
                written.append(key)
        except StorageError:
            for key in reversed(written):
                self._restore(key, previous[key])
            raise

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(
                ErrorCodes.STORAGE_WRITE_ERROR, detail=str(path), original_error=e
            ) from e
        return True

    def _raw(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(
                ErrorCodes.STORAGE_READ_ERROR, detail=str(path), original_error=e
            ) from e

    def _replace(self, key: str, text: str) -> None:
        path = self.path_for(key)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageError(
                ErrorCodes.STORAGE_WRITE_ERROR, detail=str(path), original_error=e
            ) from e

    def _restore(self, key: str, text: Optional[str]) -> None:
        try:
            if text is None:
                self.delete(key)
            else:
                self._replace(key, text)
        except StorageError as e:
            logger.critical(
                f"Rollback of {key} failed; data directory may be inconsistent: {e}",
                extra={"ctx_store_key": key},
            )
        else:
            logger.warning(f"Rolled back {key} after a failed write", extra={"ctx_store_key": key})

    def _quarantine(self, path: Path) -> Path:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        target = path.with_name(f"{path.name}.corrupt-{stamp}")
        try:
            os.replace(path, target)
        except OSError as e:
            raise StorageError(
                ErrorCodes.STORAGE_READ_ERROR,
                detail=f"{path} is damaged and could not be moved aside",
                original_error=e,
            ) from e
        return target
