"""Local-disk FileStore for running without Dropbox (development, dry runs)."""

import logging
import os
from pathlib import Path

from src.core.failures import CouldNotReadState, CouldNotStoreState
from src.core.result import Failure, Result, Success

logger = logging.getLogger(__name__)

_DEFAULT_STATE_DIR = Path("data")


class LocalFileStore:
    """Keeps files under `root`; a store path like '/gmailer_state.json' maps to root/gmailer_state.json."""

    name = "local storage"

    def __init__(self, root: str | Path = _DEFAULT_STATE_DIR) -> None:
        self._root = Path(root)

    def read_text(self, path: str) -> Result[CouldNotReadState, str | None]:
        target = self._resolve(path)
        if not target.exists():
            return Success(None)
        try:
            return Success(target.read_text(encoding="utf-8"))
        except OSError as exc:
            logger.warning("Could not read %s: %s", target, exc)
            return Failure(CouldNotReadState(path, self.name))

    def write_text(self, path: str, text: str) -> Result[CouldNotStoreState, None]:
        """Write via a sibling temp file, then rename over the target."""
        target = self._resolve(path)
        tmp = target.with_name(target.name + ".tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(text, encoding="utf-8")
            os.replace(tmp, target)
        except OSError as exc:
            logger.warning("Could not write %s: %s", target, exc)
            return Failure(CouldNotStoreState(path, self.name))
        logger.info("Stored %d characters at %s", len(text), target)
        return Success(None)

    def _resolve(self, path: str) -> Path:
        return self._root / path.lstrip("/")
