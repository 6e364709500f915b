"""Dropbox-backed FileStore — the production home of the state file."""

import logging

import dropbox
from dropbox.exceptions import ApiError, DropboxException
from dropbox.files import DownloadError, WriteMode

from src.core.failures import CouldNotReadState, CouldNotStoreState
from src.core.result import Failure, Result, Success

logger = logging.getLogger(__name__)


class DropboxStore:
    """Reads and overwrites small text files in the app's Dropbox folder.

    A missing file reads as None so the very first run can proceed; any other
    API, auth or network problem becomes a failure value.
    """

    name = "Dropbox"

    def __init__(
        self,
        access_token: str,
        app_name: str,
        client: dropbox.Dropbox | None = None,
    ) -> None:
        self._client = client or dropbox.Dropbox(
            oauth2_access_token=access_token, user_agent=app_name
        )

    def read_text(self, path: str) -> Result[CouldNotReadState, str | None]:
        try:
            _metadata, response = self._client.files_download(path)
            with response:
                content: bytes = response.content
        except ApiError as exc:
            if _is_not_found(exc):
                logger.info("Dropbox file %s does not exist yet", path)
                return Success(None)
            logger.warning("Dropbox download of %s failed: %s", path, exc)
            return Failure(CouldNotReadState(path, self.name))
        except (DropboxException, OSError) as exc:
            logger.warning("Dropbox download of %s failed: %s", path, exc)
            return Failure(CouldNotReadState(path, self.name))
        return Success(content.decode("utf-8"))

    def write_text(self, path: str, text: str) -> Result[CouldNotStoreState, None]:
        try:
            self._client.files_upload(text.encode("utf-8"), path, mode=WriteMode.overwrite)
        except (DropboxException, OSError) as exc:
            logger.warning("Dropbox upload of %s failed: %s", path, exc)
            return Failure(CouldNotStoreState(path, self.name))
        logger.info("Stored %d characters at %s on Dropbox", len(text), path)
        return Success(None)


def _is_not_found(exc: ApiError) -> bool:
    error = exc.error
    return (
        isinstance(error, DownloadError)
        and error.is_path()
        and error.get_path().is_not_found()
    )
