"""Profile photo upload and removal.

Hey future me - photos are the one place where the UI updates OPTIMISTICALLY. After each
successful upload the new photo list goes straight into the session user
(update_user_photos), so the grid fills up while the rest are still uploading. When the
batch is done we refresh_user() and the server's list wins, whatever we guessed.
"""

import logging
import random
import re
import time
from dataclasses import dataclass

from prema.application.services.session_manager import SessionManager
from prema.domain.exceptions import ApiError
from prema.infrastructure.integrations import PremaApiClient

logger = logging.getLogger(__name__)

UPLOAD_FAILED_MESSAGE = "Failed to upload one of the selected photos. Please try again."
UNKNOWN_FILENAME_MESSAGE = "Unable to determine photo filename for deletion."
DEFAULT_MIME_TYPE = "image/jpeg"

# Stored photos look like "/uploads/<name>" (sometimes without the inner slash).
UPLOADS_FILENAME_PATTERN = re.compile(r"/uploads/?([^/]+)$")


@dataclass
class PhotoFile:
    """One picked image ready for upload."""

    content: bytes
    filename: str | None = None
    mime_type: str | None = None

    def resolved_mime_type(self) -> str:
        return self.mime_type or DEFAULT_MIME_TYPE

    def resolved_filename(self) -> str:
        """The picked name, or a generated photo_<ms>_<n>.<ext> one."""
        if self.filename:
            return self.filename
        extension = self.resolved_mime_type().split("/")[-1] or "jpeg"
        if extension == "jpg":
            extension = "jpeg"
        return f"photo_{int(time.time() * 1000)}_{random.randint(0, 999)}.{extension}"


def extract_photo_filename(photo_url: str) -> str | None:
    """Stored filename of a photo URL, None if it isn't an uploads URL."""
    match = UPLOADS_FILENAME_PATTERN.search(photo_url)
    return match.group(1) if match else None


def resolve_photo_url(base_url: str, photo_url: str) -> str:
    """Absolute URL for displaying a photo; relative upload paths get the API host."""
    if photo_url.startswith("/uploads/") or photo_url.startswith("uploads/"):
        return f"{base_url.rstrip('/')}/{photo_url.lstrip('/')}"
    return photo_url


class PhotoService:
    """Uploads and deletes the logged-in user's photos."""

    def __init__(self, client: PremaApiClient, session: SessionManager) -> None:
        self._client = client
        self._session = session
        self._processing: set[str] = set()

    def is_processing(self, filename: str) -> bool:
        """True while a delete for this filename is in flight."""
        return filename in self._processing

    async def upload_photos(self, files: list[PhotoFile]) -> list[str]:
        """Upload photos one after another, stopping at the first failure.

        Returns:
            The user's photo list after the final refresh

        Raises:
            ApiError: "Failed to upload one of the selected photos. Please try again."
                if any upload failed (earlier uploads are kept), or a refresh error
        """
        ctx = self._session.require_request_context()
        user = self._session.current_user
        latest = list(user.photos) if user else []
        failed: ApiError | None = None

        for photo in files:
            try:
                result = await self._client.upload_photo(
                    ctx,
                    photo.resolved_filename(),
                    photo.content,
                    photo.resolved_mime_type(),
                )
            except ApiError as e:
                logger.warning("Photo upload failed: %s", e.message)
                failed = e
                break
            latest = result.merged_into(latest)
            self._session.update_user_photos(latest)

        if failed is not None:
            try:
                await self._session.refresh_user()
            except ApiError as e:
                logger.warning("Profile refresh after failed upload also failed: %s", e)
            raise ApiError(UPLOAD_FAILED_MESSAGE) from failed

        refreshed = await self._session.refresh_user()
        logger.info("Uploaded %d photo(s)", len(files))
        return list(refreshed.photos)

    async def delete_photo(self, photo_url: str) -> list[str]:
        """Delete one photo and refresh the profile.

        Returns:
            The user's photo list after the refresh

        Raises:
            ApiError: "Unable to determine photo filename for deletion.", server
                detail or "Failed to delete photo. Please try again."
        """
        filename = extract_photo_filename(photo_url)
        if not filename:
            raise ApiError(UNKNOWN_FILENAME_MESSAGE)

        ctx = self._session.require_request_context()
        self._processing.add(filename)
        try:
            await self._client.delete_photo(ctx, filename)
            user = self._session.current_user
            if user is not None:
                self._session.update_user_photos([p for p in user.photos if p != photo_url])
            refreshed = await self._session.refresh_user()
        finally:
            self._processing.discard(filename)

        logger.info("Deleted photo %s", filename)
        return list(refreshed.photos)
