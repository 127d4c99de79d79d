from datetime import datetime
from pathlib import Path
from typing import List
from fastapi import UploadFile
from app.core.config import settings
from app.core.exceptions import PhotoStorageError


def generate_photo_filename(extension: str, now: datetime | None = None) -> str:
    """Millisecond timestamp plus extension, e.g. 20210313070945123.png"""
    now = now or datetime.now()
    return now.strftime("%Y%m%d%H%M%S%f")[:-3] + extension


class PhotoStorage:
    def __init__(self, photo_dir: str | Path | None = None):
        self.photo_dir = Path(photo_dir or settings.PHOTO_DIR)
        self.photo_dir.mkdir(parents=True, exist_ok=True)

    async def save_photo(self, file: UploadFile) -> str:
        """Save uploaded photo under a generated name and return that name"""
        if not file.filename:
            raise PhotoStorageError("Filename is required")

        file_ext = Path(file.filename).suffix.lower()
        allowed_extensions = settings.get_allowed_photo_extensions()
        if file_ext not in allowed_extensions:
            raise PhotoStorageError(
                f"File type '{file_ext}' not supported. Allowed: {', '.join(sorted(allowed_extensions))}"
            )

        try:
            content = await file.read()
        except OSError as e:
            raise PhotoStorageError(f"Could not read upload {file.filename!r}: {e}") from e

        if len(content) > settings.MAX_FILE_SIZE:
            raise PhotoStorageError(
                f"Photo is {len(content)} bytes, limit is {settings.MAX_FILE_SIZE}")

        unique_filename = generate_photo_filename(file_ext)
        file_path = self.get_photo_path(unique_filename)

        # "x" mode fails instead of overwriting a photo saved in the same millisecond
        try:
            with open(file_path, "xb") as f:
                f.write(content)
        except OSError as e:
            raise PhotoStorageError(f"Could not write photo {unique_filename}: {e}") from e

        return unique_filename

    def get_photo_path(self, filename: str) -> Path:
        """Get full path to a photo, confined to the photo directory"""
        # Stored names come from clients; drop any directory components
        return self.photo_dir / Path(filename).name

    def is_default_photo(self, filename: str) -> bool:
        return filename == settings.DEFAULT_PHOTO_FILENAME

    def delete_photo(self, filename: str) -> bool:
        """
        Delete a photo. Returns False if there was nothing to delete.

        The shared default photo is never deleted. Errors other than a missing
        file propagate to the caller.
        """
        if not filename or self.is_default_photo(filename):
            return False
        try:
            self.get_photo_path(filename).unlink()
        except FileNotFoundError:
            return False
        return True

    def photo_exists(self, filename: str) -> bool:
        return self.get_photo_path(filename).is_file()

    def list_photos(self) -> List[Path]:
        return [path for path in self.photo_dir.iterdir() if path.is_file()]


storage = PhotoStorage()
