import uuid
from pathlib import Path

import aiofiles
from fastapi import UploadFile

from ..core.exceptions import ValidationError

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "gif"}

class PhotoStorage:
    """Stores uploaded profile photos on local disk under ``upload_dir``."""

    def __init__(self, upload_dir: str, max_file_size: int):
        self.upload_dir = Path(upload_dir)
        self.max_file_size = max_file_size

    async def save(self, upload_file: UploadFile, folder: str = "profiles") -> str:
        """Validate and write the upload. Returns the path relative to the upload directory."""
        contents = await upload_file.read(self.max_file_size + 1)
        if len(contents) > self.max_file_size:
            raise ValidationError(
                f"File size exceeds the limit of {self.max_file_size / (1024 * 1024):.0f}MB"
            )
        if not contents:
            raise ValidationError("No file uploaded")

        filename = upload_file.filename or ""
        file_ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        if file_ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                f"File extension '{file_ext}' not allowed. Allowed extensions: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
            )

        upload_folder = self.upload_dir / folder
        upload_folder.mkdir(parents=True, exist_ok=True)

        unique_filename = f"{uuid.uuid4()}.{file_ext}"
        async with aiofiles.open(upload_folder / unique_filename, "wb") as f:
            await f.write(contents)

        return str(Path(folder) / unique_filename)
