import logging
import os
import uuid
from typing import Any, Dict, List

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from smartdrishti.models.StepMedia import StepMedia, MEDIA_TYPES
from smartdrishti.repositories.media_repository import MediaRepository
from smartdrishti.repositories.step_repository import StepRepository
from smartdrishti.utils.errors import NotFoundError, ValidationError

repository = MediaRepository()
steps = StepRepository()

logger = logging.getLogger(__name__)


def media_type_for(mimetype: str) -> str:
    """'image' or 'video' from the major MIME type."""
    major, slash, _ = (mimetype or '').partition('/')
    if slash and major in MEDIA_TYPES:
        return major
    raise ValidationError("Only image and video files are allowed")


def stored_name(original: str) -> str:
    """Unique on-disk name that keeps the (sanitised) original extension."""
    _, extension = os.path.splitext(secure_filename(original or ''))
    return f"{uuid.uuid4().hex}{extension.lower()}"


class MediaService:

    @staticmethod
    def upload(step_id: int, files: List[FileStorage], upload_folder: str, max_files: int) -> List[Dict[str, Any]]:
        if steps.get_by_id(step_id) is None:
            raise NotFoundError("Step not found")

        files = [f for f in files if f and f.filename]
        if not files:
            raise ValidationError("No files uploaded")
        if len(files) > max_files:
            raise ValidationError(f"Too many files. Maximum is {max_files}")
        # reject the whole batch before anything touches the disk
        kinds = [media_type_for(f.mimetype) for f in files]

        os.makedirs(upload_folder, exist_ok=True)
        records = []
        for storage, kind in zip(files, kinds):
            name = stored_name(storage.filename)
            storage.save(os.path.join(upload_folder, name))
            records.append(StepMedia(step_id=step_id, media_type=kind, media_url=f"/uploads/{name}"))

        repository.create_many(records)
        logger.info("Stored %d media files for step %s", len(records), step_id)
        return [record.to_dict() for record in records]

    @staticmethod
    def delete(media_id: int):
        if not repository.delete_by_id(media_id):
            raise NotFoundError("Media not found")
