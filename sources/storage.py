"""Object-storage collaborator: owned uploads on Django's default storage."""

import logging

from django.core.files.storage import default_storage

from quizzes.exceptions import Forbidden, NotFound
from quizzes.services import require_user

from .models import SourceFile

logger = logging.getLogger(__name__)


def save_upload(user, upload, name=""):
    require_user(user)
    source = SourceFile(
        owner=user,
        name=(name or upload.name or "upload").strip(),
        content_type=upload.content_type or "application/octet-stream",
        size=upload.size,
    )
    source.file.save(upload.name, upload, save=False)
    source.save()
    logger.info(f"Stored file {source.pk} ({source.content_type}, {source.size} bytes) for user {user.pk}")
    return source


def get_owned_file(user, file_id):
    require_user(user)
    source = SourceFile.objects.filter(pk=file_id).first()
    if source is None:
        raise NotFound("File not found.")
    if source.owner_id != user.pk:
        raise Forbidden("User is not authorized to use this file.")
    return source


def read_content(source):
    """Return ``(data, content_type)`` for a stored file."""
    if not source.file or not default_storage.exists(source.file.name):
        raise NotFound("Could not retrieve file content from storage.")
    with default_storage.open(source.file.name, "rb") as fh:
        data = fh.read()
    return data, source.content_type


def delete_file(user, file_id):
    source = get_owned_file(user, file_id)
    if source.file and default_storage.exists(source.file.name):
        default_storage.delete(source.file.name)
    source.delete()


def list_files(user):
    require_user(user)
    return list(SourceFile.objects.filter(owner=user))


def serialize(source):
    return {
        "id": source.pk,
        "name": source.name,
        "type": source.content_type,
        "size": source.size,
        "uploadedAt": source.uploaded_at.isoformat() if source.uploaded_at else None,
    }
