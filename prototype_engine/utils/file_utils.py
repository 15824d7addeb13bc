"""
Helpers for uploaded files and their base64 representation.
"""
import base64
import binascii
import mimetypes
from typing import Optional

from fastapi import UploadFile

from prototype_engine.models import ProjectFile


IMAGE_TYPES = ("image/png", "image/jpeg", "image/webp")
DOCUMENT_EXTENSIONS = (".md", ".txt", ".pdf", ".doc", ".docx")

mimetypes.add_type("text/markdown", ".md")


def guess_mime_type(file_name: str, declared: Optional[str] = None) -> str:
    if declared and declared != "application/octet-stream":
        return declared
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or "text/plain"


def bytes_to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("utf-8")


def text_to_base64(text: str) -> str:
    return bytes_to_base64(text.encode("utf-8"))


def base64_to_text(content: str) -> str:
    """Decode base64 content as UTF-8, replacing undecodable bytes."""
    try:
        raw = base64.b64decode(content, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"File content is not valid base64: {e}") from e
    return raw.decode("utf-8", errors="replace")


def base64_to_bytes(content: str) -> bytes:
    return base64.b64decode(content)


async def create_project_file(upload: UploadFile) -> ProjectFile:
    """Read an upload into a ProjectFile with base64 content."""
    data = await upload.read()
    name = upload.filename or "upload"
    return ProjectFile(
        name=name,
        type=guess_mime_type(name, upload.content_type),
        content=bytes_to_base64(data),
    )


def is_image_file(project_file: ProjectFile) -> bool:
    return project_file.type in IMAGE_TYPES


def is_document_file(project_file: ProjectFile) -> bool:
    return project_file.name.lower().endswith(DOCUMENT_EXTENSIONS)
