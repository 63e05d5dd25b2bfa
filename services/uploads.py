# services/uploads.py
import logging
import os
import re
from typing import Optional

import config
from services.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "application/pdf": "pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/msword": "doc",
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}
GOOGLE_PATTERN = re.compile(r"^https://(docs\.google\.com|sheets\.google\.com|slides\.google\.com)/", re.IGNORECASE)
GOOGLE_LABELS = {"doc": "Google Doc", "sheet": "Google Sheet", "slide": "Google Slide"}


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1048576:
        return f"{size / 1024:.1f} KB"
    return f"{size / 1048576:.1f} MB"


def default_title(filename: str) -> str:
    return os.path.splitext(os.path.basename(filename or ""))[0]


def check_file(filename: str, content_type: str, size: int, max_mb: Optional[int] = None) -> None:
    max_mb = max_mb or config.MAX_UPLOAD_MB
    if content_type not in ALLOWED_MIME_TYPES:
        raise ValidationError([("file", "File type not allowed. Allowed: PDF, DOCX, DOC, PNG, JPG, GIF, WEBP")])
    if size > max_mb * 1048576:
        raise ValidationError([("file", f"File too large ({format_bytes(size)}). Maximum {max_mb} MB")])
    if size == 0:
        raise ValidationError([("file", "File is empty")])


def detect_google_type(url: str) -> str:
    if "sheets.google.com" in url:
        return "sheet"
    if "slides.google.com" in url:
        return "slide"
    return "doc"


def check_google_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise ValidationError([("url", "Please paste a Google link.")])
    if not GOOGLE_PATTERN.match(url):
        raise ValidationError([("url", "Invalid Google link.")])
    return detect_google_type(url)


def _metadata(title, description, subject, gradeLevel) -> dict:
    fields = {"title": (title or "").strip()}
    for key, value in (("description", description), ("subject", subject), ("gradeLevel", gradeLevel)):
        if value and value.strip():
            fields[key] = value.strip()
    return fields


async def upload_worksheet(
    api,
    filename: str,
    content: bytes,
    content_type: str,
    title: str = "",
    description: str = "",
    subject: str = "",
    gradeLevel: str = "",
    workbookId: str = "",
):
    """Send a PDF/Word/image worksheet as multipart form data."""
    check_file(filename, content_type, len(content))
    fields = _metadata(title or default_title(filename), description, subject, gradeLevel)
    if not fields["title"]:
        raise ValidationError([("title", "Title is required.")])
    if workbookId:
        fields["workbookId"] = workbookId
    logger.info(f"Uploading {filename} ({format_bytes(len(content))}) as '{fields['title']}'")
    return await api.upload_worksheet(fields, filename, content, content_type)


async def save_google_link(
    api, url: str, title: str, description: str = "", subject: str = "", gradeLevel: str = "", workbookId: str = ""
):
    kind = check_google_url(url)
    body = _metadata(title, description, subject, gradeLevel)
    if not body["title"]:
        raise ValidationError([("title", "Title is required.")])
    body["url"] = url.strip()
    if workbookId:
        body["workbookId"] = workbookId
    logger.info(f"Saving {GOOGLE_LABELS[kind]} link as '{body['title']}'")
    return await api.save_google_link(body)
