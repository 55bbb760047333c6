"""
Shared helpers used across blueprints.

Request parsing (pagination, uploads, pasted screenshots) and small
formatting helpers live here so the blueprints stay thin.
"""

from __future__ import annotations

import base64
import binascii
import re
from datetime import datetime

from flask import request
from flask_login import current_user

from models import FilePart

SUPPORTED_LANGUAGES: dict[str, str] = {
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "ja": "Japanese",
    "ko": "Korean",
    "zh-CN": "Chinese",
    "hi": "Hindi",
    "mr": "Marathi",
}

EMPTY_MATERIAL_ERROR = "Please enter some study material, upload a PDF, or paste a screenshot."

# Leading bytes for each accepted upload type.
_MAGIC_BYTES: dict[str, tuple[bytes, ...]] = {
    "application/pdf": (b"%PDF",),
    "image/png": (b"\x89PNG\r\n\x1a\n",),
    "image/jpeg": (b"\xff\xd8\xff",),
    "image/webp": (b"RIFF",),
}
ALLOWED_MIME_TYPES = tuple(_MAGIC_BYTES)

_DATA_URL_RE = re.compile(r"^data:(image/[\w.+-]+);base64,(.*)$", re.DOTALL)


class UploadError(ValueError):
    """An uploaded file or pasted image was rejected."""


def current_user_id() -> int:
    """Return the current authenticated user's ID."""
    return current_user.id


# ── Pagination ──────────────────────────────────────────────

def paginate_args(default_limit: int = 20, max_limit: int = 100) -> tuple[int, int]:
    """Extract page/limit from request.args. Returns (page, limit)."""
    try:
        page = max(1, int(request.args.get("page", 1)))
    except (ValueError, TypeError):
        page = 1
    try:
        limit = min(max_limit, max(1, int(request.args.get("limit", default_limit))))
    except (ValueError, TypeError):
        limit = default_limit
    return page, limit


def paginated_response(items: list, total: int, page: int, limit: int) -> dict:
    """Standard pagination envelope."""
    return {
        "items": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": max(1, (total + limit - 1) // limit),
        },
    }


# ── Study material parsing ─────────────────────────────────

def default_title(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"Session on {now.month}/{now.day}/{now.year}"


def check_file_bytes(mime_type: str, raw: bytes) -> None:
    """Raise UploadError unless ``raw`` starts like a ``mime_type`` file."""
    signatures = _MAGIC_BYTES.get(mime_type)
    if signatures is None:
        raise UploadError(f"Unsupported file type: {mime_type or 'unknown'}")
    if not any(raw.startswith(sig) for sig in signatures):
        raise UploadError(f"File content does not match type {mime_type}")
    if mime_type == "image/webp" and raw[8:12] != b"WEBP":
        raise UploadError("File content does not match type image/webp")


def file_part_from_bytes(mime_type: str, raw: bytes) -> FilePart:
    check_file_bytes(mime_type, raw)
    return FilePart(mime_type=mime_type, data=base64.b64encode(raw).decode("ascii"))


def file_part_from_base64(mime_type: str, data: str) -> FilePart:
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise UploadError("File data is not valid base64") from e
    check_file_bytes(mime_type, raw)
    return FilePart(mime_type=mime_type, data=data)


def file_part_from_data_url(data_url: str) -> FilePart:
    """Parse a pasted screenshot (``data:image/png;base64,...``)."""
    match = _DATA_URL_RE.match(data_url.strip())
    if not match:
        raise UploadError("Screenshot must be a base64 image data URL")
    return file_part_from_base64(match.group(1), match.group(2))


# ── Summary formatting ─────────────────────────────────────

def summary_points(summary: str) -> list[dict]:
    """Split a summary into display lines, marking ``* ``/``- `` bullets."""
    points = []
    for line in summary.replace("**", "").split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith(("* ", "- ")):
            points.append({"bullet": True, "text": stripped[2:]})
        else:
            points.append({"bullet": False, "text": stripped})
    return points


def owned_session(session_id):
    """The current user's session ``session_id``, or None."""
    from db_stores import StudySessionStoreDB
    return StudySessionStoreDB(current_user_id()).get(session_id)


def language_name(code: str | None) -> str | None:
    """Display name for a supported translation language code."""
    return SUPPORTED_LANGUAGES.get(code or "")
