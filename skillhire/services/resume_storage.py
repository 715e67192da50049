"""Local object storage for resumes.

Files live under ``RESUME_STORAGE_DIR/<user_id>/<epoch_ms>-<filename>``; the
application row keeps ``resumes/<that path>``. Reads go through short-lived
signed tokens rather than public links.
"""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from skillhire.config import settings
from skillhire.errors import ResumeUploadError


logger = logging.getLogger(__name__)

BUCKET = "resumes"
ALLOWED_EXTENSIONS = (".pdf", ".doc", ".docx")

_SIGNED_URL_PURPOSE = "resume-download"
_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]+")


class SignedUrlError(Exception):
    pass


def storage_root() -> Path:
    return Path(settings.resume_storage_dir).resolve()


def sanitize_filename(filename: str) -> str:
    name = Path(filename or "").name.strip()
    name = _UNSAFE_CHARS_RE.sub("_", name).strip("._")
    return name or "resume"


def check_extension(filename: str) -> str:
    suffix = Path(filename or "").suffix.lower()
    if suffix not in ALLOWED_EXTENSIONS:
        raise ResumeUploadError("Resume must be a .pdf, .doc or .docx file")
    return suffix


def save_resume(user_id: str, filename: str, content: bytes, *, now_ms: int | None = None) -> str:
    """Store a resume and return its bucket-qualified path."""

    check_extension(filename)
    if not content:
        raise ResumeUploadError("Resume file is empty")
    if len(content) > settings.resume_max_bytes:
        raise ResumeUploadError(f"Resume exceeds {settings.resume_max_bytes} bytes")

    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    relative = f"{sanitize_filename(user_id)}/{stamp}-{sanitize_filename(filename)}"
    target = storage_root() / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
    logger.info("resume.stored user_id=%s path=%s bytes=%d", user_id, relative, len(content))
    return f"{BUCKET}/{relative}"


def resolve_path(resume_url: str) -> Path:
    prefix = f"{BUCKET}/"
    relative = resume_url[len(prefix):] if resume_url.startswith(prefix) else resume_url
    root = storage_root()
    target = (root / relative).resolve()
    if root not in target.parents:
        raise SignedUrlError("Invalid storage path")
    return target


def create_signed_token(resume_url: str, *, expires_in: int | None = None) -> tuple[str, int]:
    ttl = int(expires_in if expires_in is not None else settings.signed_url_ttl_seconds)
    payload = {
        "path": resume_url,
        "purpose": _SIGNED_URL_PURPOSE,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=ttl),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm), ttl


def verify_signed_token(token: str) -> str:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as exc:
        raise SignedUrlError("Signed URL expired") from exc
    except JWTError as exc:
        raise SignedUrlError("Invalid signed URL") from exc
    if payload.get("purpose") != _SIGNED_URL_PURPOSE or not payload.get("path"):
        raise SignedUrlError("Invalid signed URL")
    return str(payload["path"])
