"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from fastapi import File, Header, HTTPException, UploadFile, status

from app.parsers.row_decoder import SUPPORTED_EXTENSIONS

TABULAR_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def get_tabular_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV or XLSX by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    has_known_extension = any(filename.endswith(extension) for extension in SUPPORTED_EXTENSIONS)
    has_known_content_type = content_type in TABULAR_CONTENT_TYPES

    if not has_known_extension and not has_known_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV or XLSX files are allowed.",
        )

    return file


def get_actor_id(x_actor_id: str | None = Header(default=None)) -> str:
    """
    Actor identity set by the upstream authentication layer.
    """

    actor_id = (x_actor_id or "").strip()
    if not actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Actor-Id header.",
        )
    return actor_id
