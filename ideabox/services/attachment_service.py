"""
Attachment storage for idea submissions.

Files are written to UPLOAD_FOLDER as ``<employee_id>_<token>_<file name>``
with the file name passed through werkzeug's ``secure_filename``. The random
token keeps two uploads of the same file by one employee apart.
"""

import logging
import os
import re
import uuid

from flask import current_app
from werkzeug.utils import secure_filename

from ideabox.core.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _upload_folder() -> str:
    folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(folder, exist_ok=True)
    return folder


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def build_stored_name(employee_id: str, original_name: str) -> str:
    """``E123`` + ``"my idea.pdf"`` → ``"E123_<8 hex>_my_idea.pdf"``."""
    name = secure_filename(re.sub(r"\s+", "_", original_name or ""))
    prefix = secure_filename(str(employee_id or ""))
    if not name or not prefix:
        raise ValidationError("Attachment needs a file name and an employee ID",
                              details={"attachment": "invalid file name"})
    return f"{prefix}_{uuid.uuid4().hex[:8]}_{name}"


def save_attachment(file, employee_id: str) -> str:
    """Persist an uploaded ``FileStorage`` and return its stored name."""
    stored = build_stored_name(employee_id, file.filename)
    allowed = current_app.config.get("ALLOWED_ATTACHMENT_EXTENSIONS")
    if allowed and _extension(stored) not in allowed:
        raise ValidationError(
            f"File type '.{_extension(stored)}' is not allowed",
            details={"attachment": sorted(allowed)},
        )

    path = os.path.join(_upload_folder(), stored)
    file.save(path)
    logger.info("Attachment stored: %s", stored)
    return stored


def attachment_path(stored_name: str) -> str:
    """Absolute path of a stored attachment; NotFoundError if absent."""
    safe = secure_filename(stored_name or "")
    path = os.path.join(_upload_folder(), safe)
    if not safe or not os.path.isfile(path):
        raise NotFoundError("Attachment", stored_name)
    return path
