from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Iterable, Optional

from werkzeug.utils import secure_filename

from ..common.validators import require_enum
from ..core.constants import ALLOWED_UPLOAD_MIME_TYPES, DEFAULT_MAX_UPLOAD_BYTES
from ..core.enums import DocumentType
from ..core.exceptions import ValidationError
from .model import REQUIRED_DOCUMENTS, NewDocument, UploadedFile

logger = logging.getLogger(__name__)


class DocumentStorage:
    """Stores onboarding uploads on local disk under `upload_dir`.

    Only the resulting path is persisted; file contents are never interpreted.
    """

    def __init__(
        self,
        upload_dir: str | Path,
        *,
        max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        allowed_mime_types: Iterable[str] = ALLOWED_UPLOAD_MIME_TYPES,
    ):
        self._root = Path(upload_dir)
        self._max_bytes = int(max_bytes)
        self._allowed = frozenset(allowed_mime_types)

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    def validate(self, upload: UploadedFile) -> DocumentType:
        doc_type = require_enum(DocumentType, upload.document_type, "Document type")
        size = len(upload.data or b"")
        if size <= 0:
            raise ValidationError(f"{doc_type.value}: file is empty")
        if size > self._max_bytes:
            raise ValidationError(f"{doc_type.value}: file exceeds {self._max_bytes // (1024 * 1024)}MB limit")
        mime = (upload.content_type or "").split(";")[0].strip().lower()
        if mime not in self._allowed:
            raise ValidationError(
                f"{doc_type.value}: only JPEG, PNG, PDF, DOC and DOCX files are allowed"
            )
        return doc_type

    def save(self, user_id: int, upload: UploadedFile) -> NewDocument:
        doc_type = self.validate(upload)
        safe_name = secure_filename(upload.filename or "") or f"{doc_type.value}.bin"

        folder = self._root / str(int(user_id))
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / f"{doc_type.value}_{uuid.uuid4().hex}_{safe_name}"
        path.write_bytes(upload.data)

        return NewDocument(
            document_type=doc_type,
            original_name=upload.filename or safe_name,
            file_path=str(path),
            file_size=len(upload.data),
            mime_type=(upload.content_type or "").split(";")[0].strip().lower(),
            is_required=doc_type in REQUIRED_DOCUMENTS,
        )

    def discard(self, file_path: Optional[str]) -> None:
        """Best-effort removal of a stored file after a failed transaction."""
        if not file_path:
            return
        try:
            os.remove(file_path)
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning("could not remove orphaned upload %s", file_path, exc_info=True)
