"""Medical document upload.

Three-step protocol against blob storage:
1. POST /documents/upload-request  -> {documentId, uploadUrl}
2. PUT  <uploadUrl>                -> raw bytes, straight to storage
3. POST /documents/<id>/confirm    -> {document}

Size (10 MB) and type (PDF only) are checked locally before step 1.
"""
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from medibook import config
from medibook.http_client import MedibookError
from medibook.logging_config import get_logger
from medibook.models import Document

logger = get_logger(__name__)

PDF_MAGIC = b"%PDF-"


class DocumentValidationError(MedibookError):
    """Raised when a file fails the local checks (no request is sent)."""
    pass


@dataclass
class UploadResult:
    success: bool
    document: Optional[Document] = None
    error: str = ""
    step: Optional[str] = None  # request | upload | confirm


def check_content_type(file_name: str, content_type: Optional[str] = None) -> str:
    content_type = content_type or mimetypes.guess_type(file_name)[0]
    if content_type not in config.ALLOWED_DOCUMENT_TYPES:
        raise DocumentValidationError("Only PDF files are allowed.")
    return content_type


def check_size(size: int):
    if size <= 0:
        raise DocumentValidationError("File is empty.")
    if size > config.MAX_DOCUMENT_BYTES:
        limit_mb = config.MAX_DOCUMENT_BYTES // (1024 * 1024)
        raise DocumentValidationError(f"File is too large. Maximum size is {limit_mb} MB.")


def validate_document(file_name: str, data: bytes, content_type: Optional[str] = None) -> str:
    """
    Check a file before any upload request.

    Args:
        file_name: Name shown to the server
        data: File contents
        content_type: Explicit MIME type; guessed from file_name if omitted

    Returns:
        The content type to upload with

    Raises:
        DocumentValidationError: Empty, too large, or not a PDF
    """
    content_type = check_content_type(file_name, content_type)
    check_size(len(data))
    if not data.startswith(PDF_MAGIC):
        raise DocumentValidationError("File content is not a valid PDF.")

    return content_type


class DocumentUploader:
    """Runs the request -> direct upload -> confirm protocol."""

    def __init__(self, api):
        self.api = api

    def upload_file(self, path: str, content_type: Optional[str] = None) -> UploadResult:
        """
        Upload a file from disk.

        Raises:
            DocumentValidationError: If the file fails the local checks
        """
        file_path = Path(path)
        # Type and size are checked before the file is read
        content_type = check_content_type(file_path.name, content_type)
        check_size(file_path.stat().st_size)

        return self.upload(file_path.name, file_path.read_bytes(), content_type)

    def upload(self, file_name: str, data: bytes, content_type: Optional[str] = None) -> UploadResult:
        """
        Upload in-memory bytes.

        Raises:
            DocumentValidationError: If the file fails the local checks

        Returns:
            UploadResult; network/API failures are reported with the failing
            step instead of being raised
        """
        content_type = validate_document(file_name, data, content_type)

        try:
            ticket = self.api.request_upload(file_name, content_type, len(data))
            document_id = ticket["documentId"]
            upload_url = ticket["uploadUrl"]
        except (MedibookError, KeyError, TypeError) as e:
            return self._failed("request", e)

        try:
            self.api.put_blob(upload_url, data, content_type)
        except MedibookError as e:
            return self._failed("upload", e)

        try:
            response = self.api.confirm_upload(document_id)
            document = Document(**response["document"])
        except (MedibookError, ValidationError, KeyError, TypeError) as e:
            return self._failed("confirm", e)

        logger.info("document_uploaded", document_id=document.id, size=document.size)
        return UploadResult(success=True, document=document)

    @staticmethod
    def _failed(step: str, error: Exception) -> UploadResult:
        logger.warning("document_upload_failed", step=step, error=str(error))
        message = getattr(error, "message", None) or "Failed to upload document. Please try again."
        return UploadResult(success=False, error=message, step=step)
