import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from starlette.datastructures import UploadFile

from config import UploadLimits
from utils.result import Result

logger = logging.getLogger(__name__)


class UploadedFile(BaseModel):
    """
    Upload buffered in memory for the duration of a single request.

    Attributes:
        content: Raw bytes of the uploaded spreadsheet
        content_type: Content type declared by the client for the ``file`` part
        size: Byte length of ``content``
        filename: Client supplied file name, informational only
    """
    model_config = ConfigDict(frozen=True)

    content: bytes
    content_type: str
    size: int
    filename: Optional[str] = None


class RequestValidator:
    """
    Rejects non-conforming requests before any decoding happens.

    Checks run in a fixed order and the first failure wins:
    method, presence of a file field, size, declared content type.
    Rejections are expected client outcomes and are not logged as errors.
    """

    def __init__(self, limits: UploadLimits):
        self.limits = limits

    def check_method(self, method: str) -> Result[str]:
        if method.upper() != "POST":
            return Result.method_not_allowed(
                self.limits.method_rejection_message,
                status_code=self.limits.method_rejection_status
            )
        return Result.ok(method.upper())

    async def check_upload(self, field: Any) -> Result[UploadedFile]:
        """
        Validate the value of the ``file`` form field and buffer its bytes.

        Args:
            field: Whatever the multipart form holds under ``file``; a plain
                text field or a missing field is rejected

        Returns:
            Result[UploadedFile]: The buffered upload, or a 400/413 failure
        """
        if not isinstance(field, UploadFile):
            logger.info("Rejected upload without a file part", extra={"field_type": type(field).__name__})
            return Result.invalid_input(self.limits.missing_file_message)

        # Skip buffering when the transport already knows the part is too big
        if field.size is not None and field.size > self.limits.max_file_size:
            return self._too_large(field.size)

        content = await field.read()
        if len(content) > self.limits.max_file_size:
            return self._too_large(len(content))

        content_type = field.content_type or ""
        if content_type not in self.limits.accepted_mime_types:
            logger.info("Rejected upload with unsupported type", extra={"content_type": content_type})
            return Result.invalid_input(self.rejection_message_for_type())

        return Result.ok(UploadedFile(
            content=content,
            content_type=content_type,
            size=len(content),
            filename=field.filename
        ))

    def rejection_message_for_type(self) -> str:
        labels = " or ".join(self.limits.accepted_labels)
        return f"Invalid file type. Please upload an Excel file ({labels})"

    def _too_large(self, size: int) -> Result[UploadedFile]:
        logger.info("Rejected oversized upload", extra={"size": size, "limit": self.limits.max_file_size})
        return Result.payload_too_large(f"File exceeds {self.limits.max_file_size_mb}MB limit")
