import logging
import time
import uuid
from typing import Any, Optional

from pydantic import BaseModel

from config import ProjectionMode
from request_validator import UploadedFile
from sheet_projector import ProjectedResult, Sheet, SheetProjector
from spreadsheet_decoder import SpreadsheetDecoder
from utils.result import Result

logger = logging.getLogger(__name__)


class LogContext:
    """Context manager for tracking and logging operation metrics"""
    def __init__(self, operation_name: str, **kwargs):
        self.operation_name = operation_name
        self.start_time = None
        self.duration = 0.0
        self.request_id = kwargs.pop('request_id', str(uuid.uuid4())[:8])
        self.extra = kwargs

    def __enter__(self):
        self.start_time = time.time()
        logger.info(f"Starting {self.operation_name}", extra={"request_id": self.request_id, **self.extra})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.time() - self.start_time
        if exc_type:
            logger.error(
                f"Failed {self.operation_name} in {self.duration:.2f}s: {str(exc_val)}",
                extra={"request_id": self.request_id, "duration": self.duration, **self.extra},
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            logger.info(
                f"Completed {self.operation_name} in {self.duration:.2f}s",
                extra={"request_id": self.request_id, "duration": self.duration, **self.extra}
            )


class ConversionOutcome(BaseModel):
    """
    Successful conversion of one upload.

    Attributes:
        payload: Projected sheet, serialised as the response body
        file_type: Content type the client declared for the upload
        duration_ms: Time spent decoding and projecting, for the diagnostics header
    """
    payload: Any
    file_type: str
    duration_ms: float


class SheetConverter:
    """
    Decodes an upload and projects its first sheet.

    Every failure, expected or not, comes back as a Result so the request
    handler can map it to the fixed 500 response.
    """

    def __init__(self, mode: ProjectionMode = ProjectionMode.ROWS_AS_ARRAYS,
                 decoder: Optional[SpreadsheetDecoder] = None):
        self.projector = SheetProjector(mode)
        self.decoder = decoder or SpreadsheetDecoder()

    def convert(self, upload: UploadedFile) -> Result[ConversionOutcome]:
        request_id = str(uuid.uuid4())[:8]
        log_context = {
            "request_id": request_id,
            "upload_name": upload.filename,
            "content_type": upload.content_type,
            "size": upload.size,
            "mode": self.projector.mode.value,
        }
        logger.info("Converting Excel upload", extra=log_context)

        try:
            with LogContext("decoding", **log_context) as decoding:
                decoded = self.decoder.decode(upload.content, upload.content_type)

            decoded.on_failure(lambda error: logger.error(f"Decoding failed: {error}", extra=log_context))
            return decoded.and_then(
                lambda sheet: self._project(sheet, upload, decoding.duration, log_context)
            )

        except Exception as e:
            logger.exception("Unexpected error during conversion", extra={**log_context, "error": str(e)})
            return Result.server_error(f"Processing error: {str(e)}")

    def _project(self, sheet: Sheet, upload: UploadedFile, decode_seconds: float,
                 log_context: dict) -> Result[ConversionOutcome]:
        with LogContext("projection", **log_context) as projection:
            payload: ProjectedResult = self.projector.project(sheet)

        return Result.ok(ConversionOutcome(
            payload=payload,
            file_type=upload.content_type,
            duration_ms=(decode_seconds + projection.duration) * 1000
        ))
