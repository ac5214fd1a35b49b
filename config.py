"""
Deploy-time configuration for the Excel to JSON service.

Upload limits are handed to the request validator as an immutable value,
so tests and alternative deployments can vary them without touching any
process-wide state. Settings are read from ``EXCEL_JSON_*`` environment
variables.
"""
from enum import Enum
from functools import lru_cache
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLS_MIME_TYPE = "application/vnd.ms-excel"

# Display labels used in the unsupported type message
MIME_TYPE_LABELS = {
    XLSX_MIME_TYPE: "XLSX",
    XLS_MIME_TYPE: "XLS",
}

DEFAULT_MAX_FILE_SIZE = 5 * 1024 * 1024


class ProjectionMode(str, Enum):
    """Output shape of the converted sheet."""
    ROWS_AS_ARRAYS = "rows-as-arrays"
    ROWS_AS_OBJECTS = "rows-as-objects"


class UploadLimits(BaseModel):
    """
    Immutable limits applied to every upload.

    Attributes:
        max_file_size: Largest accepted upload in bytes
        accepted_mime_types: Declared content types that may be decoded
        method_rejection_status: Status returned for non-POST requests
        method_rejection_message: Body returned for non-POST requests
        missing_file_message: Body returned when the ``file`` field is absent or not a file
    """
    model_config = ConfigDict(frozen=True)

    max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, gt=0)
    accepted_mime_types: Tuple[str, ...] = (XLSX_MIME_TYPE, XLS_MIME_TYPE)
    method_rejection_status: int = 405
    method_rejection_message: str = "Method Not Allowed"
    missing_file_message: str = "Invalid file upload"

    @property
    def max_file_size_mb(self) -> str:
        """Size limit in MiB, without a trailing ``.0`` for whole numbers."""
        return f"{self.max_file_size / 1024 / 1024:g}"

    @property
    def accepted_labels(self) -> Tuple[str, ...]:
        return tuple(MIME_TYPE_LABELS.get(mime, mime) for mime in self.accepted_mime_types)


class Settings(BaseSettings):
    """Settings for the HTTP service, overridable through the environment."""
    model_config = SettingsConfigDict(env_prefix="EXCEL_JSON_", frozen=True)

    max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, description="Maximum upload size in bytes")
    accepted_mime_types: Tuple[str, ...] = Field(
        default=(XLSX_MIME_TYPE, XLS_MIME_TYPE),
        description="Accepted declared content types"
    )
    method_rejection_status: int = Field(default=405, description="Status code for non-POST requests")
    method_rejection_message: str = Field(default="Method Not Allowed")
    missing_file_message: str = Field(default="Invalid file upload")
    projection_mode: ProjectionMode = Field(default=ProjectionMode.ROWS_AS_ARRAYS)

    log_level: str = Field(default="INFO", description="Logging level")
    log_dir: Optional[str] = Field(default=None, description="Directory for log files, defaults to ./logs beside main.py")

    def upload_limits(self) -> UploadLimits:
        return UploadLimits(
            max_file_size=self.max_file_size,
            accepted_mime_types=self.accepted_mime_types,
            method_rejection_status=self.method_rejection_status,
            method_rejection_message=self.method_rejection_message,
            missing_file_message=self.missing_file_message,
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
