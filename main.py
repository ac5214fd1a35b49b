"""
Excel to JSON conversion service.

Accepts a multipart POST with a ``file`` part holding an XLSX or XLS
workbook and answers with the first sheet as JSON.

Key modules:
- main.py: FastAPI application, logging setup and response assembly
- request_validator.py: Method, presence, size and type checks
- spreadsheet_decoder.py: Workbook bytes to a grid of cells
- sheet_projector.py: Grid to rows-as-arrays or rows-as-objects payload
- sheet_pipeline.py: Decode and projection with timing and error capture
- utils/result.py: Result pattern implementation for error handling
"""
from fastapi import FastAPI, Request, status
import os
import logging
from datetime import datetime
from typing import Optional
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.concurrency import run_in_threadpool
from fastapi.exception_handlers import http_exception_handler
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from config import Settings, get_settings
from request_validator import RequestValidator
from sheet_pipeline import SheetConverter
from utils.result import Result

PROCESSING_ERROR_MESSAGE = "Error processing Excel file"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

settings = get_settings()

# Create logs directory if it doesn't exist
log_dir = settings.log_dir or os.path.join(os.path.dirname(os.path.abspath(__file__)), "logs")
os.makedirs(log_dir, exist_ok=True)

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format=LOG_FORMAT
)
logger = logging.getLogger(__name__)

# Add file handler to write logs to file
log_file_path = os.path.join(log_dir, f"app_{datetime.now().strftime('%Y%m%d')}.log")
file_handler = logging.FileHandler(log_file_path)
file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
logging.getLogger().addHandler(file_handler)


def failure_response(result: Result) -> Response:
    """
    Turn a failed Result into the plain-text response sent to the client.

    Server errors always use the fixed processing message so that the
    underlying cause never reaches the caller.
    """
    if result.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        return PlainTextResponse(PROCESSING_ERROR_MESSAGE, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return PlainTextResponse(result.error or "", status_code=result.status_code.value)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Service settings, read from the environment when omitted

    Returns:
        FastAPI: Application exposing the conversion endpoint at ``/``
    """
    settings = settings or get_settings()
    validator = RequestValidator(settings.upload_limits())
    converter = SheetConverter(settings.projection_mode)

    app = FastAPI(
        title="Excel to JSON API",
        description="API for converting the first sheet of an Excel upload to JSON",
        version="2.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def method_rejection_handler(request: Request, exc: StarletteHTTPException):
        """
        Answer unrouted methods with the configured method rejection.

        Any method other than POST on ``/`` (including HEAD and OPTIONS)
        reaches this handler as a 405 from the router.
        """
        if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
            method_result = validator.check_method(request.method)
            if method_result.is_failure():
                return failure_response(method_result)
        return await http_exception_handler(request, exc)

    @app.post("/", tags=["Excel Processing"])
    async def convert_excel(request: Request):
        """
        Convert an uploaded Excel workbook to JSON.

        The request must be a multipart POST with the workbook in a field
        named ``file``. Only the first sheet is returned, either as an array
        of row arrays or as header-keyed row objects depending on the
        configured projection mode.
        """
        try:
            form = await request.form()
        except (MultiPartException, StarletteHTTPException) as e:
            logger.info(f"Could not parse multipart body: {e}")
            return failure_response(Result.invalid_input(validator.limits.missing_file_message))

        upload_result = await validator.check_upload(form.get("file"))
        if upload_result.is_failure():
            return failure_response(upload_result)

        conversion = await run_in_threadpool(converter.convert, upload_result.data)
        if conversion.is_failure():
            return failure_response(conversion)

        outcome = conversion.data
        return JSONResponse(
            content=outcome.payload,
            headers={
                "X-Processing-Time": f"{outcome.duration_ms:.2f}ms",
                "X-File-Type": outcome.file_type,
            }
        )

    return app


app = create_app(settings)


# Run the application if executed directly
if __name__ == "__main__":
    import uvicorn
    logger.info("Starting Excel to JSON API in development mode.")
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
