"""Shared error models and exception types for the curation pipeline"""

from enum import Enum
from typing import Optional, Dict, Any

from botocore.exceptions import BotoCoreError, ClientError
from opensearchpy.exceptions import ConnectionError as OpenSearchConnectionError
from opensearchpy.exceptions import TransportError
from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Standard error codes reported at the pipeline boundary"""

    # Client errors (4xx)
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION_ERROR = "validation_error"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"

    # Server errors (5xx)
    INTERNAL_ERROR = "internal_error"
    SERVICE_UNAVAILABLE = "service_unavailable"
    TIMEOUT = "timeout"

    # Upstream-specific errors
    MODEL_ERROR = "model_error"
    INDEX_ERROR = "index_error"
    STORE_ERROR = "store_error"
    OCR_ERROR = "ocr_error"


class ErrorDetail(BaseModel):
    """Structured error detail for boundary responses"""

    code: ErrorCode
    message: str
    detail: Optional[str] = None
    field: Optional[str] = None  # For validation errors
    metadata: Optional[Dict[str, Any]] = None

    class Config:
        use_enum_values = True


# AWS error codes that are worth retrying
TRANSIENT_AWS_ERROR_CODES = {
    "ThrottlingException",
    "Throttling",
    "ProvisionedThroughputExceededException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
    "ServiceUnavailableException",
    "ServiceUnavailable",
    "InternalServerError",
    "InternalServerException",
    "ModelTimeoutException",
    "ModelNotReadyException",
}


class PipelineError(Exception):
    """Base class for all errors raised by the pipeline."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_error_detail(self) -> ErrorDetail:
        return ErrorDetail(code=self.code, message=self.message, detail=self.detail)


class MalformedInputError(PipelineError):
    """Input is missing or not the expected shape. Never retried."""

    code = ErrorCode.BAD_REQUEST
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_error_detail(self) -> ErrorDetail:
        return ErrorDetail(code=self.code, message=self.message, field=self.field)


class UpstreamServiceError(PipelineError):
    """A managed service (embedding model, OCR, store, index) failed.

    ``transient`` marks failures the caller may retry with backoff
    (throttling, timeouts, 5xx). Permanent failures (4xx, malformed model
    output) should be surfaced immediately.
    """

    code = ErrorCode.SERVICE_UNAVAILABLE
    status_code = 500

    def __init__(
        self,
        service: str,
        message: str,
        transient: bool = False,
        detail: Optional[str] = None,
        code: Optional[ErrorCode] = None,
    ):
        super().__init__(f"[{service}] {message}", detail=detail)
        self.service = service
        self.transient = transient
        if code is not None:
            self.code = code
        if transient:
            self.status_code = 503

    def to_error_detail(self) -> ErrorDetail:
        return ErrorDetail(
            code=self.code,
            message=self.message,
            detail=self.detail,
            metadata={"service": self.service, "transient": self.transient},
        )

    @classmethod
    def from_exception(
        cls,
        service: str,
        error: Exception,
        code: Optional[ErrorCode] = None,
    ) -> "UpstreamServiceError":
        """
        Classify a client library exception.

        Args:
            service: Logical service name ("bedrock", "dynamodb", "opensearch", ...)
            error: The exception raised by boto3/botocore or opensearch-py
            code: Optional error code override

        Returns:
            UpstreamServiceError with ``transient`` set from the error class
        """
        return cls(
            service=service,
            message=str(error),
            transient=is_transient_error(error),
            detail=type(error).__name__,
            code=code,
        )


class OcrJobFailedError(UpstreamServiceError):
    """Textract reported the job as FAILED."""

    code = ErrorCode.OCR_ERROR

    def __init__(self, job_id: str, status_message: Optional[str] = None):
        super().__init__(
            service="textract",
            message=f"OCR job {job_id} failed: {status_message or 'no status message'}",
            transient=False,
        )
        self.job_id = job_id


class OcrTimeoutError(UpstreamServiceError):
    """The OCR job did not finish within the bounded number of polls."""

    code = ErrorCode.TIMEOUT
    status_code = 504

    def __init__(self, job_id: str, attempts: int):
        super().__init__(
            service="textract",
            message=f"OCR job {job_id} timed out after {attempts} polls",
            transient=True,
        )
        self.status_code = 504
        self.job_id = job_id
        self.attempts = attempts


def is_transient_error(error: Exception) -> bool:
    """Decide whether an upstream exception is worth retrying."""
    if isinstance(error, UpstreamServiceError):
        return error.transient

    if isinstance(error, ClientError):
        err = error.response.get("Error", {})
        if err.get("Code") in TRANSIENT_AWS_ERROR_CODES:
            return True
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        return isinstance(status, int) and status >= 500

    if isinstance(error, BotoCoreError):
        # Connection resets, read timeouts, endpoint errors
        return True

    if isinstance(error, OpenSearchConnectionError):
        return True

    if isinstance(error, TransportError):
        status = error.status_code
        return status == 429 or (isinstance(status, int) and status >= 500)

    return isinstance(error, TimeoutError)


def create_error_response(
    code: ErrorCode,
    message: str,
    detail: Optional[str] = None,
    status_code: int = 500,
    metadata: Optional[Dict[str, Any]] = None
) -> dict:
    """
    Create a standardized error response dictionary.

    Args:
        code: Error code from ErrorCode enum
        message: User-friendly error message
        detail: Optional technical detail for debugging
        status_code: HTTP status code
        metadata: Optional additional error context

    Returns:
        Dictionary suitable for an HTTP-style error body
    """
    error = ErrorDetail(
        code=code,
        message=message,
        detail=detail,
        metadata=metadata
    )

    return {
        "error": error.model_dump(exclude_none=True),
        "status_code": status_code
    }


def error_response_for(error: Exception) -> dict:
    """Map any exception raised by the pipeline to a boundary error response."""
    if isinstance(error, PipelineError):
        detail = error.to_error_detail()
        return {
            "error": detail.model_dump(exclude_none=True),
            "status_code": error.status_code,
        }
    return create_error_response(
        ErrorCode.INTERNAL_ERROR, "Unexpected pipeline failure", detail=str(error)
    )


def http_status_to_error_code(status_code: int) -> ErrorCode:
    """Map HTTP status codes to ErrorCode enum values"""

    mapping = {
        400: ErrorCode.BAD_REQUEST,
        404: ErrorCode.NOT_FOUND,
        409: ErrorCode.CONFLICT,
        422: ErrorCode.VALIDATION_ERROR,
        429: ErrorCode.RATE_LIMIT_EXCEEDED,
        500: ErrorCode.INTERNAL_ERROR,
        503: ErrorCode.SERVICE_UNAVAILABLE,
        504: ErrorCode.TIMEOUT,
    }

    return mapping.get(status_code, ErrorCode.INTERNAL_ERROR)
