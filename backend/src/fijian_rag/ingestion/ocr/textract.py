"""Textract text detection for scanned dictionary pages

Asynchronous Textract jobs are started against an S3 object and polled on a
fixed interval until they succeed, fail, or run out of attempts.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from fijian_rag.config import (
    DEFAULT_OCR_MAX_ATTEMPTS,
    DEFAULT_OCR_POLL_INTERVAL_SECONDS,
    get_settings,
)
from fijian_rag.errors import (
    ErrorCode,
    MalformedInputError,
    OcrJobFailedError,
    OcrTimeoutError,
    UpstreamServiceError,
)

logger = logging.getLogger(__name__)

LOW_CONFIDENCE_THRESHOLD = 80.0


class OcrJobState(str, Enum):
    STARTED = "STARTED"
    POLLING = "POLLING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"


@dataclass
class ExtractionResult:
    """Text recovered from one OCR job."""

    text: str
    page_count: int
    average_confidence: float
    job_id: str
    low_confidence_lines: List[str] = field(default_factory=list)


def build_extraction_result(job_id: str, blocks: List[Dict[str, Any]], pages: Optional[int] = None) -> ExtractionResult:
    """
    Assemble text from Textract ``LINE`` blocks.

    A ``--- PAGE N ---`` marker opens each page, the first included, so the
    segmenter and parser can track page references.
    """
    lines: List[str] = []
    low_confidence: List[str] = []
    confidences: List[float] = []
    seen_pages = set()
    current_page = None

    for block in blocks:
        if "Confidence" in block:
            confidences.append(float(block["Confidence"]))
        if "Page" in block:
            seen_pages.add(block["Page"])
        if block.get("BlockType") != "LINE":
            continue

        page = block.get("Page")
        if page is not None and page != current_page:
            lines.append(f"--- PAGE {page} ---")
            current_page = page

        text = block.get("Text", "")
        lines.append(text)
        if float(block.get("Confidence", 100.0)) < LOW_CONFIDENCE_THRESHOLD:
            low_confidence.append(text)

    if low_confidence:
        logger.warning(f"OCR job {job_id}: {len(low_confidence)} lines below {LOW_CONFIDENCE_THRESHOLD} confidence")

    average = round(sum(confidences) / len(confidences), 2) if confidences else 0.0
    return ExtractionResult(
        text="\n".join(lines),
        page_count=pages if pages is not None else len(seen_pages),
        average_confidence=average,
        job_id=job_id,
        low_confidence_lines=low_confidence,
    )


class TextractJobPoller:
    """
    Bounded polling state machine for one Textract text-detection job.

    STARTED -> POLLING -> SUCCEEDED | FAILED | TIMED_OUT. The only retry loop
    in the pipeline; everything else leaves retries to the caller.
    """

    def __init__(
        self,
        client: Any = None,
        poll_interval: float = DEFAULT_OCR_POLL_INTERVAL_SECONDS,
        max_attempts: int = DEFAULT_OCR_MAX_ATTEMPTS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if client is None:
            settings = get_settings()
            client = boto3.client("textract", config=settings.boto_config())
        self._client = client
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._sleep = sleep
        self.state: Optional[OcrJobState] = None
        self.attempts = 0

    async def start(self, bucket: str, key: str) -> str:
        """
        Start a text-detection job for an S3 object.

        Returns:
            The Textract job id
        """
        if not bucket or not key:
            raise MalformedInputError("S3 bucket and key are required for OCR", field="key")

        try:
            response = await asyncio.to_thread(
                self._client.start_document_text_detection,
                DocumentLocation={"S3Object": {"Bucket": bucket, "Name": key}},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error starting OCR job for s3://{bucket}/{key}: {e}")
            raise UpstreamServiceError.from_exception("textract", e, code=ErrorCode.OCR_ERROR) from e

        job_id = response.get("JobId")
        if not job_id:
            raise UpstreamServiceError("textract", f"No job id returned for s3://{bucket}/{key}", code=ErrorCode.OCR_ERROR)

        self.state = OcrJobState.STARTED
        self.attempts = 0
        logger.info(f"Started OCR job {job_id} for s3://{bucket}/{key}")
        return job_id

    async def wait(self, job_id: str) -> ExtractionResult:
        """
        Poll until the job leaves IN_PROGRESS.

        Raises:
            OcrJobFailedError: Textract reported FAILED
            OcrTimeoutError: Still running after ``max_attempts`` polls
        """
        self.state = OcrJobState.POLLING
        while self.attempts < self.max_attempts:
            self.attempts += 1
            response = await self._get(job_id)
            status = response.get("JobStatus")

            if status == "SUCCEEDED" or status == "PARTIAL_SUCCESS":
                blocks = list(response.get("Blocks", []))
                pages = response.get("DocumentMetadata", {}).get("Pages")
                next_token = response.get("NextToken")
                while next_token:
                    page = await self._get(job_id, next_token)
                    blocks.extend(page.get("Blocks", []))
                    next_token = page.get("NextToken")

                self.state = OcrJobState.SUCCEEDED
                logger.info(f"OCR job {job_id} succeeded after {self.attempts} polls ({len(blocks)} blocks)")
                return build_extraction_result(job_id, blocks, pages)

            if status == "FAILED":
                self.state = OcrJobState.FAILED
                raise OcrJobFailedError(job_id, response.get("StatusMessage"))

            await self._sleep(self.poll_interval)

        self.state = OcrJobState.TIMED_OUT
        logger.error(f"OCR job {job_id} timed out after {self.attempts} polls")
        raise OcrTimeoutError(job_id, self.attempts)

    async def run(self, bucket: str, key: str) -> ExtractionResult:
        """Start a job and wait for its text."""
        job_id = await self.start(bucket, key)
        return await self.wait(job_id)

    async def _get(self, job_id: str, next_token: Optional[str] = None) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"JobId": job_id}
        if next_token:
            kwargs["NextToken"] = next_token
        try:
            return await asyncio.to_thread(self._client.get_document_text_detection, **kwargs)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error polling OCR job {job_id}: {e}")
            raise UpstreamServiceError.from_exception("textract", e, code=ErrorCode.OCR_ERROR) from e
