"""OCR of scanned dictionary pages via Textract"""

from .textract import (
    ExtractionResult,
    OcrJobState,
    TextractJobPoller,
    build_extraction_result
)

__all__ = [
    'ExtractionResult',
    'OcrJobState',
    'TextractJobPoller',
    'build_extraction_result'
]
