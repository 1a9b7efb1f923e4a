"""Segmentation of extracted text into line-based blocks"""

from .segmenter import (
    TextBlockSegmenter,
    segment
)

__all__ = [
    'TextBlockSegmenter',
    'segment'
]
