"""Line-based segmentation of extracted dictionary text

Splits raw PDF/OCR text into logical blocks at section markers, page numbers
and document headers so the parser sees one page region at a time.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from fijian_rag.errors import MalformedInputError
from fijian_rag.ingestion.parsing.cleaning import (
    is_header_or_page_number,
    is_section_marker,
)
from fijian_rag.ingestion.parsing.patterns import DEFAULT_MATCHERS, EntryMatcher
from fijian_rag.models import TextBlock

logger = logging.getLogger(__name__)


class TextBlockSegmenter:
    """
    Segment raw text into TextBlocks.

    Header, page-number and section-marker lines become their own block
    flagged ``is_header``. With ``split_on_entries`` every line that looks
    like a new dictionary entry also opens a new block.
    """

    def __init__(
        self,
        split_on_entries: bool = False,
        entry_matchers: Optional[Sequence[EntryMatcher]] = None,
    ):
        self.split_on_entries = split_on_entries
        self.entry_matchers = list(entry_matchers) if entry_matchers is not None else list(DEFAULT_MATCHERS)

    def is_boundary(self, line: str) -> bool:
        return self._is_header(line) or self._is_entry_start(line)

    def segment(self, raw_text: str) -> List[TextBlock]:
        """
        Split text into blocks.

        Args:
            raw_text: Text returned by PDF extraction or OCR

        Returns:
            List of non-empty TextBlocks in document order

        Raises:
            MalformedInputError: If raw_text is not a string
        """
        if not isinstance(raw_text, str):
            raise MalformedInputError(
                f"Expected text to segment, got {type(raw_text).__name__}",
                field="raw_text",
            )

        lines: List[Tuple[int, str]] = [
            (number, line.strip())
            for number, line in enumerate(raw_text.split("\n"), start=1)
            if line.strip()
        ]

        blocks: List[TextBlock] = []
        current: List[Tuple[int, str]] = []

        for number, line in lines:
            if self._is_header(line):
                self._flush(current, blocks)
                current = []
                blocks.append(TextBlock(raw_text=line, line_range=(number, number), is_header=True))
                continue

            if current and self._is_entry_start(line):
                self._flush(current, blocks)
                current = []
            current.append((number, line))

        self._flush(current, blocks)

        logger.debug(f"Segmented {len(lines)} lines into {len(blocks)} blocks")
        return blocks

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _is_header(self, line: str) -> bool:
        return is_header_or_page_number(line) or is_section_marker(line)

    def _is_entry_start(self, line: str) -> bool:
        if not self.split_on_entries:
            return False
        return any(m.match(line) is not None for m in self.entry_matchers)

    @staticmethod
    def _flush(current: List[Tuple[int, str]], blocks: List[TextBlock]) -> None:
        text = "\n".join(line for _, line in current).strip()
        if not text:
            return
        blocks.append(TextBlock(raw_text=text, line_range=(current[0][0], current[-1][0])))


def segment(raw_text: str) -> List[TextBlock]:
    """Segment with the default boundaries (headers, page numbers, section markers)."""
    return TextBlockSegmenter().segment(raw_text)
