"""JSONL/CSV export of parsed entries for review and downstream loading."""

import csv
import io
import json
import re
from typing import Any, Dict, List, Sequence

from fijian_rag.models import DictionaryEntry, ParsingStats

CSV_COLUMNS = [
    "id",
    "headword",
    "definition",
    "part_of_speech",
    "examples",
    "pronunciation",
    "confidence_score",
    "entry_number",
    "etymology",
    "cross_references",
    "original_text",
    "page_or_block_ref",
    "line_numbers",
    "parsing_notes",
]

_EXAMPLE_MARKER = re.compile(r"^(e\.g\.?|ex\.?|example:?)\s*", re.IGNORECASE)


def entry_id(entry: DictionaryEntry, index: int) -> str:
    """``entry_{n}_{headword}[_{number}]`` with non-alphanumerics folded to ``_``."""
    slug = re.sub(r"[^a-z0-9]", "_", entry.normalized_headword)
    suffix = f"_{entry.entry_number}" if entry.entry_number else ""
    return f"entry_{index + 1}_{slug}{suffix}"


def clean_definition(definition: str) -> str:
    text = re.sub(r"\s+", " ", definition)
    text = re.sub(r"^[;,.\s]+", "", text)
    text = re.sub(r"[;,.\s]+$", "", text)
    return text.strip()


def normalize_entry(entry: DictionaryEntry, index: int) -> Dict[str, Any]:
    """Flatten an entry into the export record shape."""
    examples = [_EXAMPLE_MARKER.sub("", e.strip()).strip() for e in entry.examples if e.strip()]
    meta = entry.source_metadata
    return {
        "id": entry_id(entry, index),
        "headword": entry.headword.strip(),
        "definition": clean_definition(entry.definition),
        "part_of_speech": entry.part_of_speech,
        "examples": examples,
        "pronunciation": entry.pronunciation,
        "confidence_score": round(entry.confidence, 2),
        "entry_number": entry.entry_number,
        "etymology": entry.etymology,
        "cross_references": list(entry.cross_references),
        "source_metadata": {
            "original_text": meta.original_text,
            "page_or_block_ref": meta.page_or_block_ref,
            "line_numbers": list(meta.line_numbers),
            "parsing_notes": list(meta.parsing_notes),
        },
    }


def to_jsonl(entries: Sequence[DictionaryEntry]) -> str:
    """One JSON object per line."""
    return "\n".join(
        json.dumps(normalize_entry(entry, i), ensure_ascii=False) for i, entry in enumerate(entries)
    )


def to_csv(entries: Sequence[DictionaryEntry]) -> str:
    """CSV with a header row; list fields are joined with ``"; "``."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for i, entry in enumerate(entries):
        record = normalize_entry(entry, i)
        meta = record.pop("source_metadata")
        record["examples"] = "; ".join(record["examples"])
        record["cross_references"] = "; ".join(record["cross_references"])
        record["original_text"] = meta["original_text"]
        record["page_or_block_ref"] = meta["page_or_block_ref"]
        record["line_numbers"] = "; ".join(str(n) for n in meta["line_numbers"])
        record["parsing_notes"] = "; ".join(meta["parsing_notes"])
        writer.writerow({k: "" if v is None else v for k, v in record.items()})
    return buffer.getvalue()


def quality_summary(entries: Sequence[DictionaryEntry], stats: ParsingStats) -> Dict[str, Any]:
    """Quality metrics and review recommendations for one parse run."""
    count = len(entries)
    average = sum(e.confidence for e in entries) / count if count else 0.0
    with_examples = sum(1 for e in entries if e.examples)
    with_pronunciation = sum(1 for e in entries if e.pronunciation)
    with_pos = sum(1 for e in entries if e.part_of_speech)
    attempted = stats.entries_found + stats.malformed_entries

    recommendations: List[str] = []
    if count and average < 70:
        recommendations.append("Consider manual review due to low average confidence score")
    if stats.malformed_entries > stats.entries_found * 0.1:
        recommendations.append("High number of malformed entries detected - consider preprocessing the source")
    if stats.low_confidence > count * 0.2:
        recommendations.append("Many low-confidence entries - check OCR quality")

    return {
        "entryCount": count,
        "averageConfidence": round(average, 2),
        "entriesWithExamples": with_examples,
        "entriesWithPronunciation": with_pronunciation,
        "entriesWithPartOfSpeech": with_pos,
        "completenessScore": round((with_examples + with_pronunciation + with_pos) / (count * 3) * 100) if count else 0,
        "errorRate": round(stats.malformed_entries / attempted * 100) if attempted else 0,
        "stats": stats.to_dict(),
        "recommendations": recommendations,
    }
