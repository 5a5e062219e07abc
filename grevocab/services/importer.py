"""
Bulk JSON import: a JSON array of {"word": ..., "definition": ...} objects
"""
import json
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple, Union

SAMPLE_ENTRIES = [
    {"word": "Abate", "definition": "To reduce in intensity or amount; to lessen"},
    {"word": "Aberrant", "definition": "Departing from an accepted standard; deviant"},
    {"word": "Abscond", "definition": "To leave hurriedly and secretly, typically to avoid detection"},
    {"word": "Abstemious", "definition": "Restrained in eating or drinking; temperate"},
    {"word": "Admonish", "definition": "To warn or reprimand someone firmly"},
]


class ImportParseError(ValueError):
    """The upload is not a JSON array; nothing from it is imported."""


@dataclass
class ImportReport:
    valid: List[Tuple[str, str]] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)
    invalid_count: int = 0
    total: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "valid": len(self.valid),
            "duplicates": self.duplicates,
            "invalid": self.invalid_count,
        }


def is_valid_item(item) -> bool:
    return (
        isinstance(item, dict)
        and isinstance(item.get("word"), str)
        and isinstance(item.get("definition"), str)
        and bool(item["word"].strip())
        and bool(item["definition"].strip())
    )


def parse_import(raw: Union[str, bytes], existing_words: Iterable[str] = ()) -> ImportReport:
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ImportParseError("Invalid JSON file. Please check the format.") from e

    if not isinstance(data, list):
        raise ImportParseError("JSON must be an array of word objects.")

    seen = {w.strip().lower() for w in existing_words}
    report = ImportReport(total=len(data))
    for item in data:
        if not is_valid_item(item):
            report.invalid_count += 1
            continue
        word = item["word"].strip()
        definition = item["definition"].strip()
        key = word.lower()
        if key in seen:
            report.duplicates.append(word)
            continue
        seen.add(key)
        report.valid.append((word, definition))
    return report
