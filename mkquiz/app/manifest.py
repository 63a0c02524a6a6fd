"""Structural operations on the quiz manifest.

The manifest is a one-element list wrapping ``{"Year": {...}}``::

    [{"Year": {"1st": {"Algorithms": {"Midterm": [record, ...]}}}}]

Functions here take the document as an argument and mutate it in place; none
of them keep it in module state.
"""
import json
import logging
from datetime import datetime
from pathlib import Path

from .errors import FileSystemError, JsonError, ValidationError
from .paths import normalize_path
from .validation import read_json_file

logger = logging.getLogger(__name__)


def empty_manifest() -> list:
    return [{"Year": {}}]


def load_manifest(path) -> list:
    try:
        data = read_json_file(path)
    except ValidationError as exc:
        raise JsonError(f"Failed to load JSON file: {exc}", str(path)) from exc
    if not isinstance(data, list) or not data:
        raise JsonError("All quizzes JSON must be a non-empty array", str(path))
    root = data[0]
    if not isinstance(root, dict) or not isinstance(root.get("Year"), dict):
        raise JsonError("All quizzes JSON must start with an object holding a 'Year' mapping", str(path))
    return data


def save_manifest(path, doc: list) -> None:
    target = Path(path)
    tmp_path = target.with_suffix(target.suffix + ".tmp")
    try:
        tmp_path.write_text(json.dumps(doc, indent=4, ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(target)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise FileSystemError(f"Failed to save JSON file: {exc}", str(path)) from exc
    logger.debug("Manifest saved to %s", target)


def backup_manifest(path, now: datetime | None = None) -> Path:
    now = now or datetime.now()
    source = Path(path)
    backup = source.parent / f"backup_nav_H{now:%H}_m{now:%M}_D{now:%d}_M{now:%m}.json"
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
        backup.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    except json.JSONDecodeError as exc:
        raise JsonError(f"Cannot back up invalid JSON: {exc}", str(path)) from exc
    except OSError as exc:
        raise FileSystemError(f"Failed to write backup: {exc}", str(backup)) from exc
    logger.info("Manifest backed up to %s", backup)
    return backup


def _years(doc: list) -> dict:
    return doc[0]["Year"]


def make_record(quiz_type: str, path: str | None, published: bool, json_path: str | None) -> dict:
    return {"type": quiz_type, "path": path, "published": bool(published), "JSON": json_path}


def ensure_structure(doc: list, year: str, subject: str, quiz_for: str) -> list:
    years = _years(doc)
    subjects = years.setdefault(year, {})
    exams = subjects.setdefault(subject, {})
    return exams.setdefault(quiz_for, [])


def add_record(doc: list, year: str, subject: str, quiz_for: str, record: dict) -> dict:
    ensure_structure(doc, year, subject, quiz_for).append(record)
    logger.info("Quiz added to manifest: %s", selection_label(subject, quiz_for, record.get("type")))
    return record


def _match_index(records: list, quiz_type: str, path: str | None) -> int:
    if path:
        wanted = normalize_path(path)
        for index, record in enumerate(records):
            stored = record.get("path")
            if record.get("type") == quiz_type and stored and normalize_path(stored) == wanted:
                return index
    for index, record in enumerate(records):
        if record.get("type") == quiz_type:
            return index
    return -1


def pop_record(
    doc: list,
    year: str,
    subject: str,
    quiz_for: str,
    quiz_type: str,
    path: str | None = None,
) -> dict | None:
    """Remove one record, prune the branches it leaves empty and return it.

    With ``path`` the record of that type stored at that path is removed;
    otherwise (or when no stored path matches) the first record of the type
    wins. Year keys are kept even when they end up empty.
    """
    subjects = _years(doc).get(year) or {}
    records = (subjects.get(subject) or {}).get(quiz_for)
    if not records:
        logger.warning("Quiz not found in manifest: %s %s", year, selection_label(subject, quiz_for, quiz_type))
        return None

    index = _match_index(records, quiz_type, path)
    if index == -1:
        logger.warning("Quiz type not found: %s %s", year, selection_label(subject, quiz_for, quiz_type))
        return None

    record = records.pop(index)
    logger.info("Quiz removed from manifest: %s %s", year, selection_label(subject, quiz_for, quiz_type))

    if not records:
        del subjects[subject][quiz_for]
    if not subjects[subject]:
        del subjects[subject]
    return record


def remove_record(
    doc: list,
    year: str,
    subject: str,
    quiz_for: str,
    quiz_type: str,
    path: str | None = None,
) -> bool:
    return pop_record(doc, year, subject, quiz_for, quiz_type, path) is not None


def list_for_year(doc: list, year: str) -> dict | None:
    return _years(doc).get(year)


def iter_records(doc: list):
    for entry in doc:
        for year, subjects in (entry.get("Year") or {}).items():
            for subject, exams in subjects.items():
                for quiz_for, records in exams.items():
                    for record in records:
                        yield year, subject, quiz_for, record


def count_by_display_name(names: list, target: str) -> int:
    return sum(1 for name in names if name == target)


def display_name(subject: str, quiz_type: str) -> str:
    return f"{subject} {quiz_type}"


def existing_display_names(doc: list, year: str, subject: str, quiz_for: str) -> list:
    records = ((list_for_year(doc, year) or {}).get(subject) or {}).get(quiz_for) or []
    return [display_name(subject, record.get("type")) for record in records]


def next_display_name(names: list, subject: str, quiz_type: str) -> str:
    base = display_name(subject, quiz_type)
    count = count_by_display_name(names, base)
    return f"{base}{count + 1}" if count else base


def stored_paths(doc: list, exclude: dict | None = None) -> set:
    """Normalized folder paths held by records, leaving out ``exclude``."""
    return {
        normalize_path(record["path"])
        for _, _, _, record in iter_records(doc)
        if record is not exclude and record.get("path")
    }


def selection_label(subject: str, quiz_for: str, quiz_type) -> str:
    return f"{subject} - {quiz_for} - {quiz_type}"


def fix_paths(doc: list) -> int:
    fixed = 0
    for _, _, _, record in iter_records(doc):
        for key in ("path", "JSON"):
            value = record.get(key)
            if not value:
                continue
            normalized = normalize_path(value)
            if normalized != value:
                record[key] = normalized
                fixed += 1
    return fixed
