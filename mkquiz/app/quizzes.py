"""Quiz operations shared by the command line and the web API.

Each operation loads the manifest, applies its changes to the document and
the quiz folders, and writes the manifest back once; removal saves it before
deleting any folder. Nothing locks the manifest file; two concurrent runs
race and the last writer wins.
"""
import json
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable

from .config import QUESTION_TYPES, QUIZ_FOR, YEARS
from .errors import FileSystemError, MkquizError, QuizOperationError, ValidationError
from .folders import copy_question_file, ensure_folder, remove_folder, write_index
from .manifest import (
    add_record,
    backup_manifest,
    count_by_display_name,
    display_name,
    existing_display_names,
    fix_paths,
    iter_records,
    list_for_year,
    load_manifest,
    make_record,
    pop_record,
    save_manifest,
    selection_label,
    stored_paths,
)
from .metrics import record_quiz_operation
from .paths import build_folder_path, build_json_path, extract_quizzes_suffix
from .templates import compute_duration, render
from .validation import read_json_file, validate_choice, validate_not_empty, validate_question_file

logger = logging.getLogger(__name__)

SELECTION_FIELDS = ("year", "subject", "examType", "quizType")


def question_file_name(subject: str, question_type: str) -> str:
    return f"{subject}_{question_type}"


def template_vars(subject: str, quiz_for: str, questions_count: int, json_path: str | None) -> dict:
    return {
        "quizName": subject,
        "quizFor": quiz_for,
        "questionsCount": questions_count,
        "duration": compute_duration(questions_count),
        "jsonPath": json_path,
    }


def pick_display_name(
    project_root, names: list, taken: set, year: str, subject: str, quiz_for: str, quiz_type
) -> str:
    """Next free display name whose folder no other record already points at."""
    base = display_name(subject, quiz_type)
    count = count_by_display_name(names, base)
    while True:
        name = f"{base}{count + 1}" if count else base
        folder = extract_quizzes_suffix(build_folder_path(project_root, year, quiz_for, name))
        if folder not in taken:
            return name
        count += 1


def create_quiz(
    cfg: dict,
    year: str,
    subject: str,
    quiz_for: str,
    question_type: str,
    question_file,
    published: bool,
    confirm: Callable[[str], bool],
) -> dict:
    subject = validate_not_empty(subject, "quizName")
    validate_choice(year, YEARS, "year")
    validate_choice(quiz_for, QUIZ_FOR, "quizFor")
    validate_choice(question_type, QUESTION_TYPES, "questionType")

    questions = validate_question_file(question_file)
    if not questions:
        raise ValidationError("Quiz JSON contains no questions", "questions")

    manifest_path = cfg["allQuizzezJsonPath"]
    doc = load_manifest(manifest_path)
    names = existing_display_names(doc, year, subject, quiz_for)
    name = pick_display_name(cfg["projectPath"], names, stored_paths(doc), year, subject, quiz_for, question_type)

    folder = ensure_folder(cfg["projectPath"], year, quiz_for, name, confirm)
    if folder is None:
        record_quiz_operation("add", False)
        raise QuizOperationError(f"Quiz creation aborted: folder for {name} already exists")

    try:
        json_target = copy_question_file(folder, question_file, question_file_name(subject, question_type))
        json_path = extract_quizzes_suffix(json_target)
        html = render(cfg["templateFile"], template_vars(subject, quiz_for, len(questions), json_path))
        write_index(folder, html)

        record = make_record(question_type, extract_quizzes_suffix(folder), published, json_path)
        add_record(doc, year, subject, quiz_for, record)
        save_manifest(manifest_path, doc)
    except MkquizError:
        shutil.rmtree(folder, ignore_errors=True)
        record_quiz_operation("add", False)
        raise

    record_quiz_operation("add", True)
    logger.info("Quiz %s added with %d questions", name, len(questions))
    return {"quiz": record, "questionsCount": len(questions), "displayName": name}


def list_selections(doc: list, year: str) -> list:
    selections = []
    for subject, exams in (list_for_year(doc, year) or {}).items():
        for quiz_for, records in exams.items():
            for record in records:
                selections.append(
                    {
                        "year": year,
                        "subject": subject,
                        "examType": quiz_for,
                        "quizType": record.get("type"),
                        "path": record.get("path"),
                        "JSON": record.get("JSON"),
                        "label": selection_label(subject, quiz_for, record.get("type")),
                    }
                )
    return selections


def remove_quizzes(cfg: dict, selections: list) -> dict:
    if not isinstance(selections, list) or not selections:
        raise ValidationError("No quizzes specified for removal", "quizzes")
    for selection in selections:
        if not isinstance(selection, dict) or any(not selection.get(key) for key in SELECTION_FIELDS):
            raise ValidationError(
                f"Each quiz to remove needs {', '.join(SELECTION_FIELDS)}", "quizzes"
            )

    manifest_path = cfg["allQuizzezJsonPath"]
    doc = load_manifest(manifest_path)
    popped = []
    missing = []
    for selection in selections:
        record = pop_record(
            doc,
            selection["year"],
            selection["subject"],
            selection["examType"],
            selection["quizType"],
            selection.get("path"),
        )
        quiz = selection_label(selection["subject"], selection["examType"], selection["quizType"])
        label = f"{selection['year']} {quiz}"
        if record is None:
            missing.append(label)
            continue
        popped.append((label, record))

    # The manifest is written before any folder is touched.
    save_manifest(manifest_path, doc)

    failed = []
    for label, record in popped:
        if record.get("path"):
            try:
                remove_folder(cfg["projectPath"], record["path"])
            except MkquizError as exc:
                logger.error("Folder for %s not removed: %s", label, exc.message)
                failed.append({"quiz": label, "path": record["path"], "error": exc.message})
                continue
        logger.info("Removed %s", label)

    record_quiz_operation("remove", not missing and not failed)
    return {"removed": len(popped), "missing": missing, "failed": failed}


def _rebuild_one(cfg: dict, year: str, subject: str, quiz_for: str, record: dict, name: str) -> int:
    old_json = record.get("JSON")
    if not old_json:
        raise QuizOperationError("Quiz has no question file recorded")
    source = Path(cfg["projectPath"]) / old_json.replace("\\", "/").lstrip("/")
    questions = read_json_file(source)
    count = len(questions) if isinstance(questions, list) else 0

    folder = Path(build_folder_path(cfg["projectPath"], year, quiz_for, name))
    json_target = Path(build_json_path(folder, question_file_name(subject, record.get("type"))))
    json_path = extract_quizzes_suffix(json_target)
    html = render(cfg["templateFile"], template_vars(subject, quiz_for, count, json_path))
    try:
        if folder.exists():
            shutil.rmtree(folder)
        folder.mkdir(parents=True)
        json_target.write_text(json.dumps(questions, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        raise FileSystemError(f"Error writing quiz files: {exc}", str(folder)) from exc

    write_index(folder, html)
    record["path"] = extract_quizzes_suffix(folder)
    record["JSON"] = json_path
    return count


def rebuild_quizzes(cfg: dict, now: datetime | None = None) -> dict:
    """Regenerate every quiz folder and page from the manifest.

    A timestamped backup of the manifest is written first. Quizzes whose
    question file cannot be read or whose page cannot be rendered are left
    untouched and listed in ``skipped``. Every year key shows up in
    ``byYear``, empty years with 0.
    """
    manifest_path = cfg["allQuizzezJsonPath"]
    backup = backup_manifest(manifest_path, now)
    doc = load_manifest(manifest_path)

    stats = {
        "total": 0,
        "byYear": dict.fromkeys(doc[0]["Year"], 0),
        "byType": {},
        "skipped": [],
        "backup": str(backup),
    }
    seen = {}
    for year, subject, quiz_for, record in list(iter_records(doc)):
        stats["byYear"].setdefault(year, 0)
        quiz_type = record.get("type")
        names = seen.setdefault((year, subject, quiz_for), [])
        taken = stored_paths(doc, exclude=record)
        name = pick_display_name(cfg["projectPath"], names, taken, year, subject, quiz_for, quiz_type)
        names.append(display_name(subject, quiz_type))

        try:
            _rebuild_one(cfg, year, subject, quiz_for, record, name)
        except MkquizError as exc:
            logger.error("Skipped %s %s: %s", year, name, exc.message)
            stats["skipped"].append({"year": year, "quiz": name, "error": exc.message})
            continue

        stats["total"] += 1
        stats["byYear"][year] += 1
        stats["byType"][quiz_type] = stats["byType"].get(quiz_type, 0) + 1

    save_manifest(manifest_path, doc)
    record_quiz_operation("rebuild", not stats["skipped"])
    return stats


def fix_manifest_paths(cfg: dict) -> int:
    manifest_path = cfg["allQuizzezJsonPath"]
    doc = load_manifest(manifest_path)
    fixed = fix_paths(doc)
    save_manifest(manifest_path, doc)
    record_quiz_operation("fix_paths", True)
    logger.info("Fixed %d paths in %s", fixed, manifest_path)
    return fixed
