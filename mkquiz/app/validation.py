import json
from pathlib import Path

from .errors import JsonError, ValidationError

TRUE_FALSE_OPTIONS = {"a": "True", "b": "False"}


def validate_path_exists(path, message: str | None = None) -> Path:
    target = Path(path)
    if not target.exists():
        raise ValidationError(message or f"Path does not exist: {path}", "path")
    return target


def validate_file_extension(path, extension: str, message: str | None = None) -> Path:
    target = Path(path)
    if target.suffix != extension:
        raise ValidationError(
            message or f"Expected {extension} file but got {target.suffix or 'no extension'}",
            "fileExtension",
        )
    return target


def validate_not_empty(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} cannot be empty", field)
    return value.strip()


def validate_choice(value, choices, field: str) -> str:
    if value not in choices:
        raise ValidationError(f"{field} must be one of {', '.join(choices)}", field)
    return value


def is_true_false(options: dict) -> bool:
    return options == TRUE_FALSE_OPTIONS


def validate_question(question, index: int) -> dict:
    if not isinstance(question, dict):
        raise ValidationError(f"Question at index {index} is not a valid object", "question")

    qid = question.get("id")
    if isinstance(qid, bool) or not isinstance(qid, int):
        raise ValidationError(f"Question at index {index} is missing or has invalid 'id' property", "question.id")

    text = question.get("question")
    if not isinstance(text, str) or not text.strip():
        raise ValidationError(
            f"Question at index {index} is missing or has invalid 'question' property", "question.question"
        )

    options = question.get("options")
    if not isinstance(options, dict):
        raise ValidationError(
            f"Question at index {index} is missing or has invalid 'options' property", "question.options"
        )
    if not options:
        raise ValidationError(f"Question at index {index} has empty options", "question.options")
    if not is_true_false(options) and len(options) < 2:
        raise ValidationError(f"Question at index {index} must have at least 2 options", "question.options")
    if not all(isinstance(value, str) for value in options.values()):
        raise ValidationError(f"Question at index {index} has invalid option values", "question.options")

    answer = question.get("answer")
    if not isinstance(answer, str) or not answer:
        raise ValidationError(
            f"Question at index {index} is missing or has invalid 'answer' property", "question.answer"
        )
    if answer not in options:
        raise ValidationError(
            f"Question at index {index} has answer '{answer}' that is not one of its option keys",
            "question.answer",
        )
    return question


def validate_questions(questions) -> list:
    """Check a parsed question file and return it unchanged.

    Every question needs an integer `id`, a non-empty `question`, an `options`
    map of at least two strings (the exact a/b True/False pair included) and
    an `answer` naming one of the option keys.
    """
    if not isinstance(questions, list):
        raise ValidationError("Quiz JSON must contain an array of questions", "questions")
    for index, question in enumerate(questions):
        validate_question(question, index)
    return questions


def read_json_file(path):
    target = validate_path_exists(path)
    validate_file_extension(target, ".json")
    try:
        return json.loads(target.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise JsonError(f"Invalid JSON file: {exc}", str(path)) from exc


def validate_question_file(path) -> list:
    return validate_questions(read_json_file(path))
