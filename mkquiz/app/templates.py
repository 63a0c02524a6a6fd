import logging
import math
import re
from pathlib import Path

from .errors import TemplateError

logger = logging.getLogger(__name__)

PLACEHOLDERS = {
    "quizName": re.compile(r"\{%\s*Quiz Name\s*%\}"),
    "quizFor": re.compile(r"\{%\s*Final/Midterm Sheet\s*%\}"),
    "questionsCount": re.compile(r"\{%\s*N\s*%\}"),
    "duration": re.compile(r"\{%\s*T\s*%\}"),
    "jsonPath": re.compile(r"\{%\s*JSON Path\s*%\}"),
}


def compute_duration(questions_count: int) -> int:
    """Minutes allowed for a quiz: four per ten questions plus one."""
    return math.floor(questions_count / 10 * 4) + 1


def render_text(content: str, variables: dict) -> str:
    for key, pattern in PLACEHOLDERS.items():
        value = variables.get(key)
        replacement = "" if value is None else str(value)
        content = pattern.sub(lambda _match: replacement, content)
    return content


def render(template_path, variables: dict) -> str:
    try:
        content = Path(template_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise TemplateError(f"Failed to process template: {exc}", str(template_path)) from exc
    logger.debug("Rendering template %s", template_path)
    return render_text(content, variables)
