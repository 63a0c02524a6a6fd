import logging
import shutil
from pathlib import Path
from typing import Callable

from .errors import FileSystemError, QuizOperationError
from .paths import build_folder_path, build_json_path

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"


def auto_confirm(_message: str) -> bool:
    return True


def ensure_folder(
    project_root,
    year: str,
    quiz_for: str,
    quiz_name: str,
    confirm: Callable[[str], bool],
) -> Path | None:
    """Create the quiz folder, asking ``confirm`` before replacing an existing one.

    Returns None when the caller declines; nothing is touched in that case.
    """
    folder = Path(build_folder_path(project_root, year, quiz_for, quiz_name))
    try:
        if folder.exists():
            if not confirm(f"Folder {year}/{quiz_for}/{quiz_name} exists. Remove and continue?"):
                logger.info("Quiz folder creation declined for %s", folder)
                return None
            shutil.rmtree(folder)
            logger.info("Removed existing quiz folder %s", folder)
        folder.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileSystemError(f"Failed to create quiz folder: {exc}", str(folder)) from exc
    return folder


def copy_question_file(folder_path, source_file, quiz_name: str) -> Path:
    destination = Path(build_json_path(folder_path, quiz_name))
    try:
        shutil.copyfile(source_file, destination)
    except OSError as exc:
        raise FileSystemError(f"Failed to copy question file: {exc}", str(source_file)) from exc
    return destination


def write_index(folder_path, html: str) -> Path:
    destination = Path(folder_path) / INDEX_FILE
    try:
        destination.write_text(html, encoding="utf-8")
    except OSError as exc:
        raise FileSystemError(f"Failed to write {INDEX_FILE}: {exc}", str(destination)) from exc
    return destination


def remove_folder(project_root, relative_quiz_path: str) -> Path:
    root = Path(project_root).resolve()
    target = (root / relative_quiz_path.replace("\\", "/").lstrip("/")).resolve()
    quizzes_root = root / "quizzes"
    if target == quizzes_root or quizzes_root not in target.parents:
        raise QuizOperationError(f"Refusing to delete a path outside the quizzes folder: {relative_quiz_path}")
    if not target.exists():
        return target
    try:
        if target.is_dir():
            shutil.rmtree(target)
        else:
            target.unlink()
    except OSError as exc:
        raise FileSystemError(f"Failed to remove quiz folder: {exc}", str(target)) from exc
    logger.info("Removed quiz folder %s", target)
    return target
