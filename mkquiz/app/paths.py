import os
import re

QUIZZES_SEGMENT = "/quizzes/"


def sanitize_loose(name: str) -> str:
    return re.sub(r"\s+", "_", (name or "").strip().lower())


def sanitize_strict(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", (name or "").strip().lower())


def to_forward_slashes(path: str) -> str:
    return path.replace("\\", "/")


def ensure_leading_slash(path: str) -> str:
    return path if path.startswith("/") else "/" + path


def normalize_path(path: str) -> str:
    return ensure_leading_slash(to_forward_slashes(path))


def extract_quizzes_suffix(path) -> str | None:
    """Return the `/quizzes/...` tail of a path, or None when it has none.

    This is the form stored in the manifest for folder and question file paths.
    """
    normalized = to_forward_slashes(str(path))
    index = normalized.find(QUIZZES_SEGMENT)
    if index == -1:
        return None
    return normalized[index:]


def build_folder_path(project_root, year: str, quiz_for: str, quiz_name: str) -> str:
    return os.path.join(str(project_root), "quizzes", year, quiz_for.lower(), sanitize_loose(quiz_name))


def build_json_path(folder_path, name: str) -> str:
    return os.path.join(str(folder_path), f"{sanitize_strict(name)}.json")
