import os

PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("MKQUIZ_LOG_DIR", "logs")
CONFIG_PATH = os.getenv("MKQUIZ_CONFIG_PATH", ".mkquizrc")
UPLOAD_DIR = os.getenv("MKQUIZ_UPLOAD_DIR", "uploads")
UPLOAD_MAX_AGE_HOURS = int(os.getenv("MKQUIZ_UPLOAD_MAX_AGE_HOURS", "24"))
GEMINI_API_KEY_ENV = "GEMINI_API_KEY"
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

YEARS = ("1st", "2nd", "3rd", "4th")
QUIZ_FOR = ("Midterm", "Final")
QUESTION_TYPES = ("MCQ", "TF", "QB")


def gemini_api_key() -> str:
    return os.getenv(GEMINI_API_KEY_ENV, "")
