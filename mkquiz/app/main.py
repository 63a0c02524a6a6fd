import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Body, FastAPI, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from . import config
from .errors import (
    ConfigError,
    ExtractionError,
    FileSystemError,
    MkquizError,
    ValidationError,
)
from .extraction import extract_questions_from_pdf, inspect_pdf, mask_key
from .logs import configure_logging
from .manifest import list_for_year, load_manifest
from .metrics import PrometheusMiddleware, record_error, record_uploads_swept
from .project_config import (
    CONFIG_FIELDS,
    config_exists,
    load_and_validate_config,
    load_config,
    save_config,
    validate_config,
    validate_config_paths,
)
from .quizzes import create_quiz, remove_quizzes
from .uploads import discard, scratch_path, store_upload, sweep_stale_uploads

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    record_uploads_swept(sweep_stale_uploads())
    logger.info("mkquiz web server ready")
    yield


app = FastAPI(
    title="mkquiz API",
    version="2.1.0",
    lifespan=lifespan,
)
app.add_middleware(PrometheusMiddleware)

SERVER_ERRORS = (FileSystemError, ExtractionError)


def utcnow():
    return datetime.now(timezone.utc)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def parse_flag(value, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


@app.exception_handler(MkquizError)
async def mkquiz_error_handler(request: Request, exc: MkquizError):
    status_code = 500 if isinstance(exc, SERVER_ERRORS) else 400
    record_error(type(exc).__name__, request.url.path)
    logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    return error_response(status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return error_response(400, "Invalid request payload.")


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    record_error(type(exc).__name__, request.url.path)
    logger.error("%s %s crashed", request.method, request.url.path, exc_info=exc)
    return error_response(500, "Internal server error")


@app.get("/api/health")
def health():
    return {"status": "ok", "time": utcnow().isoformat()}


@app.get("/metrics")
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/api/config")
def get_config():
    if not config_exists():
        raise HTTPException(status_code=404, detail="Configuration not found")
    return load_config()


@app.post("/api/config")
def post_config(payload: dict):
    if any(not payload.get(field) for field in CONFIG_FIELDS):
        raise HTTPException(status_code=400, detail="Missing required configuration fields")
    cfg = validate_config_paths(validate_config(payload))
    save_config(cfg)
    logger.info("Configuration saved via API")
    return {"success": True, "config": cfg}


@app.get("/api/quizzes")
def get_quizzes():
    cfg = load_and_validate_config()
    return load_manifest(cfg["allQuizzezJsonPath"])


@app.get("/api/quizzes/{year}")
def get_quizzes_for_year(year: str):
    cfg = load_and_validate_config()
    year_data = list_for_year(load_manifest(cfg["allQuizzezJsonPath"]), year)
    if year_data is None:
        raise HTTPException(status_code=404, detail=f"No quizzes found for {year} year")
    return year_data


def require_quiz_fields(quiz_name: str, quiz_for: str, question_type: str, year: str, upload) -> None:
    if not quiz_name or not quiz_for or not question_type or not year or upload is None:
        raise HTTPException(status_code=400, detail="Missing required fields")


@app.post("/api/quizzes")
def add_quiz(
    quiz_name: str = Form("", alias="quizName"),
    quiz_for: str = Form("", alias="quizFor"),
    question_type: str = Form("", alias="questionType"),
    year: str = Form(""),
    published: str = Form("true"),
    overwrite: str = Form("false"),
    json_file: UploadFile | None = File(None, alias="jsonFile"),
):
    require_quiz_fields(quiz_name, quiz_for, question_type, year, json_file)
    cfg = load_and_validate_config()
    allow_overwrite = parse_flag(overwrite)

    upload_path = store_upload(json_file, "jsonFile")
    try:
        result = create_quiz(
            cfg,
            year,
            quiz_name,
            quiz_for,
            question_type,
            upload_path,
            parse_flag(published, default=True),
            lambda _message: allow_overwrite,
        )
    finally:
        discard(upload_path)

    logger.info("Quiz added via API: %s", result["displayName"])
    return {"success": True, **result}


@app.delete("/api/quizzes")
def delete_quizzes(payload: list | dict = Body(...)):
    selections = payload.get("quizzes") if isinstance(payload, dict) else payload
    if not isinstance(selections, list) or not selections:
        raise HTTPException(status_code=400, detail="No quizzes specified for removal")
    cfg = load_and_validate_config()
    result = remove_quizzes(cfg, selections)
    logger.info("Removed %d quiz(zes) via API", result["removed"])
    return {"success": True, **result}


@app.post("/api/quizzes/from-pdf")
def add_quiz_from_pdf(
    quiz_name: str = Form("", alias="quizName"),
    quiz_for: str = Form("", alias="quizFor"),
    question_type: str = Form("", alias="questionType"),
    year: str = Form(""),
    published: str = Form("true"),
    overwrite: str = Form("false"),
    gemini_api_key: str = Form("", alias="geminiApiKey"),
    pdf_file: UploadFile | None = File(None, alias="pdfFile"),
):
    require_quiz_fields(quiz_name, quiz_for, question_type, year, pdf_file)
    api_key = gemini_api_key or config.gemini_api_key()
    if not api_key:
        raise ConfigError(
            f"Gemini API key is required. Provide it in the form or set {config.GEMINI_API_KEY_ENV}."
        )
    cfg = load_and_validate_config()
    allow_overwrite = parse_flag(overwrite)

    pdf_path = store_upload(pdf_file, "pdfFile")
    questions_path = None
    try:
        data = pdf_path.read_bytes()
        pages = inspect_pdf(data)
        logger.info("Processing %d page PDF for %s %s", pages, quiz_name, question_type)
        questions = extract_questions_from_pdf(data, api_key)
        if not questions:
            raise ValidationError("No questions found in the PDF", "pdfFile")

        questions_path = scratch_path("quiz", ".json")
        questions_path.write_text(json.dumps(questions, indent=2, ensure_ascii=False), encoding="utf-8")
        result = create_quiz(
            cfg,
            year,
            quiz_name,
            quiz_for,
            question_type,
            questions_path,
            parse_flag(published, default=True),
            lambda _message: allow_overwrite,
        )
    finally:
        discard(pdf_path, questions_path)

    return {
        "success": True,
        **result,
        "message": f"Successfully extracted {result['questionsCount']} questions from PDF",
    }


@app.get("/api/gemini-key")
def gemini_key():
    api_key = config.gemini_api_key()
    if not api_key:
        return {"hasKey": False}
    return {"hasKey": True, "maskedKey": mask_key(api_key)}
