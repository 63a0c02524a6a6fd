import io
import json
import logging
import re
import time

from google import genai
from google.genai import types
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from . import config
from .errors import ConfigError, ExtractionError, ValidationError
from .metrics import record_extraction
from .validation import validate_questions

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """You are an expert at extracting quiz questions from documents.

Analyze the provided document and extract ALL quiz questions you find. For each question:

1. Extract the question text exactly as it appears
2. Extract all answer options
3. Identify the correct answer
4. For mathematical formulas or symbols, convert them to KaTeX format (LaTeX syntax),
   e.g. \\frac{a}{b}, x^{10}, x_{1}, \\alpha, \\sqrt{x}, \\sum_{i=1}^{n}, \\int_{a}^{b}

Return ONLY a valid JSON array in this exact format:
[
  {
    "id": 1,
    "question": "What does HTML stand for?",
    "options": {
      "a": "Hyper Text Markup Language",
      "b": "Home Tool Markup Language",
      "c": "Hyperlinks and Text Markup Language"
    },
    "answer": "a"
  }
]

Important rules:
- Use sequential IDs starting from 1
- Options keys must be lowercase letters (a, b, c, d, etc.)
- True/false questions use exactly {"a": "True", "b": "False"}
- The "answer" field must match one of the option keys
- Wrap math expressions in $ symbols for inline math or $$ for display math
- Return ONLY the JSON array, no additional text or explanation
- If no questions are found, return an empty array []"""

CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def mask_key(key: str) -> str:
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}{'*' * (len(key) - 8)}{key[-4:]}"


def inspect_pdf(data: bytes) -> int:
    """Return the page count, rejecting anything pypdf cannot open."""
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = len(reader.pages)
    except (PdfReadError, ValueError, OSError) as exc:
        raise ValidationError(f"Uploaded file is not a readable PDF: {exc}", "pdfFile") from exc
    if pages == 0:
        raise ValidationError("Uploaded PDF has no pages", "pdfFile")
    return pages


def parse_questions_from_response(text: str) -> list:
    body = (text or "").strip()
    fenced = CODE_FENCE.search(body)
    if fenced:
        body = fenced.group(1)
    array = JSON_ARRAY.search(body)
    if array:
        body = array.group(0)
    try:
        questions = json.loads(body)
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"Failed to parse questions from response: {exc}") from exc
    if not isinstance(questions, list):
        raise ExtractionError("Failed to parse questions from response: response is not an array")
    return validate_questions(questions)


def extract_questions_from_pdf(data: bytes, api_key: str, model: str | None = None) -> list:
    if not api_key:
        raise ConfigError(
            f"Gemini API key is required. Provide it in the form or set {config.GEMINI_API_KEY_ENV}."
        )
    model = model or config.GEMINI_MODEL
    client = genai.Client(api_key=api_key)

    logger.info("Sending %d byte PDF to %s", len(data), model)
    start = time.time()
    try:
        response = client.models.generate_content(
            model=model,
            contents=[
                EXTRACTION_PROMPT,
                types.Part.from_bytes(data=data, mime_type="application/pdf"),
            ],
        )
    except Exception as exc:
        raise ExtractionError(f"Failed to extract questions from PDF: {exc}") from exc
    finally:
        record_extraction(time.time() - start)

    text = response.text or ""
    logger.debug("Extraction response starts: %s", text[:200])
    questions = parse_questions_from_response(text)
    logger.info("Extracted %d questions from PDF", len(questions))
    return questions
