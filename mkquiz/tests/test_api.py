import io
import json
from pathlib import Path

from pypdf import PdfWriter

from mkquiz.app import config
from mkquiz.tests.utils import read_manifest, sample_questions, seed_quiz

QUIZ_FORM = {
    "quizName": "Algorithms",
    "quizFor": "Midterm",
    "questionType": "MCQ",
    "year": "1st",
    "published": "true",
}


def json_upload(count=20, name="algo.json"):
    return {"jsonFile": (name, json.dumps(sample_questions(count)).encode(), "application/json")}


def blank_pdf():
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def pdf_upload(data=None):
    return {"pdfFile": ("questions.pdf", data if data is not None else blank_pdf(), "application/pdf")}


def uploads_left():
    directory = Path(config.UPLOAD_DIR)
    return list(directory.iterdir()) if directory.exists() else []


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "ok"
    assert "time" in body


def test_metrics_endpoint(client):
    client.get("/api/health")
    res = client.get("/metrics")
    assert res.status_code == 200
    assert "mkquiz_http_requests_total" in res.text


def test_get_config(client, project):
    res = client.get("/api/config")
    assert res.status_code == 200
    assert res.json() == project


def test_get_config_missing(client, monkeypatch, tmp_path):
    monkeypatch.setattr(config, "CONFIG_PATH", str(tmp_path / "absent" / ".mkquizrc"))
    res = client.get("/api/config")
    assert res.status_code == 404
    assert res.json() == {"error": "Configuration not found"}


def test_post_config(client, project, tmp_path):
    manifest = tmp_path / "other.json"
    manifest.write_text("[{\"Year\": {}}]")
    payload = dict(project, allQuizzezJsonPath=str(manifest))

    res = client.post("/api/config", json=payload)
    assert res.status_code == 200
    assert res.json() == {"success": True, "config": payload}
    assert client.get("/api/config").json() == payload


def test_post_config_missing_fields(client, project):
    res = client.post("/api/config", json={"projectPath": project["projectPath"]})
    assert res.status_code == 400
    assert res.json() == {"error": "Missing required configuration fields"}


def test_post_config_bad_paths(client, project):
    res = client.post("/api/config", json=dict(project, projectPath="/does/not/exist"))
    assert res.status_code == 400
    assert res.json()["error"].startswith("Project path does not exist")


def test_list_quizzes(client, project, questions_file):
    seed_quiz(project, questions_file)
    res = client.get("/api/quizzes")
    assert res.status_code == 200
    assert res.json() == read_manifest(project)


def test_list_quizzes_for_year(client, project, questions_file):
    seed_quiz(project, questions_file)
    res = client.get("/api/quizzes/1st")
    assert res.status_code == 200
    assert list(res.json()["Algorithms"]) == ["Midterm"]

    res = client.get("/api/quizzes/3rd")
    assert res.status_code == 404
    assert res.json() == {"error": "No quizzes found for 3rd year"}


def test_list_quizzes_without_config(client, monkeypatch, tmp_path):
    monkeypatch.setattr(config, "CONFIG_PATH", str(tmp_path / "absent" / ".mkquizrc"))
    res = client.get("/api/quizzes")
    assert res.status_code == 400
    assert "mkquiz config" in res.json()["error"]


def test_add_quiz(client, project):
    res = client.post("/api/quizzes", data=QUIZ_FORM, files=json_upload())
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["questionsCount"] == 20
    assert body["quiz"]["path"] == "/quizzes/1st/midterm/algorithms_mcq"
    assert read_manifest(project)[0]["Year"]["1st"]["Algorithms"]["Midterm"] == [body["quiz"]]
    assert uploads_left() == []


def test_add_quiz_unpublished(client, project):
    res = client.post("/api/quizzes", data=dict(QUIZ_FORM, published="false"), files=json_upload())
    assert res.status_code == 200
    assert res.json()["quiz"]["published"] is False


def test_add_quiz_missing_fields(client):
    res = client.post("/api/quizzes", data={"quizName": "Algorithms"}, files=json_upload())
    assert res.status_code == 400
    assert res.json() == {"error": "Missing required fields"}

    res = client.post("/api/quizzes", data=QUIZ_FORM)
    assert res.status_code == 400
    assert res.json() == {"error": "Missing required fields"}


def test_add_quiz_bad_year(client, project):
    res = client.post("/api/quizzes", data=dict(QUIZ_FORM, year="5th"), files=json_upload())
    assert res.status_code == 400
    assert res.json()["error"].startswith("year must be one of")
    assert read_manifest(project) == [{"Year": {}}]
    assert uploads_left() == []


def test_add_quiz_invalid_questions(client, project):
    bad = [{"id": 1, "question": "Q?", "options": {"a": "x", "b": "y"}, "answer": "c"}]
    files = {"jsonFile": ("bad.json", json.dumps(bad).encode(), "application/json")}
    res = client.post("/api/quizzes", data=QUIZ_FORM, files=files)
    assert res.status_code == 400
    assert "answer" in res.json()["error"]
    assert uploads_left() == []


def test_add_quiz_requires_json_upload(client):
    res = client.post("/api/quizzes", data=QUIZ_FORM, files=json_upload(name="algo.txt"))
    assert res.status_code == 400


def test_add_quiz_existing_folder(client, project):
    assert client.post("/api/quizzes", data=QUIZ_FORM, files=json_upload()).status_code == 200
    folder = Path(project["projectPath"], "quizzes", "1st", "midterm", "algorithms_mcq2")
    folder.mkdir()

    res = client.post("/api/quizzes", data=QUIZ_FORM, files=json_upload())
    assert res.status_code == 400
    assert "already exists" in res.json()["error"]

    res = client.post("/api/quizzes", data=dict(QUIZ_FORM, overwrite="true"), files=json_upload(5))
    assert res.status_code == 200
    assert res.json()["displayName"] == "Algorithms MCQ2"


def test_delete_quizzes(client, project, questions_file):
    seed_quiz(project, questions_file)
    seed_quiz(project, questions_file, question_type="TF")
    selection = {"year": "1st", "subject": "Algorithms", "examType": "Midterm", "quizType": "MCQ"}

    res = client.request("DELETE", "/api/quizzes", json=[selection])
    assert res.status_code == 200
    assert res.json() == {"success": True, "removed": 1, "missing": [], "failed": []}
    records = read_manifest(project)[0]["Year"]["1st"]["Algorithms"]["Midterm"]
    assert [record["type"] for record in records] == ["TF"]


def test_delete_quizzes_wrapped_payload(client, project, questions_file):
    seed_quiz(project, questions_file)
    selection = {"year": "1st", "subject": "Algorithms", "examType": "Midterm", "quizType": "MCQ"}
    res = client.request("DELETE", "/api/quizzes", json={"quizzes": [selection]})
    assert res.status_code == 200
    assert read_manifest(project) == [{"Year": {"1st": {}}}]


def test_delete_quizzes_empty(client):
    res = client.request("DELETE", "/api/quizzes", json=[])
    assert res.status_code == 400
    assert res.json() == {"error": "No quizzes specified for removal"}


def test_delete_quizzes_malformed(client):
    res = client.request("DELETE", "/api/quizzes", json=[{"year": "1st"}])
    assert res.status_code == 400


def test_add_quiz_from_pdf(client, project, monkeypatch):
    calls = []

    def fake_extract(data, api_key, model=None):
        calls.append((data[:5], api_key))
        return sample_questions(10)

    monkeypatch.setattr("mkquiz.app.main.extract_questions_from_pdf", fake_extract)
    res = client.post(
        "/api/quizzes/from-pdf",
        data=dict(QUIZ_FORM, geminiApiKey="form-key"),
        files=pdf_upload(),
    )
    assert res.status_code == 200
    body = res.json()
    assert body["questionsCount"] == 10
    assert body["message"] == "Successfully extracted 10 questions from PDF"
    assert calls == [(b"%PDF-", "form-key")]

    quiz_json = Path(project["projectPath"], "quizzes", "1st", "midterm", "algorithms_mcq", "algorithms_mcq.json")
    assert json.loads(quiz_json.read_text()) == sample_questions(10)
    assert uploads_left() == []


def test_add_quiz_from_pdf_uses_env_key(client, monkeypatch):
    seen = []
    monkeypatch.setenv(config.GEMINI_API_KEY_ENV, "env-key")
    monkeypatch.setattr(
        "mkquiz.app.main.extract_questions_from_pdf",
        lambda data, api_key, model=None: seen.append(api_key) or sample_questions(3),
    )
    res = client.post("/api/quizzes/from-pdf", data=QUIZ_FORM, files=pdf_upload())
    assert res.status_code == 200
    assert seen == ["env-key"]


def test_add_quiz_from_pdf_without_key(client, monkeypatch):
    monkeypatch.delenv(config.GEMINI_API_KEY_ENV, raising=False)
    res = client.post("/api/quizzes/from-pdf", data=QUIZ_FORM, files=pdf_upload())
    assert res.status_code == 400
    assert "Gemini API key is required" in res.json()["error"]


def test_add_quiz_from_pdf_rejects_non_pdf(client):
    res = client.post(
        "/api/quizzes/from-pdf",
        data=dict(QUIZ_FORM, geminiApiKey="form-key"),
        files=pdf_upload(b"not a pdf at all"),
    )
    assert res.status_code == 400
    assert uploads_left() == []


def test_add_quiz_from_pdf_no_questions(client, project, monkeypatch):
    monkeypatch.setattr("mkquiz.app.main.extract_questions_from_pdf", lambda data, api_key, model=None: [])
    res = client.post(
        "/api/quizzes/from-pdf",
        data=dict(QUIZ_FORM, geminiApiKey="form-key"),
        files=pdf_upload(),
    )
    assert res.status_code == 400
    assert res.json() == {"error": "No questions found in the PDF"}
    assert read_manifest(project) == [{"Year": {}}]
    assert uploads_left() == []


def test_gemini_key_masked(client, monkeypatch):
    monkeypatch.setenv(config.GEMINI_API_KEY_ENV, "AIzaSyExampleKey1234")
    res = client.get("/api/gemini-key")
    assert res.status_code == 200
    body = res.json()
    assert body["hasKey"] is True
    assert body["maskedKey"] == "AIza" + "*" * 12 + "1234"


def test_gemini_key_absent(client, monkeypatch):
    monkeypatch.delenv(config.GEMINI_API_KEY_ENV, raising=False)
    assert client.get("/api/gemini-key").json() == {"hasKey": False}
