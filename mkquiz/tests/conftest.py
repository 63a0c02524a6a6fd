import json
import os

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("MKQUIZ_LOG_DIR", "")

TEMPLATE = """<!doctype html>
<html lang="en">
<head>
  <title>{% Quiz Name %}</title>
</head>
<body data-sheet="{%Final/Midterm Sheet%}">
  <p>{% N %} questions, {%  T  %} minutes</p>
  <script>window.QUIZ_JSON = "{% JSON Path %}";</script>
</body>
</html>
"""


@pytest.fixture()
def project(tmp_path, monkeypatch):
    from mkquiz.app import config

    root = tmp_path / "site"
    (root / "quizzes").mkdir(parents=True)
    template = tmp_path / "template.html"
    template.write_text(TEMPLATE)
    manifest = root / "all_quizzes.json"
    manifest.write_text(json.dumps([{"Year": {}}], indent=4))

    cfg = {
        "projectPath": str(root),
        "templateFile": str(template),
        "allQuizzezJsonPath": str(manifest),
    }
    config_file = tmp_path / ".mkquizrc"
    config_file.write_text(json.dumps(cfg, indent=2))
    monkeypatch.setattr(config, "CONFIG_PATH", str(config_file))
    monkeypatch.setattr(config, "UPLOAD_DIR", str(tmp_path / "uploads"))
    return cfg


@pytest.fixture()
def questions_file(tmp_path):
    from mkquiz.tests.utils import write_questions

    return write_questions(tmp_path / "source" / "algo.json", 20)


@pytest.fixture()
def client(project):
    from mkquiz.app.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr("mkquiz.app.logs._configured", True)
