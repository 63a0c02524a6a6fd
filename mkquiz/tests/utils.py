import json
from pathlib import Path


def sample_questions(count):
    questions = []
    for index in range(1, count + 1):
        if index % 2:
            questions.append(
                {
                    "id": index,
                    "question": f"Question {index}?",
                    "options": {"a": "First", "b": "Second", "c": "Third"},
                    "answer": "b",
                }
            )
        else:
            questions.append(
                {
                    "id": index,
                    "question": f"Statement {index} holds.",
                    "options": {"a": "True", "b": "False"},
                    "answer": "a",
                }
            )
    return questions


def write_questions(path, count):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(sample_questions(count), indent=2))
    return path


def read_manifest(cfg):
    return json.loads(Path(cfg["allQuizzezJsonPath"]).read_text())


def seed_quiz(cfg, questions_file, subject="Algorithms", quiz_for="Midterm", question_type="MCQ", year="1st"):
    from mkquiz.app.folders import auto_confirm
    from mkquiz.app.quizzes import create_quiz

    return create_quiz(cfg, year, subject, quiz_for, question_type, questions_file, True, auto_confirm)
