import json

import pytest
from fastapi.testclient import TestClient

from quizapp.config import Settings
from quizapp.main import create_app
from quizapp.models import Question

SAMPLE_QUESTIONS = [
    {"id": 1, "question": "2+2?", "options": ["3", "4", "5"], "correctIndex": 1},
    {"id": 2, "question": "Capital of France?", "options": ["Paris", "Rome"], "correctIndex": 0},
    {"id": "q3", "question": "Largest ocean?", "options": ["Atlantic", "Indian", "Pacific"], "correctIndex": 2},
]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def questions():
    return [Question.model_validate(q) for q in SAMPLE_QUESTIONS]


@pytest.fixture
def questions_file(tmp_path):
    path = tmp_path / "questions.json"
    path.write_text(json.dumps(SAMPLE_QUESTIONS), encoding="utf-8")
    return path


@pytest.fixture
def settings(tmp_path, questions_file):
    return Settings(
        questions_file=questions_file,
        scores_file=tmp_path / "scores.json",
        scores_key="s3cret",
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c
