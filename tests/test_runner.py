import pandas as pd
import pytest

from quizapp.models import PublicQuestion, SubmissionRecord
from quizapp.resolver import ResolutionError
from quizapp.runner import (
    FORM,
    QUIZ,
    RESULT,
    QuizSession,
    build_parser,
    export_scores_csv,
    render_question,
    render_result,
    render_score_table,
    show_scores,
    take_quiz,
)

pytestmark = pytest.mark.anyio

QUESTIONS = [
    {"id": 1, "question": "2+2?", "options": ["3", "4", "5"]},
    {"id": 2, "question": "Capital of France?", "options": ["Paris", "Rome"]},
]

SCORES = [
    {"id": "r2", "name": "Bob", "email": "", "score": 1, "total": 2, "details": [], "submittedAt": "2024-02-01T00:00:00+00:00"},
    {"id": "r1", "name": "Ann", "email": "ann@x.org", "score": 2, "total": 2, "details": [], "submittedAt": "2024-01-01T00:00:00+00:00"},
]


def make_record(payload):
    correct = {1: 1, 2: 0}
    details = []
    for answer in payload["answers"]:
        chosen = answer["choiceIndex"]
        details.append({
            "id": answer["id"],
            "chosen": chosen,
            "correct": correct[answer["id"]],
            "isCorrect": chosen == correct[answer["id"]],
        })
    return {
        "id": "rec-1",
        "name": payload["name"] or "anonymous",
        "email": payload["email"],
        "score": sum(d["isCorrect"] for d in details),
        "total": len(details),
        "details": details,
        "submittedAt": "2024-01-01T00:00:00+00:00",
    }


class StubResolver:
    def __init__(self, questions=QUESTIONS, submit_failures=0, scores=None):
        self.questions = questions
        self.submit_failures = submit_failures
        self.scores = scores
        self.payloads = []

    async def fetch_questions(self):
        if isinstance(self.questions, Exception):
            raise self.questions
        return self.questions

    async def submit(self, payload):
        self.payloads.append(payload)
        if self.submit_failures:
            self.submit_failures -= 1
            raise ResolutionError("POST /submit", ["http://a/submit"])
        return make_record(payload)

    async def fetch_scores(self, key, limit=None, offset=None):
        if self.scores is None:
            raise ResolutionError("GET /scores", ["http://a/scores"])
        return self.scores


async def test_start_loads_questions():
    session = QuizSession(StubResolver(), name=" Ann ")
    assert await session.start()
    assert session.state == QUIZ
    assert session.name == "Ann"
    assert [q.id for q in session.questions] == [1, 2]


async def test_failed_load_returns_to_form():
    session = QuizSession(StubResolver(questions=ResolutionError("GET /questions", ["http://a/questions"])))

    assert not await session.start()
    assert session.state == FORM
    assert "http://a/questions" in session.error


async def test_non_list_questions_returns_to_form():
    session = QuizSession(StubResolver(questions="<html>"))
    assert not await session.start()
    assert session.state == FORM


async def test_unselected_questions_submit_null():
    resolver = StubResolver()
    session = QuizSession(resolver, name="Ann")
    await session.start()
    session.select(1, 0)
    session.select(1, 1)

    assert await session.submit()
    assert resolver.payloads[0]["answers"] == [
        {"id": 1, "choiceIndex": 1},
        {"id": 2, "choiceIndex": None},
    ]
    assert session.state == RESULT
    assert session.record.score == 1


async def test_select_validates_input():
    session = QuizSession(StubResolver())
    await session.start()
    with pytest.raises(ValueError):
        session.select(1, 5)
    with pytest.raises(KeyError):
        session.select(99, 0)


async def test_failed_submit_keeps_selections():
    session = QuizSession(StubResolver(submit_failures=1))
    await session.start()
    session.select(2, 0)

    assert not await session.submit()
    assert session.state == QUIZ
    assert session.selections == {2: 0}
    assert "Submission failed" in session.error

    assert await session.submit()
    assert session.state == RESULT


async def test_take_quiz_interactive():
    inputs = iter(["2", "", "9", "1"])
    out = []
    session = QuizSession(StubResolver(), name="Ann")

    record = await take_quiz(session, input_fn=lambda prompt: next(inputs), output=out.append)

    assert record.score == 1
    assert session.selections == {1: 1}
    assert any("Score: 1 / 2" in line for line in out)


async def test_take_quiz_gives_up_after_declined_retry():
    inputs = iter(["", "", "n"])
    out = []
    session = QuizSession(StubResolver(submit_failures=5))

    assert await take_quiz(session, input_fn=lambda prompt: next(inputs), output=out.append) is None
    assert session.state == QUIZ


def test_render_question():
    text = render_question(0, PublicQuestion.model_validate(QUESTIONS[0]))
    assert text.splitlines() == ["1. 2+2?", "   1) 3", "   2) 4", "   3) 5"]


def test_render_result_marks_each_question():
    record = SubmissionRecord.model_validate(make_record({
        "name": "",
        "email": "",
        "answers": [{"id": 1, "choiceIndex": 1}, {"id": 2, "choiceIndex": None}],
    }))

    text = render_result(record)
    assert "Score: 1 / 2" in text
    assert "1. Question 1: correct" in text
    assert "2. Question 2: not answered" in text


def test_render_score_table():
    table = render_score_table(SCORES)
    assert "Bob" in table and "ann@x.org" in table
    assert "details" not in table
    assert render_score_table([]) == "No submissions yet."


def test_export_scores_csv(tmp_path):
    path = export_scores_csv(SCORES, tmp_path / "scores.csv")
    df = pd.read_csv(path)
    assert list(df.columns) == ["id", "name", "email", "score", "total", "submittedAt"]
    assert list(df["name"]) == ["Bob", "Ann"]


async def test_show_scores_paged(tmp_path):
    out = []
    resolver = StubResolver(scores={"total": 5, "items": SCORES})

    scores = await show_scores(resolver, "k", limit=2, csv_path=str(tmp_path / "out.csv"), output=out.append)

    assert scores == SCORES
    assert out[0] == "Showing 2 of 5 submissions"
    assert (tmp_path / "out.csv").exists()


async def test_show_scores_failure():
    out = []
    assert await show_scores(StubResolver(), "k", output=out.append) is None
    assert out[0].startswith("Could not load scores")


def test_parser():
    args = build_parser().parse_args(["--base", "http://x", "scores", "--key", "k", "--limit", "5"])
    assert args.command == "scores"
    assert args.base == "http://x"
    assert args.limit == 5
