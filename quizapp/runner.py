# quizapp/runner.py
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import pandas as pd
from pydantic import ValidationError

from .config import Settings
from .logging_config import setup_logging
from .models import SCORE_COLUMNS, PublicQuestion, SubmissionRecord
from .resolver import EndpointResolver, ResolutionError

logger = logging.getLogger('quizapp.runner')

FORM = 'form'
QUIZ = 'quiz'
RESULT = 'result'


class QuizSession:
    """
    One quiz attempt: form -> quiz -> result.

    A failed question load goes back to the form. A failed submission
    stays on the quiz with the selections kept, so it can be retried.
    """

    def __init__(self, resolver: EndpointResolver, name: str = '', email: str = ''):
        self.resolver = resolver
        self.name = name.strip()
        self.email = email.strip()
        self.state = FORM
        self.questions: List[PublicQuestion] = []
        self.selections: Dict[Union[int, str], int] = {}
        self.record: Optional[SubmissionRecord] = None
        self.error: Optional[str] = None

    async def start(self) -> bool:
        """Load the question set; a new start discards any previous attempt."""
        self.state = QUIZ
        self.questions = []
        self.selections = {}
        self.record = None
        self.error = None

        try:
            body = await self.resolver.fetch_questions()
            if not isinstance(body, list):
                raise ValueError(f'expected a list of questions, got {type(body).__name__}')
            self.questions = [PublicQuestion.model_validate(item) for item in body]
        except (ResolutionError, ValidationError, ValueError) as e:
            logger.error(f"Could not load questions: {e}")
            self.error = f'Could not load questions: {e}'
            self.state = FORM
            return False
        return True

    def select(self, question_id, choice_index: int) -> None:
        for q in self.questions:
            if q.id == question_id and type(q.id) is type(question_id):
                if not 0 <= choice_index < len(q.options):
                    raise ValueError(f'choice {choice_index} out of range for question {question_id!r}')
                self.selections[q.id] = choice_index
                return
        raise KeyError(question_id)

    def answers(self) -> List[dict]:
        return [{'id': q.id, 'choiceIndex': self.selections.get(q.id)} for q in self.questions]

    def payload(self) -> dict:
        return {'name': self.name, 'email': self.email, 'answers': self.answers()}

    async def submit(self) -> bool:
        if self.state != QUIZ:
            raise RuntimeError(f'cannot submit from state {self.state!r}')
        self.error = None

        try:
            body = await self.resolver.submit(self.payload())
            record = SubmissionRecord.model_validate(body)
        except (ResolutionError, ValidationError) as e:
            logger.error(f"Submission failed: {e}")
            self.error = f'Submission failed: {e}'
            return False

        self.record = record
        self.state = RESULT
        return True


def render_question(index: int, question: PublicQuestion) -> str:
    lines = [f"{index + 1}. {question.question}"]
    for i, option in enumerate(question.options):
        lines.append(f"   {i + 1}) {option}")
    return '\n'.join(lines)


def render_result(record: SubmissionRecord, questions: Optional[List[PublicQuestion]] = None) -> str:
    prompts = {q.id: q.question for q in (questions or [])}
    lines = [f"Score: {record.score} / {record.total}", f"Record ID: {record.id}"]
    for n, detail in enumerate(record.details, start=1):
        if detail.chosen is None:
            mark = 'not answered'
        elif detail.is_correct:
            mark = 'correct'
        else:
            mark = f'wrong (answer was option {detail.correct + 1})'
        prompt = prompts.get(detail.id, f'Question {detail.id}')
        lines.append(f"{n}. {prompt}: {mark}")
    return '\n'.join(lines)


def scores_frame(scores: List[dict]) -> pd.DataFrame:
    return pd.DataFrame(scores).reindex(columns=SCORE_COLUMNS)


def render_score_table(scores: List[dict]) -> str:
    if not scores:
        return 'No submissions yet.'
    df = scores_frame(scores).fillna('')
    return df.to_string(index=False)


def export_scores_csv(scores: List[dict], path: Union[str, Path]) -> Path:
    path = Path(path)
    scores_frame(scores).to_csv(path, index=False)
    return path


def _read_choice(question: PublicQuestion, input_fn: Callable[[str], str], output: Callable[[str], None]) -> Optional[int]:
    while True:
        raw = input_fn(f"Choice 1-{len(question.options)} (blank to skip): ").strip()
        if not raw:
            return None
        if raw.isdigit() and 1 <= int(raw) <= len(question.options):
            return int(raw) - 1
        output('Invalid choice.')


async def take_quiz(
    session: QuizSession,
    input_fn: Callable[[str], str] = input,
    output: Callable[[str], None] = print,
) -> Optional[SubmissionRecord]:
    """Run one interactive attempt in the terminal."""
    if not await session.start():
        output(session.error)
        return None

    for index, question in enumerate(session.questions):
        output(render_question(index, question))
        choice = _read_choice(question, input_fn, output)
        if choice is not None:
            session.select(question.id, choice)

    while not await session.submit():
        output(session.error)
        if input_fn('Retry submission? [y/N]: ').strip().lower() != 'y':
            return None

    output(render_result(session.record, session.questions))
    return session.record


async def show_scores(
    resolver: EndpointResolver,
    key: str,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    csv_path: Optional[str] = None,
    output: Callable[[str], None] = print,
) -> Optional[List[dict]]:
    """Admin view: fetch stored scores, print them as a table, optionally save CSV."""
    try:
        body = await resolver.fetch_scores(key, limit=limit, offset=offset)
    except ResolutionError as e:
        output(f'Could not load scores: {e}')
        return None

    if isinstance(body, dict) and 'items' in body:
        scores = body['items']
        output(f"Showing {len(scores)} of {body.get('total', len(scores))} submissions")
    elif isinstance(body, list):
        scores = body
    else:
        output(f'Unexpected scores response: {body!r}')
        return None

    output(render_score_table(scores))
    if csv_path:
        output(f"Saved {export_scores_csv(scores, csv_path)}")
    return scores


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='quizapp', description='Quiz client')
    parser.add_argument('--base', help='preferred server base URL')
    parser.add_argument('--timeout', type=float, help='per-request timeout in seconds')
    sub = parser.add_subparsers(dest='command', required=True)

    take = sub.add_parser('take', help='take the quiz')
    take.add_argument('--name', default='')
    take.add_argument('--email', default='')

    scores = sub.add_parser('scores', help='show stored scores (admin)')
    scores.add_argument('--key', required=True)
    scores.add_argument('--limit', type=int)
    scores.add_argument('--offset', type=int)
    scores.add_argument('--csv', dest='csv_path')
    return parser


async def run(args: argparse.Namespace, settings: Settings) -> int:
    resolver = EndpointResolver(
        remote_base=args.base or settings.remote_base,
        local_bases=settings.local_bases,
        timeout=args.timeout or settings.probe_timeout,
    )
    async with resolver:
        if args.command == 'take':
            record = await take_quiz(QuizSession(resolver, args.name, args.email))
            return 0 if record else 1
        scores = await show_scores(resolver, args.key, args.limit, args.offset, args.csv_path)
        return 0 if scores is not None else 1


def main(argv: Optional[List[str]] = None) -> int:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args, settings))


if __name__ == '__main__':
    sys.exit(main())
