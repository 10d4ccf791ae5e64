# quizapp/main.py
import hmac
import io
import logging
import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

import pandas as pd
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings
from .logging_config import setup_logging
from .models import SCORE_COLUMNS, PublicQuestion, ScorePage, SubmissionRecord, SubmitRequest
from .scoring import build_record
from .storage import QuestionStore, ScoreStore, StoreError

logger = logging.getLogger('quizapp.api')

# handlers are plain def: the stores do blocking file I/O
router = APIRouter()


def _parse_int(raw: Optional[str]) -> int:
    """Leading integer of a query value, 0 when there is none."""
    match = re.match(r'\s*([+-]?\d+)', raw or '')
    return int(match.group(1)) if match else 0


def _submitted_at(record: dict) -> datetime:
    raw = record.get('submittedAt') if isinstance(record, dict) else None
    try:
        ts = datetime.fromisoformat(str(raw).replace('Z', '+00:00'))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def sort_newest_first(scores: List[dict]) -> List[dict]:
    return sorted(scores, key=_submitted_at, reverse=True)


def check_scores_key(settings: Settings, provided: Optional[str]) -> None:
    """Refuse score access unless the server has a key and the caller sent it."""
    if not settings.scores_key:
        raise HTTPException(
            status_code=403,
            detail='Scores endpoint is disabled on this server (SCORES_KEY not set).',
        )
    if not provided or not hmac.compare_digest(provided.encode(), settings.scores_key.encode()):
        raise HTTPException(status_code=403, detail='Forbidden - invalid or missing key')


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def _load_scores(request: Request) -> List[dict]:
    try:
        return request.app.state.score_store.load()
    except StoreError as e:
        logger.error(f"Scores file unavailable: {e}")
        raise HTTPException(status_code=500, detail='Scores file missing')


@router.get('/questions', response_model=List[PublicQuestion])
def get_questions(request: Request):
    """Question list without the answer key."""
    try:
        questions = request.app.state.question_store.load()
    except StoreError as e:
        logger.error(f"Questions file unavailable: {e}")
        raise HTTPException(status_code=500, detail='Questions file missing')
    return [q.public() for q in questions]


@router.post('/submit', response_model=SubmissionRecord)
def submit(req: SubmitRequest, request: Request):
    """
    Score a submission against the current question set and store it.
    Scoring always happens here, whatever the client computed.
    """
    try:
        questions = request.app.state.question_store.load()
    except StoreError as e:
        logger.error(f"Questions file unavailable: {e}")
        raise HTTPException(status_code=500, detail='Questions missing')

    record = build_record(questions, req)
    try:
        request.app.state.score_store.append(record)
    except StoreError as e:
        logger.error(f"Could not store submission {record.id}: {e}")
        raise HTTPException(status_code=500, detail='Scores file unwritable')
    logger.info(f"Submission {record.id} from {record.name}: {record.score}/{record.total}")
    return record


@router.get('/scores')
def get_scores(
    request: Request,
    key: Optional[str] = None,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
):
    """
    Stored submissions, newest first.

    With limit > 0 the response is {total, items} for one page starting
    at offset; otherwise the bare sorted array.
    """
    check_scores_key(_settings(request), key)
    scores = sort_newest_first(_load_scores(request))

    page_size = _parse_int(limit)
    start = max(_parse_int(offset), 0)
    if page_size > 0:
        return ScorePage(total=len(scores), items=scores[start:start + page_size])
    return scores


@router.get('/scores.csv')
def export_scores(request: Request, key: Optional[str] = None):
    """CSV export of the admin score view."""
    check_scores_key(_settings(request), key)
    scores = sort_newest_first(_load_scores(request))

    df = pd.DataFrame(scores).reindex(columns=SCORE_COLUMNS)
    buf = io.StringIO()
    df.to_csv(buf, index=False)
    return Response(
        content=buf.getvalue(),
        media_type='text/csv',
        headers={'Content-Disposition': 'attachment; filename="scores.csv"'},
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            app.state.score_store.ensure_exists()
        except StoreError as e:
            logger.error(f"Score store unavailable at start-up: {e}")
        yield

    app = FastAPI(title='Quiz App', version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_methods=['GET', 'POST', 'OPTIONS'],
        allow_headers=['Content-Type'],
    )

    app.state.settings = settings
    app.state.question_store = QuestionStore(settings.questions_file)
    app.state.score_store = ScoreStore(settings.scores_file)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse({'error': exc.detail}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        logger.info(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
        return JSONResponse({'error': 'Malformed request body', 'details': str(exc.errors())}, status_code=400)

    @app.get('/')
    async def root():
        """Root endpoint - API information"""
        return {
            'service': 'Quiz App',
            'status': 'running',
            'version': __version__,
            'endpoints': {
                'health': '/health',
                'questions': 'GET /questions',
                'submit': 'POST /submit',
                'scores': 'GET /scores?key=',
                'export': 'GET /scores.csv?key=',
            }
        }

    @app.get('/health')
    async def health_check():
        """Health check endpoint."""
        return {'status': 'healthy'}

    app.include_router(router)
    # mirror for deployments behind a proxy that keeps the /api prefix
    app.include_router(router, prefix='/api')
    return app


app = create_app()


if __name__ == '__main__':
    import uvicorn
    uvicorn.run('quizapp.main:app', host='0.0.0.0', port=app.state.settings.port)
