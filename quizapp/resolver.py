# quizapp/resolver.py
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import httpx

logger = logging.getLogger('quizapp.resolver')

DEFAULT_LOCAL_BASES = ('http://localhost:3001', 'http://127.0.0.1:3001')
API_PREFIX = '/api'
BODY_LOG_LIMIT = 200

QUESTIONS = 'questions'
SCORES = 'scores'


@dataclass(frozen=True)
class Structured:
    """2xx response with a JSON body."""
    value: Any


@dataclass(frozen=True)
class Text:
    """2xx response whose body is not JSON."""
    text: str


@dataclass(frozen=True)
class Failure:
    """Non-2xx status, or no response at all (status is None)."""
    status: Optional[int]
    body: str


ProbeResult = Union[Structured, Text, Failure]


class ResolutionError(Exception):
    """No candidate URL answered; carries every URL that was tried."""

    def __init__(self, action: str, attempted: Sequence[str]):
        self.attempted = list(attempted)
        super().__init__(f"{action} failed. Tried: {', '.join(self.attempted) or '(no candidates)'}")


def dedupe(bases: Iterable[Optional[str]]) -> List[str]:
    seen = set()
    out = []
    for base in bases:
        if not base:
            continue
        base = base.strip().rstrip('/')
        if base and base not in seen:
            seen.add(base)
            out.append(base)
    return out


def category_for(path: str) -> str:
    return SCORES if path.lstrip('/').startswith(SCORES) else QUESTIONS


def body_of(result: ProbeResult) -> Any:
    if isinstance(result, Structured):
        return result.value
    if isinstance(result, Text):
        return result.text
    raise ValueError('failed probe has no body')


def classify(response: httpx.Response) -> ProbeResult:
    if not response.is_success:
        return Failure(response.status_code, response.text)
    try:
        return Structured(response.json())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return Text(response.text)


class EndpointResolver:
    """
    Finds a reachable quiz server among candidate base URLs.

    Reads (questions, scores) are probed sequentially: for each base the
    bare URL and then the /api-prefixed one. The first base that answers
    is cached per resource category and reused until a request through it
    fails, at which point discovery runs again.

    Submissions POST directly to each base in turn with no probing and
    no /api variant. They are not idempotent: a POST that failed on one
    host may still have been recorded there.
    """

    def __init__(
        self,
        remote_base: Optional[str] = None,
        origin: Optional[str] = None,
        local_bases: Sequence[str] = DEFAULT_LOCAL_BASES,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
    ):
        self.remote_base = remote_base
        self.origin = origin
        self.local_bases = tuple(local_bases)
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._cache: Dict[str, Optional[str]] = {QUESTIONS: None, SCORES: None}

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> 'EndpointResolver':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def candidate_bases(self) -> List[str]:
        return dedupe([self.remote_base, self.origin, *self.local_bases])

    def cached_base(self, category: str) -> Optional[str]:
        return self._cache.get(category)

    def forget(self, category: Optional[str] = None) -> None:
        for key in ([category] if category else list(self._cache)):
            self._cache[key] = None

    async def probe(self, url: str, params: Optional[dict] = None) -> ProbeResult:
        try:
            response = await self.client.get(url, params=params, timeout=self.timeout)
        except httpx.HTTPError as e:
            result = Failure(None, f'{type(e).__name__}: {e}')
        else:
            result = classify(response)

        if isinstance(result, Failure):
            logger.warning(f"Probe {url} failed: status={result.status} body={result.body[:BODY_LOG_LIMIT]!r}")
        return result

    async def resolve_and_fetch(
        self,
        path: str,
        token: Optional[str] = None,
        params: Optional[dict] = None,
    ) -> Any:
        """
        GET a resource from whichever server answers first.

        Args:
            path: resource path such as '/questions' or '/scores'
            token: sent as the 'key' query parameter when given
            params: extra query parameters

        Returns:
            Parsed JSON body, or the raw text for a non-JSON 2xx body.

        Raises:
            ResolutionError: listing every URL attempted.
        """
        if not path.startswith('/'):
            path = '/' + path
        category = category_for(path)
        query = dict(params or {})
        if token:
            query['key'] = token

        attempted = []
        cached = self._cache.get(category)
        if cached:
            url = cached + path
            attempted.append(url)
            result = await self.probe(url, query or None)
            if not isinstance(result, Failure):
                return body_of(result)
            logger.info(f"Cached {category} base {cached} failed, rediscovering")
            self._cache[category] = None

        for base in self.candidate_bases():
            for url in (base + path, base + API_PREFIX + path):
                attempted.append(url)
                result = await self.probe(url, query or None)
                if isinstance(result, Failure):
                    continue
                self._cache[category] = base
                logger.info(f"Resolved {category} base: {base}")
                return body_of(result)

        error = ResolutionError(f'GET {path}', attempted)
        logger.error(str(error))
        raise error

    async def submit(self, payload: dict, path: str = '/submit') -> Any:
        """POST a submission to the cached base, then to each candidate until one succeeds."""
        cached = self._cache.get(QUESTIONS)
        attempted = []

        for base in dedupe([cached, *self.candidate_bases()]):
            url = base + path
            attempted.append(url)
            try:
                response = await self.client.post(url, json=payload, timeout=self.timeout)
            except httpx.HTTPError as e:
                result = Failure(None, f'{type(e).__name__}: {e}')
            else:
                result = classify(response)

            if isinstance(result, Failure):
                logger.warning(f"Submit to {url} failed: status={result.status} body={result.body[:BODY_LOG_LIMIT]!r}")
                if base == cached:
                    self._cache[QUESTIONS] = None
                continue

            self._cache[QUESTIONS] = base
            return body_of(result)

        error = ResolutionError(f'POST {path}', attempted)
        logger.error(str(error))
        raise error

    async def fetch_questions(self) -> List[dict]:
        return await self.resolve_and_fetch('/questions')

    async def fetch_scores(self, key: str, limit: Optional[int] = None, offset: Optional[int] = None) -> Any:
        params = {}
        if limit:
            params['limit'] = limit
        if offset:
            params['offset'] = offset
        return await self.resolve_and_fetch('/scores', token=key, params=params)
