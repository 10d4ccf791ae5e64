# quizapp/config.py
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass
class Settings:
    """Server and client settings, read from the environment."""

    port: int = 3001
    cors_origin: str = '*'
    questions_file: Path = Path('questions.json')
    scores_file: Path = Path('scores.json')
    # empty key disables the score endpoints
    scores_key: str = ''
    remote_base: Optional[str] = None
    probe_timeout: float = 5.0
    log_level: str = 'INFO'
    local_bases: tuple = ('http://localhost:3001', 'http://127.0.0.1:3001')

    @classmethod
    def from_env(cls) -> 'Settings':
        return cls(
            port=_env_int('PORT', 3001),
            cors_origin=os.environ.get('CORS_ORIGIN', '*'),
            questions_file=Path(os.environ.get('QUESTIONS_FILE_PATH', 'questions.json')),
            scores_file=Path(os.environ.get('SCORES_FILE_PATH', 'scores.json')),
            scores_key=os.environ.get('SCORES_KEY', ''),
            remote_base=os.environ.get('QUIZ_API_BASE') or None,
            probe_timeout=_env_float('QUIZ_PROBE_TIMEOUT', 5.0),
            log_level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
        )
