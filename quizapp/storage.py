# quizapp/storage.py
import json
import logging
import os
from pathlib import Path
from typing import Any, List, Union

from pydantic import ValidationError

from .models import Question, SubmissionRecord

logger = logging.getLogger('quizapp.storage')


class StoreError(Exception):
    """A JSON store file is missing, unreadable or holds the wrong shape."""


class JsonFileStore:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> Any:
        try:
            with self.path.open('r', encoding='utf-8') as f:
                return json.load(f)
        except FileNotFoundError:
            raise StoreError(f'{self.path} not found')
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f'Cannot read {self.path}: {e}') from e

    def write(self, data: Any) -> None:
        """Rewrite the whole file through a temp file and an atomic rename."""
        tmp_path = self.path.with_name(self.path.name + '.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open('w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path.is_file():
                tmp_path.unlink()
            raise StoreError(f'Cannot write {self.path}: {e}') from e


class QuestionStore(JsonFileStore):
    def load(self) -> List[Question]:
        raw = self.read()
        if not isinstance(raw, list):
            raise StoreError(f'{self.path} must hold a JSON array of questions')
        try:
            return [Question.model_validate(item) for item in raw]
        except ValidationError as e:
            raise StoreError(f'Invalid question in {self.path}: {e}') from e


class ScoreStore(JsonFileStore):
    """
    Append-only list of submission records.

    Each append reads the whole file and writes it back, with no locking:
    two submissions interleaving their read and write lose one record.
    """

    def ensure_exists(self) -> None:
        if not self.exists():
            logger.info(f"Creating empty score store at {self.path}")
            self.write([])

    def load(self) -> List[dict]:
        raw = self.read()
        if not isinstance(raw, list):
            raise StoreError(f'{self.path} must hold a JSON array of scores')
        return raw

    def save(self, scores: List[dict]) -> None:
        self.write(scores)

    def append(self, record: SubmissionRecord) -> None:
        # a corrupt store is left alone rather than overwritten
        scores = self.load() if self.exists() else []
        scores.append(record.model_dump(by_alias=True))
        self.save(scores)
