# quizapp/models.py
"""
Records exchanged with the HTTP API and kept in the JSON stores.
Field names are snake_case in Python and camelCase on the wire
(correctIndex, choiceIndex, isCorrect, submittedAt).
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, model_validator
from pydantic.alias_generators import to_camel

QuestionId = Union[StrictInt, StrictStr]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PublicQuestion(CamelModel):
    id: QuestionId
    question: str
    options: List[str]


class Question(PublicQuestion):
    correct_index: StrictInt

    @model_validator(mode='after')
    def check_correct_index(self) -> 'Question':
        if not self.options:
            raise ValueError(f'question {self.id!r} has no options')
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError(
                f'question {self.id!r}: correctIndex {self.correct_index} '
                f'out of range for {len(self.options)} options'
            )
        return self

    def public(self) -> PublicQuestion:
        return PublicQuestion(id=self.id, question=self.question, options=list(self.options))


class Answer(CamelModel):
    id: QuestionId
    # None means the question was left unanswered
    choice_index: Optional[StrictInt] = None


class SubmitRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    answers: List[Answer]


class DetailEntry(CamelModel):
    id: QuestionId
    chosen: Optional[int] = None
    correct: int
    is_correct: bool


class SubmissionRecord(CamelModel):
    id: str
    name: str = 'anonymous'
    email: str = ''
    score: int
    total: int
    details: List[DetailEntry] = Field(default_factory=list)
    submitted_at: str


class ScorePage(BaseModel):
    total: int
    items: List[dict]


# column order for the admin score table and CSV export
SCORE_COLUMNS = ['id', 'name', 'email', 'score', 'total', 'submittedAt']
