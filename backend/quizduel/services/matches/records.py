"""Typed records exchanged between the match store and the engine.

Stores convert whatever they hold (ORM rows, dicts) into these frozen
dataclasses through ``MatchRecord.build`` / ``QuestionRecord.build``, which
reject shapes the engine cannot trust with ``StorageUnavailable``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from .errors import StorageUnavailable

WAITING = 'waiting'
ACTIVE = 'active'
COMPLETED = 'completed'
STATUSES = (WAITING, ACTIVE, COMPLETED)


def _construct(cls, values):
    try:
        return cls(**values)
    except TypeError as exc:
        raise StorageUnavailable(f'{cls.__name__} fields do not match the stored row: {exc}') from exc


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class MatchRecord:
    id: str
    player_one_id: str
    player_one_name: str
    player_two_id: Optional[str]
    player_two_name: Optional[str]
    player_one_score: int
    player_two_score: int
    status: str
    current_question_index: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    question_deadline: Optional[float] = None
    is_local: bool = False

    @classmethod
    def build(cls, **values) -> 'MatchRecord':
        record = _construct(cls, values)
        if not record.id or not record.player_one_id:
            raise StorageUnavailable(f'Match row is missing its identity: {values!r}')
        if record.status not in STATUSES:
            raise StorageUnavailable(f'Match {record.id} has unknown status {record.status!r}')
        if record.player_one_score is None or record.player_two_score is None \
                or record.player_one_score < 0 or record.player_two_score < 0:
            raise StorageUnavailable(f'Match {record.id} has an invalid score')
        if record.current_question_index is None or record.current_question_index < 0:
            raise StorageUnavailable(f'Match {record.id} has an invalid question index')
        return record

    def slot_of(self, player_id: str) -> Optional[int]:
        """1 or 2 for a participant, None for anyone else."""
        if player_id == self.player_one_id:
            return 1
        if self.player_two_id is not None and player_id == self.player_two_id:
            return 2
        return None

    def to_dict(self):
        return {
            'id': self.id,
            'player_one_id': self.player_one_id,
            'player_one_name': self.player_one_name,
            'player_two_id': self.player_two_id,
            'player_two_name': self.player_two_name,
            'player_one_score': self.player_one_score,
            'player_two_score': self.player_two_score,
            'status': self.status,
            'current_question_index': self.current_question_index,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'is_local': self.is_local,
        }


@dataclass(frozen=True)
class QuestionRecord:
    id: str
    match_id: str
    position: int
    prompt: str
    options: Tuple[str, ...]
    correct_answer: str
    answered_by: Optional[str] = None
    answered_at: Optional[datetime] = None

    @classmethod
    def build(cls, **values) -> 'QuestionRecord':
        options = values.get('options')
        if not isinstance(options, (list, tuple)) or len(options) != 4 \
                or not all(isinstance(o, str) for o in options):
            raise StorageUnavailable(f"Question {values.get('id')} does not have four text options")
        values['options'] = tuple(options)
        record = _construct(cls, values)
        if record.correct_answer not in record.options:
            raise StorageUnavailable(f'Question {record.id} has a correct answer outside its options')
        return record

    def to_dict(self):
        return {
            'id': self.id,
            'match_id': self.match_id,
            'position': self.position,
            'prompt': self.prompt,
            'options': list(self.options),
            'correct_answer': self.correct_answer,
            'answered_by': self.answered_by,
            'answered_at': _iso(self.answered_at),
        }


@dataclass(frozen=True)
class GameState:
    id: str
    player_one_id: str
    player_two_id: Optional[str]
    player_one_username: str
    player_two_username: Optional[str]
    player_one_score: int
    player_two_score: int
    status: str
    current_question_index: int
    question_count: int
    current_question: Optional[QuestionRecord]
    questions: List[QuestionRecord] = field(default_factory=list)
    winner: Optional[str] = None
    question_deadline: Optional[float] = None
    is_local: bool = False

    def to_dict(self):
        return {
            'id': self.id,
            'player_one_id': self.player_one_id,
            'player_two_id': self.player_two_id,
            'player_one_username': self.player_one_username,
            'player_two_username': self.player_two_username,
            'player_one_score': self.player_one_score,
            'player_two_score': self.player_two_score,
            'status': self.status,
            'current_question_index': self.current_question_index,
            'question_count': self.question_count,
            'current_question': self.current_question.to_dict() if self.current_question else None,
            'questions': [q.to_dict() for q in self.questions],
            'winner': self.winner,
            'question_deadline': self.question_deadline,
            'is_local': self.is_local,
        }


@dataclass(frozen=True)
class AnswerResult:
    is_correct: bool
    game_state: GameState

    def to_dict(self):
        return {'is_correct': self.is_correct, 'state': self.game_state.to_dict()}
