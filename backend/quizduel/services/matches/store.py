"""Match storage interface and its in-memory implementations."""

import logging
import threading
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from .errors import MatchNotFound, StorageUnavailable
from .question_bank import QuestionBank, QuestionItem
from .records import ACTIVE, COMPLETED, WAITING, MatchRecord, QuestionRecord

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class MatchStore:
    """Record-oriented store for matches and their questions.

    Every mutation is field scoped. Implementations raise
    ``StorageUnavailable`` when the backing store cannot serve a call.
    """

    def create_match(self, player_one_id: str, player_one_name: str) -> MatchRecord:
        raise NotImplementedError

    def get_match(self, match_id: str) -> Optional[MatchRecord]:
        raise NotImplementedError

    def activate_match(self, match_id: str, player_two_id: str, player_two_name: str,
                       items: Sequence[QuestionItem]) -> Optional[MatchRecord]:
        """Seat player two, attach the question set and mark the match active.

        Applies only while the match is waiting without a second player;
        returns None otherwise.
        """
        raise NotImplementedError

    def list_questions(self, match_id: str) -> List[QuestionRecord]:
        raise NotImplementedError

    def get_question(self, question_id: str) -> Optional[QuestionRecord]:
        raise NotImplementedError

    def claim_and_score(self, question_id: str, match_id: str, slot: int, player_id: str,
                        answered_at: datetime) -> bool:
        """Lock the question for ``player_id`` and add one point to ``slot``.

        Both writes land together or not at all. The lock is only taken while
        answered_by is unset; True when this call won it.
        """
        raise NotImplementedError

    def advance_match(self, match_id: str, question_count: int, expected_index: Optional[int] = None) -> bool:
        """Move an active match to its next question, completing it at the end.

        True when the index moved.
        """
        raise NotImplementedError

    def set_question_deadline(self, match_id: str, deadline: Optional[float]) -> None:
        raise NotImplementedError

    def list_matches(self, status: Optional[str] = None, player_id: Optional[str] = None) -> List[MatchRecord]:
        """Newest first, filtered by status and/or participant."""
        raise NotImplementedError


class MemoryMatchStore(MatchStore):
    """Process-local store guarded by a single lock."""

    is_local = False
    id_prefix = ''

    def __init__(self):
        self._lock = threading.Lock()
        self._matches: Dict[str, dict] = {}
        self._questions: Dict[str, dict] = {}

    def _match_record(self, row) -> MatchRecord:
        return MatchRecord.build(is_local=self.is_local, **row)

    @staticmethod
    def _question_record(row) -> QuestionRecord:
        return QuestionRecord.build(**row)

    def _insert_match(self, row):
        self._matches[row['id']] = row
        return row

    def create_match(self, player_one_id, player_one_name):
        now = utcnow()
        row = {
            'id': f'{self.id_prefix}{new_id()}',
            'player_one_id': player_one_id,
            'player_one_name': player_one_name,
            'player_two_id': None,
            'player_two_name': None,
            'player_one_score': 0,
            'player_two_score': 0,
            'status': WAITING,
            'current_question_index': 0,
            'created_at': now,
            'updated_at': now,
            'question_deadline': None,
        }
        with self._lock:
            self._insert_match(row)
            return self._match_record(row)

    def get_match(self, match_id):
        with self._lock:
            row = self._matches.get(match_id)
            return self._match_record(row) if row else None

    def _attach_questions(self, match_id, items):
        for position, item in enumerate(items):
            qid = f'{self.id_prefix}{new_id()}'
            self._questions[qid] = {
                'id': qid,
                'match_id': match_id,
                'position': position,
                'prompt': item.prompt,
                'options': list(item.options),
                'correct_answer': item.correct_answer,
                'answered_by': None,
                'answered_at': None,
            }

    def activate_match(self, match_id, player_two_id, player_two_name, items):
        with self._lock:
            row = self._matches.get(match_id)
            if not row or row['status'] != WAITING or row['player_two_id'] is not None:
                return None
            row.update(player_two_id=player_two_id, player_two_name=player_two_name,
                       status=ACTIVE, updated_at=utcnow())
            self._attach_questions(match_id, items)
            return self._match_record(row)

    def list_questions(self, match_id):
        with self._lock:
            rows = [q for q in self._questions.values() if q['match_id'] == match_id]
            return [self._question_record(q) for q in sorted(rows, key=lambda q: q['position'])]

    def get_question(self, question_id):
        with self._lock:
            row = self._questions.get(question_id)
            return self._question_record(row) if row else None

    def claim_and_score(self, question_id, match_id, slot, player_id, answered_at):
        key = 'player_one_score' if slot == 1 else 'player_two_score'
        with self._lock:
            match = self._matches.get(match_id)
            if match is None:
                raise MatchNotFound(match_id)
            row = self._questions.get(question_id)
            if not row or row['match_id'] != match_id or row['answered_by'] is not None:
                return False
            row['answered_by'] = player_id
            row['answered_at'] = answered_at
            match[key] += 1
            match['updated_at'] = utcnow()
            return True

    def advance_match(self, match_id, question_count, expected_index=None):
        with self._lock:
            row = self._matches.get(match_id)
            if not row or row['status'] != ACTIVE or row['current_question_index'] >= question_count:
                return False
            if expected_index is not None and row['current_question_index'] != expected_index:
                return False
            row['current_question_index'] += 1
            if row['current_question_index'] >= question_count:
                row['status'] = COMPLETED
            row['updated_at'] = utcnow()
            return True

    def set_question_deadline(self, match_id, deadline):
        with self._lock:
            row = self._matches.get(match_id)
            if row:
                row['question_deadline'] = deadline

    def list_matches(self, status=None, player_id=None):
        with self._lock:
            rows = list(self._matches.values())
            if status:
                rows = [r for r in rows if r['status'] == status]
            if player_id:
                rows = [r for r in rows if player_id in (r['player_one_id'], r['player_two_id'])]
            rows.sort(key=lambda r: r['created_at'], reverse=True)
            return [self._match_record(r) for r in rows]


class EphemeralMatchStore(MemoryMatchStore):
    """Fallback store used while the database is unavailable.

    A match id it has never seen is synthesized as an active demo match
    between two placeholder players with a fresh question set, so the state
    read path keeps answering. Synthesized matches are dropped again with
    ``forget`` once the database serves that id, and only the most recent
    ``max_synthesized`` are kept. Nothing here is shared with other processes.
    """

    is_local = True
    id_prefix = 'local-'

    def __init__(self, bank: Optional[QuestionBank] = None, question_count: int = 10,
                 max_synthesized: int = 256):
        super().__init__()
        self.bank = bank or QuestionBank()
        self.question_count = question_count
        self.max_synthesized = max_synthesized
        self._synthesized: 'OrderedDict[str, None]' = OrderedDict()

    def _synthesize(self, match_id):
        now = utcnow()
        row = self._insert_match({
            'id': match_id,
            'player_one_id': 'local-player-1',
            'player_one_name': 'Player 1',
            'player_two_id': 'local-player-2',
            'player_two_name': 'Player 2',
            'player_one_score': 0,
            'player_two_score': 0,
            'status': ACTIVE,
            'current_question_index': 0,
            'created_at': now,
            'updated_at': now,
            'question_deadline': None,
        })
        self._attach_questions(match_id, self.bank.draw_question_set(self.question_count))
        self._synthesized[match_id] = None
        while len(self._synthesized) > self.max_synthesized:
            oldest, _ = self._synthesized.popitem(last=False)
            self._drop(oldest)
        logger.warning(f"[storage-fallback] synthesized demo match={match_id}")
        return row

    def _drop(self, match_id):
        self._matches.pop(match_id, None)
        for qid in [qid for qid, q in self._questions.items() if q['match_id'] == match_id]:
            del self._questions[qid]

    def get_match(self, match_id):
        with self._lock:
            row = self._matches.get(match_id) or self._synthesize(match_id)
            return self._match_record(row)

    def forget(self, match_id: str) -> None:
        """Drop a synthesized match and its questions; local matches are kept."""
        with self._lock:
            if match_id in self._synthesized:
                del self._synthesized[match_id]
                self._drop(match_id)

    def claim_and_score(self, question_id, match_id, slot, player_id, answered_at):
        with self._lock:
            known = match_id in self._matches
        if not known:
            # Matches held by the primary are never scored here
            raise StorageUnavailable(f'Answer for match {match_id} cannot be recorded while storage is down')
        return super().claim_and_score(question_id, match_id, slot, player_id, answered_at)
