"""SQLAlchemy-backed match store.

All writes are UPDATE statements scoped to the fields they change, so two
players hitting the same row never overwrite each other's columns. An answer
lock commits in the same transaction as its score increment.
"""

import functools

from sqlalchemy import case, or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from quizduel.models import Match, MatchQuestion
from .errors import MatchNotFound, StorageUnavailable
from .records import ACTIVE, COMPLETED, WAITING, MatchRecord, QuestionRecord
from .store import MatchStore, utcnow

_NO_SYNC = {'synchronize_session': False}


def _guarded(fn):
    """Roll back and re-raise database failures as StorageUnavailable."""
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            self._db.session.rollback()
            raise StorageUnavailable(f'{fn.__name__} failed: {exc.__class__.__name__}: {exc}') from exc
    return wrapper


def _match_record(row: Match) -> MatchRecord:
    return MatchRecord.build(
        id=row.id,
        player_one_id=row.player_one_id,
        player_one_name=row.player_one_name,
        player_two_id=row.player_two_id,
        player_two_name=row.player_two_name,
        player_one_score=row.player_one_score,
        player_two_score=row.player_two_score,
        status=row.status,
        current_question_index=row.current_question_index,
        created_at=row.created_at,
        updated_at=row.updated_at,
        question_deadline=row.question_deadline,
    )


def _question_record(row: MatchQuestion) -> QuestionRecord:
    return QuestionRecord.build(
        id=row.id,
        match_id=row.match_id,
        position=row.position,
        prompt=row.prompt,
        options=row.options,
        correct_answer=row.correct_answer,
        answered_by=row.answered_by,
        answered_at=row.answered_at,
    )


class SqlMatchStore(MatchStore):
    def __init__(self, db):
        self._db = db

    @property
    def _session(self):
        return self._db.session

    @_guarded
    def create_match(self, player_one_id, player_one_name):
        row = Match(
            player_one_id=player_one_id,
            player_one_name=player_one_name,
            player_one_score=0,
            player_two_score=0,
            status=WAITING,
            current_question_index=0,
        )
        self._session.add(row)
        self._session.commit()
        return _match_record(row)

    @_guarded
    def get_match(self, match_id):
        row = self._session.get(Match, match_id, populate_existing=True)
        return _match_record(row) if row else None

    @_guarded
    def activate_match(self, match_id, player_two_id, player_two_name, items):
        result = self._session.execute(
            update(Match)
            .where(Match.id == match_id, Match.status == WAITING, Match.player_two_id.is_(None))
            .values(player_two_id=player_two_id, player_two_name=player_two_name,
                    status=ACTIVE, updated_at=utcnow()),
            execution_options=_NO_SYNC,
        )
        if result.rowcount != 1:
            self._session.rollback()
            return None
        for position, item in enumerate(items):
            self._session.add(MatchQuestion(
                match_id=match_id,
                position=position,
                prompt=item.prompt,
                options=list(item.options),
                correct_answer=item.correct_answer,
            ))
        self._session.commit()
        return self.get_match(match_id)

    @_guarded
    def list_questions(self, match_id):
        rows = self._session.scalars(
            select(MatchQuestion).where(MatchQuestion.match_id == match_id).order_by(MatchQuestion.position)
        ).all()
        return [_question_record(r) for r in rows]

    @_guarded
    def get_question(self, question_id):
        row = self._session.get(MatchQuestion, question_id, populate_existing=True)
        return _question_record(row) if row else None

    @_guarded
    def claim_and_score(self, question_id, match_id, slot, player_id, answered_at):
        claimed = self._session.execute(
            update(MatchQuestion)
            .where(
                MatchQuestion.id == question_id,
                MatchQuestion.match_id == match_id,
                MatchQuestion.answered_by.is_(None),
            )
            .values(answered_by=player_id, answered_at=answered_at),
            execution_options=_NO_SYNC,
        )
        if claimed.rowcount != 1:
            self._session.rollback()
            return False
        column = Match.player_one_score if slot == 1 else Match.player_two_score
        scored = self._session.execute(
            update(Match)
            .where(Match.id == match_id)
            .values({column: column + 1, Match.updated_at: utcnow()}),
            execution_options=_NO_SYNC,
        )
        if scored.rowcount != 1:
            # Release the lock taken above
            self._session.rollback()
            raise MatchNotFound(match_id)
        self._session.commit()
        return True

    @_guarded
    def advance_match(self, match_id, question_count, expected_index=None):
        stmt = update(Match).where(
            Match.id == match_id,
            Match.status == ACTIVE,
            Match.current_question_index < question_count,
        )
        if expected_index is not None:
            stmt = stmt.where(Match.current_question_index == expected_index)
        # SET expressions see the pre-update row, so both columns move together
        stmt = stmt.values(
            current_question_index=Match.current_question_index + 1,
            status=case((Match.current_question_index + 1 >= question_count, COMPLETED), else_=ACTIVE),
            updated_at=utcnow(),
        )
        result = self._session.execute(stmt, execution_options=_NO_SYNC)
        self._session.commit()
        return result.rowcount == 1

    @_guarded
    def set_question_deadline(self, match_id, deadline):
        self._session.execute(
            update(Match).where(Match.id == match_id).values(question_deadline=deadline),
            execution_options=_NO_SYNC,
        )
        self._session.commit()

    @_guarded
    def list_matches(self, status=None, player_id=None):
        stmt = select(Match)
        if status:
            stmt = stmt.where(Match.status == status)
        if player_id:
            stmt = stmt.where(or_(Match.player_one_id == player_id, Match.player_two_id == player_id))
        stmt = stmt.order_by(Match.created_at.desc())
        return [_match_record(r) for r in self._session.scalars(stmt).all()]
