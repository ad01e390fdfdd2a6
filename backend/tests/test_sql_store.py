import pytest
from sqlalchemy import delete

from quizduel import db
from quizduel.models import Match, MatchQuestion
from quizduel.services.matches.errors import MatchNotFound, StorageUnavailable
from quizduel.services.matches.question_bank import QuestionBank
from quizduel.services.matches.sql_store import SqlMatchStore
from quizduel.services.matches.store import utcnow


@pytest.fixture()
def store(flask_app):
    with flask_app.app_context():
        yield SqlMatchStore(db)


def _active_match(store, count=10):
    match = store.create_match('1', 'alice')
    items = QuestionBank().draw_question_set(count)
    return store.activate_match(match.id, '2', 'bob', items), items


def test_create_and_activate_persist_records(store):
    match, items = _active_match(store)
    assert match.status == 'active'
    assert match.player_two_id == '2'
    questions = store.list_questions(match.id)
    assert [q.prompt for q in questions] == [i.prompt for i in items]
    assert [q.options for q in questions] == [i.options for i in items]


def test_activate_only_once(store):
    match, _ = _active_match(store)
    assert store.activate_match(match.id, '3', 'carol', QuestionBank().draw_question_set(10)) is None
    assert store.get_match(match.id).player_two_id == '2'
    assert len(store.list_questions(match.id)) == 10


def test_claim_and_score_first_writer_wins(store):
    match, _ = _active_match(store)
    question = store.list_questions(match.id)[0]
    assert store.claim_and_score(question.id, match.id, 2, '2', utcnow()) is True
    assert store.claim_and_score(question.id, match.id, 1, '1', utcnow()) is False
    assert store.get_question(question.id).answered_by == '2'
    fresh = store.get_match(match.id)
    assert (fresh.player_one_score, fresh.player_two_score) == (0, 1)


def test_claim_and_score_is_field_scoped(store):
    match, _ = _active_match(store)
    first, second, third = store.list_questions(match.id)[:3]
    store.claim_and_score(first.id, match.id, 2, '2', utcnow())
    store.claim_and_score(second.id, match.id, 2, '2', utcnow())
    store.claim_and_score(third.id, match.id, 1, '1', utcnow())
    fresh = store.get_match(match.id)
    assert (fresh.player_one_score, fresh.player_two_score) == (1, 2)


def test_claim_and_score_ignores_question_of_other_match(store):
    match, _ = _active_match(store)
    other, _ = _active_match(store)
    question = store.list_questions(other.id)[0]
    assert store.claim_and_score(question.id, match.id, 1, '1', utcnow()) is False
    assert store.get_question(question.id).answered_by is None


def test_claim_is_rolled_back_when_score_cannot_be_written(store):
    match, _ = _active_match(store)
    question = store.list_questions(match.id)[0]
    # sqlite does not enforce the foreign key, so the question outlives its match
    db.session.execute(delete(Match).where(Match.id == match.id))
    db.session.commit()
    with pytest.raises(MatchNotFound):
        store.claim_and_score(question.id, match.id, 1, '1', utcnow())
    assert store.get_question(question.id).answered_by is None


def test_advance_completes_in_same_update(store):
    match, _ = _active_match(store, count=3)
    assert store.advance_match(match.id, 3)
    assert store.advance_match(match.id, 3, expected_index=1)
    assert not store.advance_match(match.id, 3, expected_index=1)
    assert store.get_match(match.id).status == 'active'
    assert store.advance_match(match.id, 3)
    done = store.get_match(match.id)
    assert (done.status, done.current_question_index) == ('completed', 3)
    assert not store.advance_match(match.id, 3)
    assert store.get_match(match.id).current_question_index == 3


def test_list_matches_filters(store):
    waiting = store.create_match('1', 'alice')
    active, _ = _active_match(store)
    assert [m.id for m in store.list_matches(status='waiting')] == [waiting.id]
    assert {m.id for m in store.list_matches(player_id='2')} == {active.id}
    assert {m.id for m in store.list_matches(player_id='1')} == {waiting.id, active.id}


def test_unknown_status_is_a_schema_error(store):
    match = store.create_match('1', 'alice')
    row = db.session.get(Match, match.id)
    row.status = 'paused'
    db.session.commit()
    with pytest.raises(StorageUnavailable):
        store.get_match(match.id)


def test_bad_options_are_a_schema_error(store):
    match, _ = _active_match(store)
    row = db.session.get(MatchQuestion, store.list_questions(match.id)[0].id)
    row.options = ['only', 'three', 'options']
    db.session.commit()
    with pytest.raises(StorageUnavailable):
        store.list_questions(match.id)


def test_missing_tables_raise_storage_unavailable(store):
    MatchQuestion.__table__.drop(db.engine)
    Match.__table__.drop(db.engine)
    with pytest.raises(StorageUnavailable):
        store.create_match('1', 'alice')
    with pytest.raises(StorageUnavailable):
        store.get_match('whatever')
