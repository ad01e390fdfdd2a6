"""Match domain services: engine, storage, scoring, notifications and timers.

HTTP routes and socket handlers reach the engine through ``get_engine`` and
never touch match rows directly, keeping transport concerns separated from
the match lifecycle.
"""

from flask import current_app

from .engine import SessionEngine
from .question_bank import QuestionBank
from .resilience import ResilientMatchStore
from .store import EphemeralMatchStore


def build_engine(app, db, notifier) -> SessionEngine:
    from .sql_store import SqlMatchStore

    bank = QuestionBank()
    question_count = int(app.config.get('QUESTIONS_PER_MATCH', 10))
    store = SqlMatchStore(db)
    if app.config.get('STORAGE_FALLBACK_ENABLED', True):
        store = ResilientMatchStore(store, EphemeralMatchStore(bank, question_count))
    engine = SessionEngine(store=store, bank=bank, notifier=notifier, question_count=question_count)
    app.extensions['match_engine'] = engine
    return engine


def get_engine(app=None) -> SessionEngine:
    return (app or current_app).extensions['match_engine']
