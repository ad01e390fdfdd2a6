import time
from typing import Set, Tuple

from quizduel import socketio
from . import get_engine
from .errors import MatchError
from .records import ACTIVE


_scheduled_question_keys: Set[Tuple[str, int]] = set()


def schedule_question_timer(app, match_id: str) -> None:
    """Schedule auto-advance for the current question of the given match.

    - Only runs when QUESTION_TIMER_MODE is 'server'; clients own the countdown otherwise
    - No-ops in TESTING mode unless ENABLE_TIMER_IN_TESTS, and then runs inline
    - Sets match.question_deadline so clients can render countdowns
    - Ensures a single timer per (match_id, question index)
    """
    if app.config.get('QUESTION_TIMER_MODE', 'client') != 'server':
        return
    if app.config.get('TESTING') and not app.config.get('ENABLE_TIMER_IN_TESTS'):
        return

    with app.app_context():
        engine = get_engine(app)
        match = engine.store.get_match(match_id)
        if not match or match.status != ACTIVE:
            return

        index = match.current_question_index
        key = (match_id, index)
        duration = int(app.config.get('QUESTION_DURATION_SEC', 30))

        if key in _scheduled_question_keys:
            app.logger.info(f"[timer-skip] match={match_id} question={index} already scheduled")
            return
        _scheduled_question_keys.add(key)

        deadline = time.time() + duration
        engine.set_question_deadline(match_id, deadline)
        app.logger.info(f"[timer-set] match={match_id} question={index} duration={duration}s deadline={deadline}")

    def _worker(mid: str, expected_index: int, delay: int):
        hb = int(app.config.get('TIMER_HEARTBEAT_SEC', 0))
        if hb > 0:
            slept = 0
            while slept < delay:
                step = min(hb, delay - slept)
                time.sleep(step)
                slept += step
                app.logger.info(
                    f"[timer-heartbeat] match={mid} question={expected_index} remaining={max(0, delay - slept)}s"
                )
        else:
            time.sleep(delay)
        with app.app_context():
            _scheduled_question_keys.discard((mid, expected_index))
            eng = get_engine(app)
            try:
                state = eng.advance_question(mid, expected_index=expected_index)
            except MatchError as exc:
                app.logger.warning(f"[timer-abort] match={mid} question={expected_index}: {exc.message}")
                return
            app.logger.info(
                f"[timer-fire] match={mid} expected_question={expected_index} "
                f"actual_question={state.current_question_index} status={state.status}"
            )
            if state.status == ACTIVE:
                schedule_question_timer(app, mid)
            else:
                eng.set_question_deadline(mid, None)

    if app.config.get('TESTING'):
        _worker(match_id, index, duration)
    else:
        socketio.start_background_task(_worker, match_id, index, duration)
