import logging
from typing import Optional

from .records import COMPLETED, MatchRecord, QuestionRecord
from .store import MatchStore, utcnow

logger = logging.getLogger(__name__)


def is_correct_answer(answer: str, correct_answer: str) -> bool:
    """Exact, case-sensitive comparison with the designated option."""
    return isinstance(answer, str) and answer == correct_answer


def award_first_correct(store: MatchStore, match: MatchRecord, question: QuestionRecord, player_id: str) -> bool:
    """Lock the question for ``player_id`` and give them one point.

    The lock is a conditional write committed with the score, so when both
    players answer correctly at the same moment only one claim succeeds and
    only that player scores.
    Returns whether this call won the claim.
    """
    slot = match.slot_of(player_id)
    if slot is None or question.answered_by is not None:
        return False
    if not store.claim_and_score(question.id, match.id, slot, player_id, utcnow()):
        return False
    logger.info(f"[score] match={match.id} question={question.id} player={player_id} slot={slot} +1")
    return True


def winner_of(match: MatchRecord) -> Optional[str]:
    """Username of the higher scorer once the match is over; None on a tie."""
    if match.status != COMPLETED:
        return None
    if match.player_one_score > match.player_two_score:
        return match.player_one_name
    if match.player_two_score > match.player_one_score:
        return match.player_two_name
    return None
