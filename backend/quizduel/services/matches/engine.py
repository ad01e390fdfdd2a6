"""Match lifecycle: waiting -> active -> completed.

The engine holds no match state of its own. Every operation reads and
writes through the store and signals the notifier after a mutation so
subscribed clients re-read the state.
"""

import logging
from typing import List, Optional

from .errors import (
    MatchNotActive,
    MatchNotFound,
    MatchNotJoinable,
    NotAParticipant,
    QuestionNotFound,
    Unauthorized,
)
from .notifier import ChangeNotifier
from .question_bank import QuestionBank
from .records import ACTIVE, WAITING, AnswerResult, GameState, MatchRecord
from .scoring import award_first_correct, is_correct_answer, winner_of
from .store import MatchStore

logger = logging.getLogger(__name__)

DEFAULT_QUESTION_COUNT = 10


class SessionEngine:
    def __init__(self, store: MatchStore, bank: QuestionBank, notifier: ChangeNotifier,
                 question_count: int = DEFAULT_QUESTION_COUNT):
        self.store = store
        self.bank = bank
        self.notifier = notifier
        self.question_count = question_count

    def _require_match(self, match_id: str) -> MatchRecord:
        match = self.store.get_match(match_id)
        if match is None:
            raise MatchNotFound(match_id)
        return match

    def create_match(self, initiator_id: str, initiator_name: str) -> MatchRecord:
        if not initiator_id:
            raise Unauthorized('A player identity is required to create a match')
        match = self.store.create_match(initiator_id, initiator_name or initiator_id)
        logger.info(f"[create] match={match.id} player_one={initiator_id} local={match.is_local}")
        return match

    def join_match(self, match_id: str, joiner_id: str, joiner_name: str) -> MatchRecord:
        if not joiner_id:
            raise Unauthorized('A player identity is required to join a match')
        match = self._require_match(match_id)
        if match.status != WAITING:
            raise MatchNotJoinable(f'Match {match_id} is {match.status}, not open for joining')
        if joiner_id == match.player_one_id:
            raise MatchNotJoinable('You cannot join your own match')

        items = self.bank.draw_question_set(self.question_count)
        joined = self.store.activate_match(match_id, joiner_id, joiner_name or joiner_id, items)
        if joined is None:
            # Someone else took the seat between our read and the conditional update
            raise MatchNotJoinable(f'Match {match_id} was joined by another player')
        logger.info(f"[join] match={match_id} player_two={joiner_id} questions={len(items)}")
        self.notifier.publish(match_id)
        return joined

    def submit_answer(self, match_id: str, question_id: str, player_id: str, answer: str,
                      response_time: float = 0) -> AnswerResult:
        """Check an answer and score it if it is the first correct one.

        ``response_time`` is recorded in the log only; points do not depend on it.
        """
        question = self.store.get_question(question_id)
        if question is None or question.match_id != match_id:
            raise QuestionNotFound(question_id, match_id)
        match = self._require_match(match_id)
        if match.slot_of(player_id) is None:
            raise NotAParticipant(match_id, player_id)
        if match.status != ACTIVE:
            raise MatchNotActive(f'Match {match_id} is {match.status}; answers are not accepted')

        correct = is_correct_answer(answer, question.correct_answer)
        claimed = correct and award_first_correct(self.store, match, question, player_id)
        logger.info(
            f"[answer] match={match_id} question={question_id} player={player_id} "
            f"correct={correct} claimed={claimed} response_time={response_time}"
        )
        if claimed:
            self.notifier.publish(match_id)
        return AnswerResult(is_correct=correct, game_state=self.get_game_state(match_id))

    def advance_question(self, match_id: str, expected_index: Optional[int] = None,
                         player_id: Optional[str] = None) -> GameState:
        """Move to the next question, completing the match after the last one.

        A completed match is left as is. With ``expected_index`` the move only
        happens if the match is still on that question, so duplicate timeouts
        for the same question advance once.
        When ``player_id`` is given it must be one of the two players.
        """
        match = self._require_match(match_id)
        if player_id is not None and match.slot_of(player_id) is None:
            raise NotAParticipant(match_id, player_id)
        if match.status == WAITING:
            raise MatchNotActive(f'Match {match_id} has not started yet')
        moved = False
        if match.status == ACTIVE:
            moved = self.store.advance_match(match_id, self.question_count, expected_index)
        state = self.get_game_state(match_id)
        logger.info(
            f"[advance] match={match_id} moved={moved} index={state.current_question_index} "
            f"status={state.status} expected={expected_index}"
        )
        if moved:
            self.notifier.publish(match_id)
        return state

    def get_game_state(self, match_id: str) -> GameState:
        match = self._require_match(match_id)
        questions = self.store.list_questions(match_id)
        idx = match.current_question_index
        current = questions[idx] if match.status == ACTIVE and 0 <= idx < len(questions) else None
        return GameState(
            id=match.id,
            player_one_id=match.player_one_id,
            player_two_id=match.player_two_id,
            player_one_username=match.player_one_name,
            player_two_username=match.player_two_name,
            player_one_score=match.player_one_score,
            player_two_score=match.player_two_score,
            status=match.status,
            current_question_index=idx,
            question_count=len(questions) if questions else self.question_count,
            current_question=current,
            questions=questions,
            winner=winner_of(match),
            question_deadline=match.question_deadline,
            is_local=match.is_local,
        )

    def list_open_matches(self) -> List[MatchRecord]:
        return self.store.list_matches(status=WAITING)

    def list_matches_for_player(self, player_id: str) -> List[MatchRecord]:
        return self.store.list_matches(player_id=player_id)

    def set_question_deadline(self, match_id: str, deadline: Optional[float]) -> None:
        self.store.set_question_deadline(match_id, deadline)
        self.notifier.publish(match_id)
