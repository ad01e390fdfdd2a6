import logging

from .errors import StorageUnavailable
from .store import EphemeralMatchStore, MatchStore

logger = logging.getLogger(__name__)

LOCAL_PREFIX = 'local-'


class ResilientMatchStore(MatchStore):
    """Replays a store call against a local fallback when storage is down.

    This is the only place storage failures are recovered. Records created
    by the fallback carry ids starting with ``local-`` and keep being served
    from it even after the primary store recovers. They are not visible to
    other processes, so such a match is a degraded, possibly one-sided game.
    Demo matches the fallback synthesizes for unknown ids are discarded as
    soon as the primary serves that id again.
    """

    def __init__(self, primary: MatchStore, fallback: EphemeralMatchStore):
        self.primary = primary
        self.fallback = fallback

    def _call(self, op, key, *args):
        if key is not None and key.startswith(LOCAL_PREFIX):
            return getattr(self.fallback, op)(*args)
        try:
            return getattr(self.primary, op)(*args)
        except StorageUnavailable as exc:
            logger.warning(f"[storage-fallback] op={op} key={key} reason={exc.message}")
            return getattr(self.fallback, op)(*args)

    def create_match(self, player_one_id, player_one_name):
        return self._call('create_match', None, player_one_id, player_one_name)

    def get_match(self, match_id):
        if match_id.startswith(LOCAL_PREFIX):
            return self.fallback.get_match(match_id)
        try:
            match = self.primary.get_match(match_id)
        except StorageUnavailable as exc:
            logger.warning(f"[storage-fallback] op=get_match key={match_id} reason={exc.message}")
            return self.fallback.get_match(match_id)
        # Storage answers for this id again
        self.fallback.forget(match_id)
        return match

    def activate_match(self, match_id, player_two_id, player_two_name, items):
        return self._call('activate_match', match_id, match_id, player_two_id, player_two_name, items)

    def list_questions(self, match_id):
        return self._call('list_questions', match_id, match_id)

    def get_question(self, question_id):
        return self._call('get_question', question_id, question_id)

    def claim_and_score(self, question_id, match_id, slot, player_id, answered_at):
        return self._call('claim_and_score', match_id, question_id, match_id, slot, player_id, answered_at)

    def advance_match(self, match_id, question_count, expected_index=None):
        return self._call('advance_match', match_id, match_id, question_count, expected_index)

    def set_question_deadline(self, match_id, deadline):
        return self._call('set_question_deadline', match_id, match_id, deadline)

    def list_matches(self, status=None, player_id=None):
        matches = self._call('list_matches', None, status, player_id)
        # Matches created during an outage stay listed, ahead of persisted ones
        seen = {m.id for m in matches}
        local = [m for m in self.fallback.list_matches(status, player_id)
                 if m.id.startswith(LOCAL_PREFIX) and m.id not in seen]
        return local + matches
