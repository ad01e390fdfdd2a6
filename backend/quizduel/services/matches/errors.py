"""Error taxonomy for match operations.

Every error carries the HTTP status the API layer answers with, so routes
can translate them with a single error handler.
"""


class MatchError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(MatchError):
    """No usable caller identity."""
    status_code = 401


class NotAParticipant(Unauthorized):
    status_code = 403

    def __init__(self, match_id: str, player_id: str):
        super().__init__(f'Player {player_id} is not part of match {match_id}')


class NotFound(MatchError):
    status_code = 404


class MatchNotFound(NotFound):
    def __init__(self, match_id: str):
        super().__init__(f'Match {match_id} not found')
        self.match_id = match_id


class QuestionNotFound(NotFound):
    def __init__(self, question_id: str, match_id: str = None):
        where = f' in match {match_id}' if match_id else ''
        super().__init__(f'Question {question_id} not found{where}')
        self.question_id = question_id


class InvalidState(MatchError):
    status_code = 409


class MatchNotJoinable(InvalidState):
    pass


class MatchNotActive(InvalidState):
    pass


class StorageUnavailable(MatchError):
    """The backing store is unreachable or its schema does not match."""
    status_code = 503


class InsufficientQuestions(MatchError):
    status_code = 500

    def __init__(self, requested: int, available: int):
        super().__init__(f'Requested {requested} questions but the catalog only has {available}')
        self.requested = requested
        self.available = available
