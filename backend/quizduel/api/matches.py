from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user

from quizduel.services.matches import get_engine
from quizduel.services.matches.errors import MatchError
from quizduel.services.matches.timer import schedule_question_timer as svc_schedule_question_timer


matches = Blueprint('matches', __name__)


@matches.errorhandler(MatchError)
def handle_match_error(exc: MatchError):
    current_app.logger.info(f"[match-error] {exc.__class__.__name__} status={exc.status_code}: {exc.message}")
    return jsonify({'error': exc.message}), exc.status_code


def _schedule_question_timer(match_id: str) -> None:
    svc_schedule_question_timer(current_app._get_current_object(), match_id)


def _state_payload(state):
    payload = state.to_dict()
    # Clients run their countdown from this unless question_deadline is set
    payload['question_duration_sec'] = int(current_app.config.get('QUESTION_DURATION_SEC', 30))
    payload['timer_mode'] = current_app.config.get('QUESTION_TIMER_MODE', 'client')
    return payload


@matches.route('', methods=['POST'])
@login_required
def create_match():
    match = get_engine().create_match(current_user.player_id, current_user.username)
    return jsonify(match.to_dict()), 201


@matches.route('/open', methods=['GET'])
@login_required
def list_open_matches():
    return jsonify([m.to_dict() for m in get_engine().list_open_matches()])


@matches.route('/mine', methods=['GET'])
@login_required
def list_my_matches():
    return jsonify([m.to_dict() for m in get_engine().list_matches_for_player(current_user.player_id)])


@matches.route('/<string:match_id>/join', methods=['POST'])
@login_required
def join_match(match_id):
    engine = get_engine()
    engine.join_match(match_id, current_user.player_id, current_user.username)
    _schedule_question_timer(match_id)
    return jsonify(_state_payload(engine.get_game_state(match_id)))


@matches.route('/<string:match_id>/state', methods=['GET'])
@login_required
def get_game_state(match_id):
    return jsonify(_state_payload(get_engine().get_game_state(match_id)))


@matches.route('/<string:match_id>/answers', methods=['POST'])
@login_required
def submit_answer(match_id):
    data = request.get_json(silent=True) or {}
    question_id = data.get('question_id')
    answer = data.get('answer')
    if not question_id or not isinstance(answer, str):
        return jsonify({'error': 'question_id and a text answer are required'}), 400
    try:
        response_time = float(data.get('response_time') or 0)
    except (TypeError, ValueError):
        return jsonify({'error': 'response_time must be a number'}), 400

    result = get_engine().submit_answer(match_id, question_id, current_user.player_id, answer, response_time)
    return jsonify({'is_correct': result.is_correct, 'state': _state_payload(result.game_state)})


@matches.route('/<string:match_id>/advance', methods=['POST'])
@login_required
def advance_question(match_id):
    data = request.get_json(silent=True) or {}
    expected_index = data.get('expected_index')
    if expected_index is not None and (isinstance(expected_index, bool) or not isinstance(expected_index, int)):
        return jsonify({'error': 'expected_index must be an integer'}), 400

    state = get_engine().advance_question(match_id, expected_index=expected_index, player_id=current_user.player_id)
    _schedule_question_timer(match_id)
    return jsonify(_state_payload(state))
