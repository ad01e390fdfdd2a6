from typing import Dict

from flask import request
from flask_socketio import emit

from quizduel import notifier, socketio
from quizduel.services.matches.notifier import Subscription

NAMESPACE = '/ws'

# sid -> match_id -> subscription
_sid_subscriptions: Dict[str, Dict[str, Subscription]] = {}


def _get_sid() -> str:
    return request.sid  # type: ignore[attr-defined]


def _state_update_sender(sid: str, match_id: str, namespace: str):
    def _send():
        socketio.emit('state_update', {'match_id': match_id}, to=sid, namespace=namespace)
    return _send


def _drop_subscription(sid: str, match_id: str) -> None:
    sub = _sid_subscriptions.get(sid, {}).pop(match_id, None)
    if sub is not None:
        sub.unsubscribe()


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(*_args):
    for sub in _sid_subscriptions.pop(_get_sid(), {}).values():
        sub.unsubscribe()


def handle_join_match(data):
    match_id = (data or {}).get('match_id')
    if not match_id:
        emit('error', {'message': 'match_id is required'})
        return
    sid = _get_sid()
    subs = _sid_subscriptions.setdefault(sid, {})
    if match_id not in subs:
        subs[match_id] = notifier.subscribe(match_id, _state_update_sender(sid, match_id, request.namespace))
    emit('joined', {'match_id': match_id, 'mode': subs[match_id].mode})


def handle_leave_match(data):
    match_id = (data or {}).get('match_id')
    if not match_id:
        emit('error', {'message': 'match_id is required'})
        return
    _drop_subscription(_get_sid(), match_id)
    emit('left', {'match_id': match_id})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for ns in namespaces:
        socketio.on_event('connect', handle_connect, namespace=ns)
        socketio.on_event('disconnect', handle_disconnect, namespace=ns)
        socketio.on_event('join_match', handle_join_match, namespace=ns)
        socketio.on_event('leave_match', handle_leave_match, namespace=ns)
        socketio.on_event('ping', handle_ping, namespace=ns)
