import threading
import time
from typing import Any, Dict, Optional, Set

from flask import current_app, request
from flask_socketio import ConnectionRefusedError, emit, join_room

from decider import registry, socketio
from decider.commands import COMMANDS, Join, parse_command
from decider.errors import InvalidInput, NotFound, SessionError
from decider.models import Session

NAMESPACE = '/ws'

# Transient connection bookkeeping. Participant ids are stored as plain
# values; the durable participant table lives in the Session.
_sid_to_ctx: Dict[str, Dict[str, Any]] = {}
_live: Dict[str, Set[str]] = {}  # session id -> sids that completed join
_ctx_lock = threading.Lock()


def _get_sid() -> str:
    return request.sid  # type: ignore


def _room(session_id: str) -> str:
    return f"session:{session_id}"


def _send_error(error: SessionError) -> None:
    emit('error', error.to_payload())


def _broadcast(session_id: str, payload: dict, skip_sid: Optional[str] = None) -> None:
    """Fan a payload out to every joined connection of a session.

    Best effort: a failed send is logged and dropped so one broken peer
    cannot stall the room.
    """
    try:
        socketio.emit(payload['type'], payload, to=_room(session_id), namespace=NAMESPACE, skip_sid=skip_sid)
    except Exception as exc:
        current_app.logger.warning(f"[broadcast-fail] session={session_id} type={payload['type']} error={exc}")


def handle_connect(auth=None):
    session_id = auth.get('session_id') if isinstance(auth, dict) else None
    session_id = session_id or request.args.get('session_id')
    if registry.get(session_id) is None:
        current_app.logger.warning(f"[connect-rejected] session not found: {session_id}")
        raise ConnectionRefusedError('Session not found')
    with _ctx_lock:
        _sid_to_ctx[_get_sid()] = {'session_id': session_id, 'participant_id': None}
    current_app.logger.info(f"[connect] session={session_id}")


def _join(session: Session, sid: str, ctx: Dict[str, Any], command: Join) -> None:
    bound = ctx.get('participant_id')
    if bound and command.existing_participant_id not in (None, bound):
        raise InvalidInput('Already joined')
    participant, reconnected = session.join(command.name, command.existing_participant_id or bound)
    with _ctx_lock:
        ctx['participant_id'] = participant.id
        _live.setdefault(session.id, set()).add(sid)
    join_room(_room(session.id))
    if reconnected:
        current_app.logger.info(f"[join] session={session.id} \"{participant.name}\" reconnected")
    else:
        current_app.logger.info(
            f"[join] session={session.id} \"{participant.name}\" joined ({len(session.participants)} participants)"
        )
    emit('state', {'type': 'state', 'participantId': participant.id, 'state': session.to_dict()})
    _broadcast(session.id, {
        'type': 'participant-joined',
        'participantId': participant.id,
        'name': participant.name,
    }, skip_sid=sid)


def dispatch(raw, msg_type: Optional[str] = None) -> None:
    """Parse one inbound message and apply it under the session's lock."""
    sid = _get_sid()
    try:
        command = parse_command(raw, msg_type)
    except SessionError as exc:
        current_app.logger.warning(f"[bad-message] sid={sid} {exc.message}")
        _send_error(exc)
        return

    with _ctx_lock:
        ctx = _sid_to_ctx.get(sid)
    session = registry.get(ctx['session_id']) if ctx else None
    if session is None:
        _send_error(NotFound('Session not found'))
        return

    with session.lock:
        # The sweep may have removed the session while we waited for its lock
        if registry.get(session.id) is not session:
            _send_error(NotFound('Session not found'))
            return
        # A disconnect that ran while we waited owns this sid now
        with _ctx_lock:
            current = _sid_to_ctx.get(sid)
        if current is not ctx:
            current_app.logger.info(f"[stale] sid={sid} closed before its {command.type} was applied")
            return
        try:
            if isinstance(command, Join):
                _join(session, sid, ctx, command)
                return
            participant_id = ctx.get('participant_id')
            session.require_participant(participant_id)
            payloads = command.apply(session, participant_id)
        except SessionError as exc:
            current_app.logger.info(f"[rejected] session={session.id} type={command.type} {exc.code}: {exc.message}")
            _send_error(exc)
            return
        current_app.logger.info(f"[{command.type}] session={session.id} participant={participant_id}")
        for payload in payloads:
            _broadcast(session.id, payload)


def handle_message(data=None):
    dispatch(data)


def _make_handler(msg_type: str):
    def handler(data=None):
        dispatch(data if data is not None else {}, msg_type)
    handler.__name__ = f"handle_{msg_type.replace('-', '_')}"
    return handler


def handle_disconnect(reason=None):
    sid = _get_sid()
    with _ctx_lock:
        ctx = _sid_to_ctx.pop(sid, None)
    if not ctx:
        return
    session_id = ctx['session_id']
    participant_id = ctx.get('participant_id')
    session = registry.get(session_id)
    if session is None:
        with _ctx_lock:
            _live.get(session_id, set()).discard(sid)
            if not _live.get(session_id):
                _live.pop(session_id, None)
        return

    with session.lock:
        with _ctx_lock:
            live = _live.get(session_id, set())
            live.discard(sid)
            remaining = len(live)
            still_bound = any(_sid_to_ctx[s]['participant_id'] == participant_id for s in live if s in _sid_to_ctx)
            if not live:
                _live.pop(session_id, None)

        participant = session.participants.get(participant_id) if participant_id else None
        if participant and not still_bound:
            participant.connected = False
        if remaining == 0:
            session.all_disconnected_at = time.time()
            current_app.logger.info(f"[idle] session={session_id} all participants disconnected - expiry clock started")
        if participant:
            current_app.logger.info(f"[disconnect] session={session_id} \"{participant.name}\" ({remaining} remaining)")
            if not still_bound:
                _broadcast(session_id, {'type': 'participant-left', 'participantId': participant_id})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'.

    Each inbound ``type`` is its own event; a plain ``message`` event carrying
    a JSON object with a ``type`` field is accepted too.
    """
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('message', handle_message, namespace=NAMESPACE)
    for msg_type in COMMANDS:
        socketio.on_event(msg_type, _make_handler(msg_type), namespace=NAMESPACE)


def reset_connections() -> None:
    with _ctx_lock:
        _sid_to_ctx.clear()
        _live.clear()
