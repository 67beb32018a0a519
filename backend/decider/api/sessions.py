import io
import uuid

import qrcode
import qrcode.image.svg
from flask import Blueprint, Response, current_app, jsonify, request

from decider import create_limiter, registry

sessions = Blueprint('sessions', __name__)


def _required_text(data, key):
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


@sessions.route('', methods=['POST'])
def create_session():
    ip = request.remote_addr
    cfg = current_app.config

    max_per_ip = int(cfg.get('MAX_SESSIONS_PER_IP', 0))
    if max_per_ip > 0 and registry.count_by_creator_ip(ip) >= max_per_ip:
        current_app.logger.warning(f"[session-limit] ip={ip} limit={max_per_ip}")
        return jsonify({'error': f'Session limit reached. You can have at most {max_per_ip} active sessions.'}), 429

    if not create_limiter.hit(ip):
        current_app.logger.warning(f"[rate-limited] ip={ip}")
        return jsonify({'error': 'Too many attempts. Try again later.'}), 429

    data = request.get_json(silent=True) or {}
    passwords = cfg.get('CREATION_PASSWORDS') or []
    if passwords and data.get('password') not in passwords:
        current_app.logger.warning(f"[session-create-rejected] bad password (creator: \"{data.get('creatorName')}\")")
        return jsonify({'error': 'Invalid password'}), 401

    creator_name = _required_text(data, 'creatorName')
    if not creator_name:
        return jsonify({'error': 'creatorName is required'}), 400
    session_name = _required_text(data, 'sessionName')
    if not session_name:
        return jsonify({'error': 'sessionName is required'}), 400

    creator_id = str(uuid.uuid4())
    session = registry.create(
        creator_id, creator_name, ip,
        name=session_name,
        lock_navigation=data.get('lockNavigation') is True,
    )
    current_app.logger.info(f"[session-create] session={session.id} \"{session_name}\" by \"{creator_name}\"")
    return jsonify({'sessionId': session.id, 'participantId': creator_id}), 201


@sessions.route('/<string:session_id>', methods=['GET'])
def get_session(session_id):
    session = registry.get(session_id)
    if session is None:
        return jsonify({'error': 'Session not found'}), 404
    with session.lock:
        return jsonify(session.to_dict())


@sessions.route('/<string:session_id>/qr', methods=['GET'])
def get_session_qr(session_id):
    if registry.get(session_id) is None:
        return jsonify({'error': 'Session not found'}), 404
    url = f"{request.host_url}session/{session_id}"
    img = qrcode.make(url, image_factory=qrcode.image.svg.SvgPathImage, border=1)
    buf = io.BytesIO()
    img.save(buf)
    return Response(buf.getvalue(), mimetype='image/svg+xml')
