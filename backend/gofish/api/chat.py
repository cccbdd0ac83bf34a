from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from gofish import db
from gofish.models import ChatMessage
from gofish.socketio_events import broadcast_chat_message

chat = Blueprint('chat', __name__)


@chat.route('/', methods=['GET'])
@login_required
def list_messages():
    """
    Returns the most recent chat messages, newest first.
    """
    limit = int(current_app.config.get('CHAT_HISTORY_LIMIT', 100))
    messages = (
        ChatMessage.query.order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify({'messages': [m.to_dict() for m in messages]}), 200


@chat.route('/', methods=['POST'])
@login_required
def post_message():
    data = request.get_json(silent=True) or {}
    text = (data.get('message') or '').strip()
    if not text:
        return jsonify({'error': 'Message is required'}), 400

    message = ChatMessage(user_id=current_user.id, message=text)
    db.session.add(message)
    db.session.commit()

    payload = message.to_dict()
    broadcast_chat_message(payload)
    return jsonify(payload), 201
