# supermarket_ai/api/routes/assistant_routes.py
import uuid

from flask import Blueprint, current_app, request, session
from flask_login import current_user

from supermarket_ai.api.utils.responses import handle_error, ok
from supermarket_ai.services import assistant

api_assistant = Blueprint("api_assistant", __name__, url_prefix="/api/assistant")


def _chat_key() -> str:
    if current_user.is_authenticated:
        return f"user:{current_user.id}"
    if "chat_id" not in session:
        session["chat_id"] = uuid.uuid4().hex
    return f"anon:{session['chat_id']}"


@api_assistant.post("/query")
def query():
    """Single question -> {response, data}; errors come back as 4xx/5xx."""
    data = request.get_json(silent=True) or {}
    try:
        result = assistant.answer(data.get("prompt"))
    except Exception as e:
        return handle_error(e)
    return ok(**result)


@api_assistant.get("/messages")
def get_messages():
    history = current_app.extensions["assistant_chats"]
    return ok(messages=history.messages(_chat_key()))


@api_assistant.post("/messages")
def send_message():
    data = request.get_json(silent=True) or {}
    try:
        user_msg, reply = assistant.send_chat_message(_chat_key(), data.get("content"))
    except Exception as e:
        return handle_error(e)
    return ok(201, sent=user_msg, reply=reply)


@api_assistant.delete("/messages")
def reset_messages():
    history = current_app.extensions["assistant_chats"]
    key = _chat_key()
    history.reset(key)
    return ok(messages=history.messages(key))
