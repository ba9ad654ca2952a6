# supermarket_ai/services/assistant.py
"""
Natural-language assistant over the store data.

A prompt is routed by keyword to one of four data queries (expiry, stock,
sales, recommendations); the rows are handed to Gemini together with the
question and the model's text is returned along with the rows.
"""
from __future__ import annotations

import http.client
import json
import threading
from collections import OrderedDict
import urllib.error
import urllib.parse
import urllib.request
from datetime import timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import case
from sqlalchemy.orm import selectinload

from supermarket_ai import helpers
from supermarket_ai.models import Product, Recommendation, Sale
from supermarket_ai.services import ServiceError

# Checked in this order; the first match wins
QUERY_KEYWORDS = (
    ("expiry", ("expir", "shelf life", "best before", "going bad")),
    ("stock", ("stock", "inventory", "quantity", "available", "supply")),
    ("sales", ("sale", "revenue", "profit", "income", "earning", "transaction", "money")),
    ("recommendations", ("recommend", "suggest", "advice", "what should", "help me")),
)

UNKNOWN_QUERY_MESSAGE = (
    "I'm not sure what you're asking about. Try asking about:\n"
    "- Products that are expiring or expired\n"
    "- Current stock levels or inventory\n"
    "- Sales and revenue information\n"
    "- Recommendations for inventory management"
)

WELCOME_MESSAGE = "Welcome to SupermarketAI Assistant. How can I help you today?"

GENERATION_CONFIG = {
    "temperature": 0.9,
    "topK": 1,
    "topP": 1,
    "maxOutputTokens": 2048,
}

CHAT_SENDERS = ("user", "system", "sales", "stock", "expiry", "master")


class AssistantError(ServiceError):
    pass


def classify_query(prompt: str) -> str | None:
    text = (prompt or "").lower()
    for kind, keywords in QUERY_KEYWORDS:
        if any(k in text for k in keywords):
            return kind
    return None


def agent_for(prompt: str) -> str:
    """Which agent persona answers in the chat transcript."""
    text = (prompt or "").lower()
    if "stock" in text or "inventory" in text:
        return "stock"
    if "expir" in text:
        return "expiry"
    if "sale" in text or "revenue" in text:
        return "sales"
    return "master"


# ---------------------------------------------------------------- data queries

def _expiry_rows(today):
    horizon = today + timedelta(days=helpers.EXPIRY_WARNING_DAYS)
    products = (
        Product.query
        .filter(Product.expiry_date <= horizon)
        .order_by(Product.expiry_date.asc())
        .all()
    )
    return [{
        "name": p.name,
        "category": p.category,
        "quantity": p.quantity,
        "total_loss": round(float(p.cost_price) * p.quantity, 2),
        "expiry_date": p.expiry_date.isoformat(),
        "days_until_expiry": helpers.days_until_expiry(p.expiry_date, today),
    } for p in products]


def _stock_rows():
    products = (
        Product.query
        .filter(Product.quantity <= helpers.LOW_STOCK_THRESHOLD)
        .order_by(Product.quantity.asc(), Product.name.asc())
        .all()
    )
    return [{
        "name": p.name,
        "category": p.category,
        "quantity": p.quantity,
        "price": float(p.price),
        "expiry_date": p.expiry_date.isoformat(),
    } for p in products]


def _sales_rows(today, days: int = 30, limit: int = 7):
    since = helpers.to_datetime(today - timedelta(days=days))
    sales = (
        Sale.query.options(selectinload(Sale.items))
        .filter(Sale.created_at >= since)
        .all()
    )
    daily: dict = {}
    for sale in sales:
        day = sale.created_at.date()
        row = daily.setdefault(day, {"total_revenue": 0.0, "num_transactions": 0, "total_items": 0})
        row["num_transactions"] += 1
        for it in sale.items:
            row["total_revenue"] += float(it.sale_price) * it.quantity
            row["total_items"] += it.quantity

    rows = []
    prev = None
    for day in sorted(daily):
        row = daily[day]
        revenue = round(row["total_revenue"], 2)
        rows.append({
            "sale_date": day.isoformat(),
            "total_revenue": revenue,
            "num_transactions": row["num_transactions"],
            "total_items": row["total_items"],
            "prev_day_revenue": prev,
        })
        prev = revenue
    rows.reverse()
    return rows[:limit]


def _recommendation_rows():
    priority_order = case(
        (Recommendation.priority == "high", 1),
        (Recommendation.priority == "medium", 2),
        else_=3,
    )
    recs = (
        Recommendation.query
        .options(selectinload(Recommendation.product))
        .filter(Recommendation.is_read.is_(False))
        .order_by(priority_order, Recommendation.created_at.desc())
        .all()
    )
    rows = []
    for r in recs:
        p = r.product
        rows.append({
            "type": r.type,
            "message": r.message,
            "suggested_action": r.suggested_action,
            "priority": r.priority,
            "product_name": p.name if p else None,
            "category": p.category if p else None,
            "quantity": p.quantity if p else None,
            "price": float(p.price) if p else None,
            "expiry_date": p.expiry_date.isoformat() if p else None,
        })
    return rows


def fetch_context(kind: str, today=None) -> list[dict]:
    today = today or helpers.utcnow().date()
    if kind == "expiry":
        return _expiry_rows(today)
    if kind == "stock":
        return _stock_rows()
    if kind == "sales":
        return _sales_rows(today)
    if kind == "recommendations":
        return _recommendation_rows()
    raise AssistantError(UNKNOWN_QUERY_MESSAGE)


# ---------------------------------------------------------------- model call

def _json_default(value):
    if isinstance(value, Decimal):
        return float(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    raise TypeError(f"Not JSON serializable: {type(value).__name__}")


def build_prompt(prompt: str, data) -> str:
    return (
        "You are an AI assistant for a supermarket inventory management system.\n"
        f"You have access to the following data: {json.dumps(data, default=_json_default)}\n\n"
        "Please analyze this data and provide a detailed, natural response to the query: "
        f"\"{prompt}\"\n\n"
        "Focus on:\n"
        "1. Key metrics and important numbers\n"
        "2. Trends and patterns\n"
        "3. Actionable insights\n"
        "4. Recommendations if applicable\n\n"
        "Format the response in a clear, professional manner."
    )


def _post_json(url: str, payload: dict, timeout: int) -> dict:
    data = json.dumps(payload).encode("utf-8")
    req = urllib.request.Request(
        url,
        data=data,
        method="POST",
        headers={"Content-Type": "application/json"},
    )
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        return json.loads(resp.read().decode("utf-8"))


def generate_response(prompt: str, data) -> str:
    cfg = current_app.config
    api_key = cfg.get("GEMINI_API_KEY")
    if not api_key:
        raise AssistantError("The AI assistant is not configured (missing GEMINI_API_KEY).", 503)

    url = "{base}/models/{model}:generateContent?{query}".format(
        base=cfg["GEMINI_API_URL"].rstrip("/"),
        model=cfg["GEMINI_MODEL"],
        query=urllib.parse.urlencode({"key": api_key}),
    )
    payload = {
        "contents": [{"role": "user", "parts": [{"text": build_prompt(prompt, data)}]}],
        "generationConfig": GENERATION_CONFIG,
    }

    try:
        body = _post_json(url, payload, cfg.get("ASSISTANT_TIMEOUT", 30))
    except urllib.error.HTTPError as e:
        detail = e.read().decode("utf-8", "replace")[:500]
        current_app.logger.error("Gemini HTTP %s: %s", e.code, detail)
        raise AssistantError(f"AI service error (HTTP {e.code})", 502)
    except (OSError, http.client.HTTPException, ValueError) as e:
        current_app.logger.error("Gemini request failed: %s", e)
        raise AssistantError(f"AI service unavailable: {e}", 502)

    try:
        parts = body["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        raise AssistantError("AI service returned an empty response", 502)
    text = "".join(p.get("text", "") for p in parts).strip()
    if not text:
        raise AssistantError("AI service returned an empty response", 502)
    return text


def answer(prompt: str, today=None) -> dict:
    prompt = (prompt or "").strip()
    if not prompt:
        raise AssistantError("Please provide a question or query.")

    kind = classify_query(prompt)
    if kind is None:
        raise AssistantError(UNKNOWN_QUERY_MESSAGE)

    data = fetch_context(kind, today)
    return {"response": generate_response(prompt, data), "data": data, "query_type": kind}


# ---------------------------------------------------------------- chat

def _message(sender: str, content: str) -> dict:
    return {
        "id": helpers.generate_id(),
        "sender": sender,
        "content": content,
        "timestamp": helpers.utcnow().isoformat(),
    }


class ChatHistory:
    """Per-user transcripts kept in memory, least recently used dropped first."""

    def __init__(self, limit: int = 200, max_chats: int = 500):
        self.limit = limit
        self.max_chats = max_chats
        self._chats: OrderedDict[str, list[dict]] = OrderedDict()
        self._lock = threading.Lock()

    def _get(self, key: str) -> list[dict]:
        if key in self._chats:
            self._chats.move_to_end(key)
        else:
            self._chats[key] = [_message("system", WELCOME_MESSAGE)]
            while len(self._chats) > self.max_chats:
                self._chats.popitem(last=False)
        return self._chats[key]

    def messages(self, key: str) -> list[dict]:
        """Transcript for key; unknown keys get a welcome without being stored."""
        with self._lock:
            if key not in self._chats:
                return [_message("system", WELCOME_MESSAGE)]
            self._chats.move_to_end(key)
            return list(self._chats[key])

    def append(self, key: str, message: dict) -> dict:
        with self._lock:
            chat = self._get(key)
            chat.append(message)
            del chat[:-self.limit]
        return message

    def reset(self, key: str) -> None:
        with self._lock:
            self._chats.pop(key, None)

    def __len__(self) -> int:
        return len(self._chats)


def init_assistant(app) -> ChatHistory:
    history = ChatHistory(max_chats=app.config.get("ASSISTANT_MAX_CHATS", 500))
    app.extensions["assistant_chats"] = history
    return history


def send_chat_message(chat_key: str, content: str) -> tuple[dict, dict]:
    """Append the user's message and the agent's reply; never raises for model failures."""
    content = (content or "").strip()
    if not content:
        raise ServiceError("Message must not be empty")

    history: ChatHistory = current_app.extensions["assistant_chats"]
    user_msg = history.append(chat_key, _message("user", content))
    try:
        result = answer(content)
        reply = _message(agent_for(content), result["response"])
    except Exception as e:
        if isinstance(e, AssistantError):
            current_app.logger.warning("Assistant query failed: %s", e.message)
            reason = e.message
        else:
            current_app.logger.exception("Assistant query crashed")
            reason = str(e) or e.__class__.__name__
        reply = _message(
            "system",
            "I apologize, but I encountered an error while processing your request: "
            f"{reason}. Please try rephrasing your question or ask about a specific "
            "topic like stock levels, sales, or expiring products.",
        )
    history.append(chat_key, reply)
    return user_msg, reply
