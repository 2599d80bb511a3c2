# portal/core/notifications.py
from starlette.requests import Request

SESSION_KEY = "notifications"


def push_notification(request: Request, message: str, level: str = "info") -> None:
    """Queue a one-shot message for the next page that renders notifications."""
    pending = list(request.session.get(SESSION_KEY) or [])
    pending.append({"level": level, "message": message})
    request.session[SESSION_KEY] = pending


def pop_notifications(request: Request) -> list[dict]:
    """
    Return and clear pending messages.

    Each message is delivered at most once.
    """
    return list(request.session.pop(SESSION_KEY, None) or [])
