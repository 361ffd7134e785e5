import httpx
import pytest

from nutriflow.services import notifications
from nutriflow.services.audit import PipelineAudit
from nutriflow.services.notifications import (
    LoggingNotificationDispatcher,
    NotificationDispatcher,
    NotificationError,
    WebhookNotificationDispatcher,
    build_dispatcher,
)
from nutriflow.settings import settings


PAYLOAD = {"plan_id": "p1", "plan_name": "Semaine 1", "recipient_email": "alice@example.com"}


def test_base_dispatcher_is_abstract():
    with pytest.raises(TypeError):
        NotificationDispatcher()


def test_build_dispatcher_defaults_to_logging():
    assert isinstance(build_dispatcher(), LoggingNotificationDispatcher)
    assert isinstance(build_dispatcher("http://hooks.local/plan"), WebhookNotificationDispatcher)


def test_webhook_posts_event(monkeypatch):
    calls = []

    def fake_post(url, json, timeout):
        calls.append((url, json))
        return httpx.Response(202, request=httpx.Request("POST", url))

    monkeypatch.setattr(notifications.httpx, "post", fake_post)
    assert WebhookNotificationDispatcher("http://hooks.local/plan").send_plan_ready(PAYLOAD) is True
    assert calls[0][1]["event"] == "meal_plan.ready"
    assert calls[0][1]["plan_id"] == "p1"


def test_webhook_error_status_raises(monkeypatch):
    monkeypatch.setattr(
        notifications.httpx, "post",
        lambda url, json, timeout: httpx.Response(500, text="boom", request=httpx.Request("POST", url)),
    )
    with pytest.raises(NotificationError):
        WebhookNotificationDispatcher("http://hooks.local/plan").send_plan_ready(PAYLOAD)


def test_webhook_unreachable_raises(monkeypatch):
    def refuse(url, json, timeout):
        raise httpx.ConnectError("refused")

    monkeypatch.setattr(notifications.httpx, "post", refuse)
    with pytest.raises(NotificationError, match="not reachable"):
        WebhookNotificationDispatcher("http://hooks.local/plan").send_plan_ready(PAYLOAD)


def test_audit_details_size_guard(db_session, practitioner, monkeypatch):
    monkeypatch.setattr(settings, "audit_meta_max_bytes", 64)
    audit = PipelineAudit(db_session, practitioner.id)

    small = audit.record("plan_saved", details={"days": 7})
    large = audit.record("ingredients_saved", details={"created": ["x" * 20] * 10})
    db_session.commit()

    assert small.details == {"days": 7}
    assert large.details == {"_error": "payload_too_large", "_original_keys": ["created"]}
    assert small.run_id == large.run_id
