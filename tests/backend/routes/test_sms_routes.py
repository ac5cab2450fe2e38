from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from backend.core import config
from backend.core.rate_limit import RateLimitStore
from backend.routes import sms_routes
from backend.routes.sms_routes import SendSmsRequest, send_sms

STAFF_USER = SimpleNamespace(id=7, role='mechanic')


@pytest.fixture
def outbox(monkeypatch: pytest.MonkeyPatch) -> list:
    sent = []
    monkeypatch.setattr(config, 'SMS_RATE_LIMIT_ATTEMPTS', 2)
    monkeypatch.setattr(config, 'SMS_RATE_LIMIT_WINDOW_MS', 60_000)
    monkeypatch.setattr(sms_routes.sms, 'send_sms', lambda to, message: sent.append((to, message)) or True)
    return sent


@pytest.fixture
def limiter() -> RateLimitStore:
    return RateLimitStore(clock=lambda: 0)


def test_send_sms_requires_recipient_and_message(outbox, limiter) -> None:
    with pytest.raises(HTTPException) as exception_info:
        send_sms(SendSmsRequest(to='  ', message='hi'), current_user=STAFF_USER, limiter=limiter)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Missing required fields: to and message'
    assert outbox == []


def test_send_sms_delivers_message(outbox, limiter) -> None:
    response = send_sms(SendSmsRequest(to=' +15550100 ', message='Truck ready'), current_user=STAFF_USER, limiter=limiter)

    assert response == {'message': 'SMS sent successfully'}
    assert outbox == [('+15550100', 'Truck ready')]


def test_send_sms_is_rate_limited_per_user(outbox, limiter) -> None:
    request = SendSmsRequest(to='+15550100', message='Reminder')
    send_sms(request, current_user=STAFF_USER, limiter=limiter)
    send_sms(request, current_user=STAFF_USER, limiter=limiter)

    with pytest.raises(HTTPException) as exception_info:
        send_sms(request, current_user=STAFF_USER, limiter=limiter)

    assert exception_info.value.status_code == 429
    assert len(outbox) == 2
    assert 'sms:7' in limiter.entries

    send_sms(request, current_user=SimpleNamespace(id=8, role='admin'), limiter=limiter)
    assert len(outbox) == 3


def test_provider_failure_returns_500(monkeypatch: pytest.MonkeyPatch, limiter) -> None:
    monkeypatch.setattr(sms_routes.sms, 'send_sms', lambda to, message: False)

    with pytest.raises(HTTPException) as exception_info:
        send_sms(SendSmsRequest(to='+15550100', message='hi'), current_user=STAFF_USER, limiter=limiter)

    assert exception_info.value.status_code == 500
