from __future__ import annotations

import pytest
import requests

from src.tutoring_center.tutoring_center.core.exceptions import DeliveryError
from src.tutoring_center.tutoring_center.notifications.notifier import LoggingNotifier, SmsNotifier, deliver


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class FakeSession:
    def __init__(self, response=None, error=None):
        self.calls = []
        self._response = response or FakeResponse()
        self._error = error

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self._error is not None:
            raise self._error
        return self._response


def _notifier(session, **kwargs):
    return SmsNotifier("https://sms.example/api/send", "secret", session=session, **kwargs)


def test_posts_message_with_token_and_bounded_timeout():
    session = FakeSession()
    _notifier(session, sender="CENTER", timeout=2.5).send("+998901234567", "hello")

    [(url, kwargs)] = session.calls
    assert url == "https://sms.example/api/send"
    assert kwargs["timeout"] == 2.5
    assert kwargs["headers"]["Authorization"] == "Bearer secret"
    assert kwargs["json"] == {"mobile_phone": "+998901234567", "message": "hello", "from": "CENTER"}


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(response=FakeResponse(500)),
        FakeSession(error=requests.Timeout("read timed out")),
        FakeSession(error=requests.ConnectionError("refused")),
    ],
    ids=["http-error", "timeout", "connection"],
)
def test_gateway_failures_become_delivery_errors(session):
    notifier = _notifier(session)
    with pytest.raises(DeliveryError):
        notifier.send("+1", "hello")

    assert deliver(notifier, "+1", "hello") is False


def test_deliver_skips_missing_recipient():
    session = FakeSession()
    assert deliver(_notifier(session), None, "hello") is False
    assert session.calls == []


def test_deliver_reports_success():
    assert deliver(LoggingNotifier(), "+1", "hello") is True


def test_url_and_token_are_required():
    with pytest.raises(ValueError):
        SmsNotifier("", "secret")
