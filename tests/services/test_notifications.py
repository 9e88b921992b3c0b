import pytest

import notifications


class FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        self.user = user

    def send_message(self, message):
        FakeSMTP.sent.append(message)


@pytest.fixture
def smtp(monkeypatch):
    FakeSMTP.sent = []
    monkeypatch.setattr("config.Config.SMTP_HOST", "smtp.example.com")
    monkeypatch.setattr("config.Config.SMTP_USER", "mailer")
    monkeypatch.setattr("config.Config.SMTP_PASS", "secret")
    monkeypatch.setattr("notifications.smtplib.SMTP", FakeSMTP)
    return FakeSMTP.sent


PROFILE = {"full_name": "Sam Broker", "business_email": "sam@broker.ae", "commission_rate": 2}
QUOTE = {"client_name": "Ana", "client_email": "ana@example.com", "project_name": "Creek Vista",
         "unit_type": "2BR", "inputs": {"base_price": 1_500_000}}


def test_unconfigured_smtp_is_reported():
    ok, message = notifications.send_first_view_notification(PROFILE, QUOTE, "Dubai", "now")

    assert ok is False
    assert message == "SMTP not configured"


def test_first_view_notification(smtp):
    ok, _ = notifications.send_first_view_notification(PROFILE, QUOTE, "Dubai, United Arab Emirates", "now")

    assert ok is True
    assert smtp[0]["To"] == "sam@broker.ae"
    assert smtp[0]["Subject"] == "Ana just viewed their quote"
    assert "Dubai, United Arab Emirates" in smtp[0].get_content()


def test_quote_to_client(smtp):
    ok, _ = notifications.send_quote_to_client(QUOTE, "http://x/view/abc", "Sam Broker", "sam@broker.ae")

    assert ok is True
    assert smtp[0]["Reply-To"] == "sam@broker.ae"
    assert "http://x/view/abc" in smtp[0].get_content()
    assert "(2BR)" in smtp[0].get_content()


def test_missing_recipients(smtp):
    assert notifications.send_quote_to_client({}, "u", "Sam") == (False, "No client email")
    assert notifications.send_first_view_notification({}, QUOTE, "x", "now") == (False, "No broker email")
    assert smtp == []


def test_sold_notification_includes_commission(smtp):
    ok, _ = notifications.send_status_notification(PROFILE, QUOTE, "sold")

    assert ok is True
    assert smtp[0]["Subject"] == "Deal Closed: Creek Vista"
    assert "Commission earned: AED 30,000" in smtp[0].get_content()


def test_other_statuses_do_not_notify(smtp):
    assert notifications.send_status_notification(PROFILE, QUOTE, "negotiating") == (
        False, "No notification for status negotiating")


def test_smtp_failure(monkeypatch, smtp):
    class Broken(FakeSMTP):
        def login(self, user, password):
            raise OSError("connection reset")

    monkeypatch.setattr("notifications.smtplib.SMTP", Broken)

    ok, message = notifications.send_quote_to_client(QUOTE, "u", "Sam")

    assert ok is False
    assert message.startswith("Email failed")
