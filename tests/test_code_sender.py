import logging

import pytest
from twilio.base.exceptions import TwilioException

from app.exceptions import CodeDeliveryError
from app.infrastructure.otp.twilio_provider import LoggingCodeSender, TwilioCodeSender


class FakeMessages:
    def __init__(self, fail=False):
        self.fail = fail
        self.created = []

    def create(self, to, from_, body):
        if self.fail:
            raise TwilioException("unreachable")
        self.created.append({"to": to, "from_": from_, "body": body})

        class Message:
            sid = "SM123"

        return Message()


class FakeClient:
    def __init__(self, fail=False):
        self.messages = FakeMessages(fail)


def test_logging_sender_never_logs_the_code(caplog):
    with caplog.at_level(logging.DEBUG):
        LoggingCodeSender().send("+966501234567", "482913")
    assert caplog.records
    assert "482913" not in caplog.text
    assert "+966501234567" not in caplog.text


def test_twilio_sender_sends_sms():
    client = FakeClient()
    sender = TwilioCodeSender("AC1", "token", "+15550000000", ttl_minutes=5, client=client)
    sender.send("+966501234567", "482913")

    sent = client.messages.created[0]
    assert sent["to"] == "+966501234567"
    assert sent["from_"] == "+15550000000"
    assert "482913" in sent["body"]
    assert "5 minutes" in sent["body"]


def test_twilio_sender_wraps_gateway_errors(caplog):
    sender = TwilioCodeSender("AC1", "token", "+15550000000", client=FakeClient(fail=True))
    with caplog.at_level(logging.DEBUG):
        with pytest.raises(CodeDeliveryError) as exc:
            sender.send("+966501234567", "482913")
    assert exc.value.message == "Failed to send OTP"
    assert "482913" not in caplog.text


def test_unconfigured_twilio_sender_refuses():
    with pytest.raises(CodeDeliveryError):
        TwilioCodeSender("", "", "").send("+966501234567", "482913")
