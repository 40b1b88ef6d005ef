import logging
from typing import Optional

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from ...application.ports.code_sender import CodeSender
from ...exceptions import CodeDeliveryError
from ...utils import mask_phone

logger = logging.getLogger(__name__)

MESSAGE_TEMPLATE = "Your verification code is {code}. It expires in {minutes} minutes."


class TwilioCodeSender(CodeSender):
    def __init__(self, account_sid: str, auth_token: str, from_number: str,
                 ttl_minutes: int = 5, client: Optional[Client] = None):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.ttl_minutes = ttl_minutes
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.account_sid and self.auth_token)

    def send(self, phone: str, code: str) -> None:
        if not self.configured or not self.from_number:
            raise CodeDeliveryError(reason="Twilio SMS sender not configured")
        body = MESSAGE_TEMPLATE.format(code=code, minutes=self.ttl_minutes)
        try:
            if self._client is None:
                self._client = Client(self.account_sid, self.auth_token)
            message = self._client.messages.create(to=phone, from_=self.from_number, body=body)
        except TwilioException as e:
            logger.error(f"Twilio delivery to {mask_phone(phone)} failed: {e}")
            raise CodeDeliveryError(reason=f"twilio error: {e}")
        logger.info(f"OTP SMS queued for {mask_phone(phone)} (sid={message.sid})")


class LoggingCodeSender(CodeSender):
    """Development sender: no SMS goes out.

    The code itself is not logged; development responses carry it instead.
    """

    def send(self, phone: str, code: str) -> None:
        logger.warning(f"SMS delivery disabled, OTP for {mask_phone(phone)} not sent")
