from typing import Protocol


class CodeSender(Protocol):
    def send(self, phone: str, code: str) -> None:
        """Deliver ``code`` to ``phone``; raise CodeDeliveryError on failure."""
        ...
