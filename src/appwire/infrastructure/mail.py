"""Mail transports."""

from typing import List

from appwire.domain import IMailTransport, MailMessage
from appwire.infrastructure.logging_config import create_channel_logger


class LogMailTransport(IMailTransport):
    """Writes messages to the mail channel instead of delivering them.

    Sent messages are kept in ``outbox`` for inspection.
    """

    def __init__(self) -> None:
        self.outbox: List[MailMessage] = []
        self.logger = create_channel_logger("mail")

    def send(self, message: MailMessage) -> None:
        self.outbox.append(message)
        self.logger.info("Mail captured", to=message.to, subject=message.subject)
