"""Application layer - Mail service."""

from typing import Any, Mapping, Optional

from appwire.domain import IMailTransport, MailerException, MailMessage


class Mailer:
    """Sends mail through a transport, logging activity to the mail channel.

    Attributes:
        transport: Delivers the messages.
        logger: The mail channel logger.
        config: The ``mail`` configuration section.
        smtp_debug: Whether the transport should report protocol chatter.
    """

    def __init__(self, transport: IMailTransport, logger: Any, config: Optional[Mapping[str, Any]] = None) -> None:
        self.transport = transport
        self.logger = logger
        self.config = dict(config or {})
        self.smtp_debug = bool(self.config.get("smtp_debug", False))

    def send(self, message: MailMessage) -> None:
        """Deliver a message, filling in the configured sender when missing.

        Raises:
            MailerException: If the transport fails.
        """
        if message.from_address is None and self.config.get("from"):
            message = message.model_copy(update={"from_address": self.config["from"]})

        if self.smtp_debug:
            self.logger.debug("Sending mail", to=message.to, subject=message.subject)

        try:
            self.transport.send(message)
        except MailerException:
            raise
        except Exception as e:
            self.logger.error("Mail transport failed", to=message.to, error=str(e))
            raise MailerException(f"Could not send mail to {', '.join(message.to)}: {e}") from e

        self.logger.info("Mail sent", to=message.to, subject=message.subject)
