from email.message import EmailMessage

import aiosmtplib
import structlog

from config import Settings

logger = structlog.get_logger(__name__)

CONFIRMATION_SUBJECT = "Career Counseling Appointment Confirmation"


class Mailer:
    def __init__(self, settings: Settings):
        self.settings = settings

    async def send(self, to: str, subject: str, body: str) -> None:
        if not self.settings.smtp_host:
            logger.info("email_skipped", to=to, reason="smtp not configured")
            return
        message = EmailMessage()
        message["From"] = self.settings.email_from
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        await aiosmtplib.send(
            message,
            hostname=self.settings.smtp_host,
            port=self.settings.smtp_port,
            username=self.settings.smtp_username,
            password=self.settings.smtp_password,
            start_tls=True,
        )
        logger.info("email_sent", to=to, subject=subject)


def confirmation_message(appointment: dict) -> str:
    day = appointment["date"].date().isoformat()
    return (
        f"Your {appointment['type']} career counseling appointment has been "
        f"scheduled for {day} at {appointment['time']}."
    )


async def send_detached(mailer: Mailer, to: str, subject: str, body: str) -> None:
    """Background task body: delivery failures are logged, never retried"""
    try:
        await mailer.send(to, subject, body)
    except Exception as e:
        logger.error("email_send_failed", to=to, subject=subject, error=str(e), exc_info=e)
