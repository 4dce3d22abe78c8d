
from pathlib import Path
from fastapi_mail import FastMail, MessageSchema, ConnectionConfig, MessageType
from daywork.core.config import settings


def build_connection_config(config=settings) -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_USERNAME=config.MAIL_USERNAME,
        MAIL_PASSWORD=config.MAIL_PASSWORD,
        MAIL_FROM=config.MAIL_FROM,
        MAIL_PORT=config.MAIL_PORT,
        MAIL_SERVER=config.MAIL_SERVER,
        MAIL_STARTTLS=config.MAIL_STARTTLS,
        MAIL_SSL_TLS=config.MAIL_SSL_TLS,
        USE_CREDENTIALS=bool(config.MAIL_USERNAME),
        VALIDATE_CERTS=True,
        SUPPRESS_SEND=config.MAIL_SUPPRESS_SEND,
        TEMPLATE_FOLDER=Path(__file__).parent.parent / 'templates'
    )


class Mailer:
    """Sends the transactional emails of the marketplace."""

    def __init__(self, conf: ConnectionConfig = None):
        self._conf = conf

    @property
    def conf(self) -> ConnectionConfig:
        # Built on first use so a misconfigured mailer never blocks startup
        if self._conf is None:
            self._conf = build_connection_config()
        return self._conf

    async def send_verification_code(self, email: str, full_name: str, code: str, ttl_hours: int):
        """
        Send the one-time email confirmation code.
        """
        message = MessageSchema(
            subject=f"{settings.PROJECT_NAME}: verify your email",
            recipients=[email],
            template_body={
                "project_name": settings.PROJECT_NAME,
                "full_name": full_name,
                "code": code,
                "ttl_hours": ttl_hours,
            },
            subtype=MessageType.html,
        )

        fm = FastMail(self.conf)
        await fm.send_message(message, template_name="emails/verification_code.html")
