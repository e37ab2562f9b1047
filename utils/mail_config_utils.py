from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from typing import List, Optional
import logging
import os
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# Simple direct approach - no Pydantic settings
MAIL_USERNAME = os.getenv("MAIL_USERNAME")
MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
MAIL_FROM = os.getenv("MAIL_FROM")
MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.gmail.com")
MAIL_STARTTLS = os.getenv("MAIL_STARTTLS", "true").lower() == "true"
MAIL_SSL_TLS = os.getenv("MAIL_SSL_TLS", "false").lower() == "true"
MAIL_SUPPRESS_SEND = os.getenv("MAIL_SUPPRESS_SEND", "false").lower() == "true"


def build_mail_config() -> Optional[ConnectionConfig]:
    """Connection settings for outgoing mail, or None when mail is not configured"""
    if not all([MAIL_USERNAME, MAIL_PASSWORD, MAIL_FROM]):
        logger.warning("Email configuration is incomplete - notification emails will only be logged")
        return None

    return ConnectionConfig(
        MAIL_USERNAME=MAIL_USERNAME,
        MAIL_PASSWORD=MAIL_PASSWORD,
        MAIL_FROM=MAIL_FROM,
        MAIL_PORT=MAIL_PORT,
        MAIL_SERVER=MAIL_SERVER,
        MAIL_STARTTLS=MAIL_STARTTLS,
        MAIL_SSL_TLS=MAIL_SSL_TLS,
        USE_CREDENTIALS=True,
        VALIDATE_CERTS=True,
        SUPPRESS_SEND=1 if MAIL_SUPPRESS_SEND else 0,
    )


conf = build_mail_config()


async def send_email(recipients: List[str], subject: str, body: str) -> bool:
    """
    Send a plain text email. Returns False when mail is not configured so the
    caller can log the message instead.
    """
    if conf is None:
        return False

    message = MessageSchema(
        subject=subject,
        recipients=recipients,
        body=body,
        subtype=MessageType.plain,
    )
    fm = FastMail(conf)
    await fm.send_message(message)
    logger.info(f"Email sent to {', '.join(recipients)}: {subject}")
    return True
