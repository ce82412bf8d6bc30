# agenda/services/mailer.py
from __future__ import annotations
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from ..config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class SmtpMailSink:
    """
    Envía correo por SMTP.
    - Si DRY_RUN=true: no envía; solo deja el mensaje en logs
    - Si falta MAIL_HOST: modo MOCK (no envía), también solo log
    - Si hay error al enviar: la excepción sube; quien llama decide
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings

    def build_message(self, to_name: str, to_email: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.settings.MAIL_FROM
        msg["To"] = formataddr((to_name, to_email))
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    def send_mail(self, to_name: str, to_email: str, subject: str, body: str) -> None:
        msg = self.build_message(to_name, to_email, subject, body)
        s = self.settings

        if s.DRY_RUN:
            logger.info("[DRY_RUN MAIL] to=%s subject=%s body=%s", msg["To"], subject, body.replace("\n", " | "))
            return

        if not s.MAIL_HOST:
            logger.warning("[MAIL MOCK] MAIL_HOST no configurado. to=%s subject=%s", msg["To"], subject)
            return

        with smtplib.SMTP(s.MAIL_HOST, s.MAIL_PORT, timeout=30) as smtp:
            if s.MAIL_USE_TLS:
                smtp.starttls()
            if s.MAIL_USER:
                smtp.login(s.MAIL_USER, s.MAIL_PASSWORD or "")
            smtp.send_message(msg)
        logger.info("Correo enviado: to=%s subject=%s", msg["To"], subject)
