import asyncio
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional

from tesland.config import settings


async def send_email(to: str, subject: str, html: str, sender_name: Optional[str] = None):
    """
    Plain SMTP sender.
    - Port 465 uses SSL from the start; with smtp_use_starttls=True (587) it upgrades via STARTTLS.
    - The blocking SMTP exchange runs in a worker thread.
    """
    from_addr = settings.smtp_from or settings.smtp_user
    if not (settings.smtp_host and settings.smtp_port and settings.smtp_user and settings.smtp_password and from_addr):
        raise RuntimeError("SMTP config incomplete: check host/port/user/password/from")

    msg = EmailMessage()
    msg["To"] = to
    msg["From"] = f"{sender_name} <{from_addr}>" if sender_name else from_addr
    msg["Subject"] = subject
    msg.set_content("This message is HTML; open it in an HTML-capable mail client.")
    msg.add_alternative(html, subtype="html")

    def _send_blocking():
        context = ssl.create_default_context()
        if settings.smtp_use_starttls:
            with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.http_timeout) as server:
                server.ehlo()
                server.starttls(context=context)
                server.ehlo()
                server.login(settings.smtp_user, settings.smtp_password)
                server.send_message(msg)
        else:
            with smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, context=context,
                                  timeout=settings.http_timeout) as server:
                server.login(settings.smtp_user, settings.smtp_password)
                server.send_message(msg)

    await asyncio.to_thread(_send_blocking)
