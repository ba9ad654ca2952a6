# supermarket_ai/api/utils/email.py
from flask_mail import Message

from supermarket_ai.extensions import mail


def send_email(subject, recipients, body, attachments=None, sender=None):
    """
    Plain-text UTF-8 e-mail with optional attachments
    ({"filename", "content", "mimetype"} dicts).
    """
    if isinstance(recipients, str):
        recipients = [recipients]

    msg = Message(
        subject=subject or "",
        recipients=list(recipients or []),
        body=body or "",
        sender=sender,
    )
    msg.charset = "utf-8"

    for att in attachments or []:
        data = att.get("content")
        if data is None:
            continue
        msg.attach(
            filename=att.get("filename") or "attachment",
            content_type=att.get("mimetype") or "application/octet-stream",
            data=data,
        )

    mail.send(msg)
    return msg
