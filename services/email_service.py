"""
Email Service
=============
SMTP delivery for notification emails.

``send_email`` never raises: delivery problems are logged and reported as
``False`` so callers can treat email as a best-effort side channel.
"""
import smtplib
import ssl
from email.message import EmailMessage
from html import escape

from flask import current_app


class EmailService:
    """Sends mail through the SMTP server named in the app config."""

    def __init__(self, config):
        self.enabled = config.get('MAIL_ENABLED', False)
        self.host = config.get('SMTP_HOST')
        self.port = int(config.get('SMTP_PORT') or 587)
        self.user = config.get('SMTP_USER')
        self.password = config.get('SMTP_PASS')
        self.sender = config.get('EMAIL_FROM') or self.user
        self.sender_name = config.get('EMAIL_FROM_NAME', 'AutoCare')

    @property
    def configured(self):
        return all([self.host, self.port, self.user, self.password, self.sender])

    def send_email(self, to, subject, html, text=None):
        """Send one message.  Returns True on success, False otherwise."""
        if not self.enabled:
            current_app.logger.debug(f"Mail disabled, not sending '{subject}' to {to}")
            return False
        if not to:
            current_app.logger.warning(f"No recipient for email '{subject}'")
            return False
        if not self.configured:
            current_app.logger.error("SMTP configuration missing, email not sent")
            return False

        msg = EmailMessage()
        msg['From'] = f'{self.sender_name} <{self.sender}>'
        msg['To'] = to
        msg['Subject'] = subject
        msg.set_content(text or subject)
        msg.add_alternative(html, subtype='html')

        try:
            context = ssl.create_default_context()
            if self.port == 465:
                with smtplib.SMTP_SSL(self.host, self.port, context=context) as server:
                    server.login(self.user, self.password)
                    server.send_message(msg, from_addr=self.sender, to_addrs=[to])
            else:
                with smtplib.SMTP(self.host, self.port) as server:
                    server.starttls(context=context)
                    server.login(self.user, self.password)
                    server.send_message(msg, from_addr=self.sender, to_addrs=[to])
        except (smtplib.SMTPException, OSError) as e:
            current_app.logger.error(f"Error sending email to {to}: {e}")
            return False

        current_app.logger.info(f"Email sent to {to}: {subject}")
        return True

    def send_notification_email(self, to, title, message):
        return self.send_email(to, title, render_notification_html(title, message), text=message)

    def send_test_email(self, to, name=None):
        greeting = f'Hi {name},' if name else 'Hi,'
        message = (f'{greeting}\n\nThis is a test email from AutoCare. '
                   'If you received it, email notifications are working.')
        return self.send_email(
            to,
            'AutoCare - Test email',
            render_notification_html('Test email', message),
            text=message,
        )


def render_notification_html(title, message):
    paragraphs = ''.join(
        f'<p>{escape(line)}</p>' for line in message.split('\n') if line.strip()
    )
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: #1f6feb;">{escape(title)}</h2>'
        f'{paragraphs}'
        '<hr style="border: none; border-top: 1px solid #ddd;">'
        '<p style="color: #888; font-size: 12px;">'
        'You are receiving this email because notifications are enabled in your AutoCare settings.'
        '</p>'
        '</div>'
    )
