# utils/notifications.py
"""
Notification sender for session postponements and cancellations.

Delivery is fire-and-forget: failures are logged and never propagated to the
caller. Messages are sent after the lifecycle transition has committed.
When notifications are disabled the message is only logged.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText


class NotificationService:
    def __init__(self, app=None):
        self.logger = logging.getLogger('notification_service')
        self.enabled = False
        self.config = {}
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.enabled = app.config.get('NOTIFICATIONS_ENABLED', False)
        self.config = {
            'server': app.config.get('MAIL_SERVER'),
            'port': app.config.get('MAIL_PORT'),
            'use_ssl': app.config.get('MAIL_USE_SSL', True),
            'username': app.config.get('MAIL_USERNAME'),
            'password': app.config.get('MAIL_PASSWORD'),
            'sender': app.config.get('MAIL_DEFAULT_SENDER'),
            'timeout': app.config.get('MAIL_TIMEOUT', 10),
        }

        if self.enabled and not (self.config['username'] and self.config['password']):
            self.logger.warning("Notifications enabled but MAIL_USERNAME/MAIL_PASSWORD missing")

        app.logger.info(f"Notification service initialized (enabled={self.enabled})")

    def notify_session_cancelled(self, session, recipients, reason):
        """Tell every affected student that a session will not take place."""
        subject = f"Session cancelled: {session.date.isoformat()} {session.start_time.strftime('%H:%M')}"
        body = (
            f"The session on {session.date.isoformat()} from "
            f"{session.start_time.strftime('%H:%M')} to {session.end_time.strftime('%H:%M')} "
            f"has been cancelled.\n\nReason: {reason}\n"
        )
        return self._dispatch(recipients, subject, body)

    def notify_session_postponed(self, original, replacement, recipients):
        """Tell every affected student where the postponed session moved to."""
        subject = f"Session postponed to {replacement.date.isoformat()}"
        body = (
            f"The session on {original.date.isoformat()} at {original.start_time.strftime('%H:%M')} "
            f"has been postponed.\n\nNew date: {replacement.date.isoformat()}\n"
            f"Time: {replacement.start_time.strftime('%H:%M')} - {replacement.end_time.strftime('%H:%M')}\n"
            f"Classroom: {replacement.classroom}\n"
            f"Mode: {replacement.mode}\n"
        )
        return self._dispatch(recipients, subject, body)

    def _dispatch(self, recipients, subject, body):
        """Send one message per recipient; returns the number delivered."""
        recipients = [r for r in recipients if r]
        if not recipients:
            return 0

        if not self.enabled:
            self.logger.info(f"Notification (not sent, disabled) to {len(recipients)} recipients: {subject}")
            return 0

        delivered = 0
        try:
            server = self._create_smtp_connection()
        except (smtplib.SMTPException, OSError) as e:
            self.logger.error(f"Could not connect to mail server: {str(e)}", exc_info=True)
            return 0

        try:
            for recipient in recipients:
                msg = MIMEMultipart('alternative')
                msg['Subject'] = subject
                msg['From'] = self.config['sender']
                msg['To'] = recipient
                msg.attach(MIMEText(body, 'plain'))

                try:
                    server.send_message(msg)
                    delivered += 1
                except smtplib.SMTPRecipientsRefused as e:
                    self.logger.warning(f"Recipient refused {recipient}: {str(e)}")
                except smtplib.SMTPException as e:
                    self.logger.error(f"Failed to send notification to {recipient}: {str(e)}")
        finally:
            try:
                server.quit()
            except smtplib.SMTPException as e:
                self.logger.debug(f"Error closing SMTP connection: {str(e)}")

        self.logger.info(f"Notification '{subject}' delivered to {delivered}/{len(recipients)} recipients")
        return delivered

    def _create_smtp_connection(self):
        server_name = self.config['server']
        port = self.config['port']
        timeout = self.config['timeout']

        if self.config['use_ssl']:
            self.logger.debug(f"Creating SMTP_SSL connection to {server_name}:{port}")
            server = smtplib.SMTP_SSL(server_name, port, timeout=timeout)
        else:
            self.logger.debug(f"Creating SMTP connection to {server_name}:{port}")
            server = smtplib.SMTP(server_name, port, timeout=timeout)
            server.starttls()

        if self.config['username'] and self.config['password']:
            server.login(self.config['username'], self.config['password'])
        return server
