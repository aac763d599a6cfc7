"""
Outbound e-mail for account confirmation and password resets.

Messages are rendered from the templates in
``useraccounts/templates/useraccounts/mail/``, and handed off to an SMTP
server. Rendering requires an application context.
"""

import smtplib
from email.message import EmailMessage
from typing import Any

from flask import render_template

from .. import domain
from ..context import get_application_config, get_application_global
from ..exceptions import MailDeliveryFailed
from ..logging import getLogger

logger = getLogger(__name__)


class MailSession(object):
    """Sends account e-mail through an SMTP service."""

    def __init__(self, host: str = 'localhost', port: int = 25,
                 sender: str = 'accounts@localhost',
                 base_url: str = 'http://localhost:5000') -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._base_url = base_url.rstrip('/')

    def _new_connection(self) -> smtplib.SMTP:
        return smtplib.SMTP(host=self._host, port=self._port)

    def _compose(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message['From'] = self._sender
        message['To'] = to
        message['Subject'] = subject
        message.set_content(body)
        return message

    def send_message(self, message: EmailMessage) -> None:
        """
        Hand a message off to the SMTP server.

        Raises
        ------
        :class:`MailDeliveryFailed`
            Raised when the server cannot be reached, or refuses the message.

        """
        try:
            with self._new_connection() as conn:
                conn.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error('Could not send mail to %s: %s', message['To'], e)
            raise MailDeliveryFailed(f'Could not send mail: {e}') from e
        logger.debug('Sent "%s" to %s', message['Subject'], message['To'])

    def send_confirmation(self, user: domain.User) -> None:
        """Ask ``user`` to confirm their account."""
        body = render_template('useraccounts/mail/confirm.txt', user=user,
                               base_url=self._base_url)
        self.send_message(
            self._compose(user.email, 'Please confirm your account', body)
        )

    def send_password_reset(self, user: domain.User) -> None:
        """Send ``user`` a link to set a new password."""
        body = render_template('useraccounts/mail/reset.txt', user=user,
                               base_url=self._base_url)
        self.send_message(
            self._compose(user.email, 'Set your password', body)
        )


def init_app(app: object = None) -> None:
    """Set default configuration parameters for an application instance."""
    config = get_application_config(app)
    config.setdefault('SMTP_HOST', 'localhost')
    config.setdefault('SMTP_PORT', '25')
    config.setdefault('MAIL_SENDER', 'accounts@localhost')
    config.setdefault('BASE_URL', 'http://localhost:5000')


def get_mail_session(app: object = None) -> MailSession:
    """Get a new :class:`.MailSession` configured for ``app``."""
    config = get_application_config(app)
    return MailSession(
        host=config.get('SMTP_HOST', 'localhost'),
        port=int(config.get('SMTP_PORT', '25')),
        sender=config.get('MAIL_SENDER', 'accounts@localhost'),
        base_url=config.get('BASE_URL', 'http://localhost:5000')
    )


def current_session() -> MailSession:
    """Get/create the :class:`.MailSession` for this context."""
    g = get_application_global()
    if g is None:
        return get_mail_session()
    if 'mail' not in g:
        g.mail = get_mail_session()
    return g.mail      # type: ignore

