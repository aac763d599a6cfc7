"""Tests for :mod:`useraccounts.services.mail`."""

import smtplib
from unittest import TestCase, mock

from ... import domain
from ...exceptions import BackendError, MailDeliveryFailed
from ...tests.util import create_test_app
from .. import mail


class TestMailSession(TestCase):
    """Account e-mail is rendered from templates and sent over SMTP."""

    def setUp(self):
        self.app = create_test_app(BASE_URL='https://accounts.example.com/')
        self.user = domain.User(user_id='alice', email='alice@example.com',
                                invite_code='foocode', shake='fooshake')

    @mock.patch(f'{mail.__name__}.smtplib')
    def test_send_confirmation(self, mock_smtplib):
        """The confirmation message contains the invite code."""
        mock_smtplib.SMTPException = smtplib.SMTPException
        with self.app.app_context():
            mail.get_mail_session(self.app).send_confirmation(self.user)

        mock_smtplib.SMTP.assert_called_once_with(host='localhost', port=25)
        conn = mock_smtplib.SMTP.return_value.__enter__.return_value
        self.assertEqual(conn.send_message.call_count, 1)
        message = conn.send_message.call_args[0][0]
        self.assertEqual(message['To'], 'alice@example.com')
        self.assertEqual(message['From'], 'accounts@localhost')
        body = message.get_content()
        self.assertIn('foocode', body)
        self.assertIn('https://accounts.example.com/users/alice/confirm',
                      body)

    @mock.patch(f'{mail.__name__}.smtplib')
    def test_send_password_reset(self, mock_smtplib):
        """The password-reset message contains the reset key."""
        mock_smtplib.SMTPException = smtplib.SMTPException
        with self.app.app_context():
            mail.current_session().send_password_reset(self.user)

        conn = mock_smtplib.SMTP.return_value.__enter__.return_value
        message = conn.send_message.call_args[0][0]
        self.assertIn('fooshake', message.get_content())

    @mock.patch(f'{mail.__name__}.smtplib')
    def test_server_unavailable(self, mock_smtplib):
        """:class:`.MailDeliveryFailed` is raised if sending fails."""
        mock_smtplib.SMTPException = smtplib.SMTPException
        mock_smtplib.SMTP.side_effect = ConnectionRefusedError('nope')
        with self.app.app_context():
            with self.assertRaises(MailDeliveryFailed):
                mail.current_session().send_confirmation(self.user)

    @mock.patch(f'{mail.__name__}.smtplib')
    def test_message_refused(self, mock_smtplib):
        """Refusal by the server is a backend failure."""
        mock_smtplib.SMTPException = smtplib.SMTPException
        conn = mock_smtplib.SMTP.return_value.__enter__.return_value
        conn.send_message.side_effect = smtplib.SMTPRecipientsRefused({})
        with self.app.app_context():
            with self.assertRaises(BackendError):
                mail.current_session().send_confirmation(self.user)
