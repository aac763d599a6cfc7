"""Tests for :mod:`useraccounts.lifecycle`."""

from unittest import TestCase, mock

from .. import domain, passwords
from ..exceptions import BackendError, InvalidInviteCode, \
    MailDeliveryFailed, NotFound, PreconditionFailed, ValidationError
from ..lifecycle import AccountLifecycle
from ..services import datastore
from .util import create_test_app

ROOT = domain.Identity('root', role=domain.Role.ADMIN)


class LifecycleTestCase(TestCase):
    """Provides a temporary database and a mock mailer."""

    def setUp(self):
        self.app = create_test_app()
        self.context = self.app.app_context()
        self.context.push()
        datastore.create_all()
        self.store = datastore.UserStore(require_activation=True)
        self.mailer = mock.MagicMock()
        self.lifecycle = AccountLifecycle(self.store, self.mailer)
        self.bob = self.store.create({'id': 'bob',
                                      'email': 'bob@example.com'})

    def tearDown(self):
        datastore.drop_all()
        self.context.pop()


class TestConfirmWithInviteCode(LifecycleTestCase):
    """Anyone holding the invite code may activate the account."""

    def test_valid_code(self):
        """The account is activated and the code is spent."""
        credentials = domain.Credentials(self.bob.invite_code)
        user = self.lifecycle.confirm('bob', None, credentials)
        self.assertEqual(user.state, domain.UserState.ACTIVE)
        self.assertIsNone(user.invite_code)
        self.assertEqual(self.store.get('bob').state, domain.UserState.ACTIVE)
        self.assertEqual(self.mailer.send_confirmation.call_count, 0)

    def test_code_without_target(self):
        """The code alone is enough to find the account."""
        credentials = domain.Credentials(self.bob.invite_code)
        user = self.lifecycle.confirm(None, None, credentials)
        self.assertEqual(user.user_id, 'bob')
        self.assertTrue(user.is_active)

    def test_self_with_code(self):
        """An authenticated owner may use their own code."""
        credentials = domain.Credentials(self.bob.invite_code)
        user = self.lifecycle.confirm('bob', domain.Identity('bob'),
                                      credentials)
        self.assertTrue(user.is_active)

    def test_code_reused(self):
        """A code can only be used once."""
        credentials = domain.Credentials(self.bob.invite_code)
        self.lifecycle.confirm(None, None, credentials)
        with self.assertRaises(InvalidInviteCode):
            self.lifecycle.confirm(None, None, credentials)

    def test_unknown_code(self):
        """:class:`.InvalidInviteCode` is raised for an unknown code."""
        with self.assertRaises(InvalidInviteCode):
            self.lifecycle.confirm('bob', None, domain.Credentials('nope'))
        self.assertEqual(self.store.get('bob').state, domain.UserState.NEW)

    def test_code_for_other_account(self):
        """A code cannot be used to activate a different account."""
        self.store.create({'id': 'carol', 'email': 'carol@example.com'})
        with self.assertRaises(InvalidInviteCode):
            self.lifecycle.confirm('carol', None,
                                   domain.Credentials(self.bob.invite_code))
        self.assertEqual(self.store.get('bob').state, domain.UserState.NEW)
        self.assertEqual(self.store.get('carol').state, domain.UserState.NEW)

    def test_no_code(self):
        """Anonymous callers must provide a code."""
        with self.assertRaises(InvalidInviteCode):
            self.lifecycle.confirm('bob', None, domain.Credentials())
        with self.assertRaises(InvalidInviteCode):
            self.lifecycle.confirm('bob')

    def test_lost_race(self):
        """The loser of a race to spend a code gets an invalid code."""
        credentials = domain.Credentials(self.bob.invite_code)
        with mock.patch.object(self.store, 'update') as mock_update:
            mock_update.side_effect = PreconditionFailed('nope')
            with self.assertRaises(InvalidInviteCode):
                self.lifecycle.confirm('bob', None, credentials)
        self.assertEqual(mock_update.call_args[1]['expected_state'],
                         domain.UserState.NEW)


class TestConfirmByAdministrator(LifecycleTestCase):
    """Administrators can ask the owner to confirm their account."""

    def test_confirm_without_code(self):
        """The account is pending, and the owner is sent a message."""
        user = self.lifecycle.confirm('bob', ROOT, domain.Credentials())
        self.assertEqual(user.state, domain.UserState.PENDING)
        self.assertEqual(user.invite_code, self.bob.invite_code)
        self.mailer.send_confirmation.assert_called_once_with(user)

    def test_confirm_without_invite_code(self):
        """A new invite code is generated if there is none."""
        self.store.update('bob', {'invite_code': None})
        user = self.lifecycle.confirm('bob', ROOT)
        self.assertTrue(user.invite_code)

    def test_mail_fails(self):
        """A mail failure is raised, but the state change persists."""
        self.mailer.send_confirmation.side_effect = MailDeliveryFailed('nope')
        with self.assertRaises(BackendError):
            self.lifecycle.confirm('bob', ROOT)
        self.assertEqual(self.store.get('bob').state,
                         domain.UserState.PENDING)

    def test_already_active(self):
        """An active account cannot go back to pending."""
        self.store.update('bob', {'state': domain.UserState.ACTIVE})
        with self.assertRaises(ValidationError):
            self.lifecycle.confirm('bob', ROOT)
        self.assertEqual(self.mailer.send_confirmation.call_count, 0)

    def test_nonexistant(self):
        """:class:`.NotFound` is raised for an unknown account."""
        with self.assertRaises(NotFound):
            self.lifecycle.confirm('nobody', ROOT)


class TestAvailable(LifecycleTestCase):
    """Check whether a username is taken."""

    def test_available(self):
        self.assertTrue(self.lifecycle.available('alice'))
        self.assertFalse(self.lifecycle.available('bob'))
        self.assertFalse(self.lifecycle.available('BOB'))


class TestPasswordReset(LifecycleTestCase):
    """Active users can set a new password with a reset key."""

    def setUp(self):
        super(TestPasswordReset, self).setUp()
        self.store.update('bob', {'state': domain.UserState.ACTIVE})

    def test_forgot(self):
        """A reset key is issued and sent."""
        user = self.lifecycle.forgot('bob')
        self.assertTrue(user.shake)
        self.mailer.send_password_reset.assert_called_once_with(user)

    def test_forgot_without_email(self):
        """The message can be skipped."""
        user = self.lifecycle.forgot('bob', send_email=False)
        self.assertTrue(user.shake)
        self.assertEqual(self.mailer.send_password_reset.call_count, 0)

    def test_forgot_inactive(self):
        """Only active accounts can reset their password."""
        self.store.create({'id': 'carol', 'email': 'carol@example.com'})
        with self.assertRaises(ValidationError):
            self.lifecycle.forgot('carol')

    def test_reset(self):
        """The new password is set, and the key is spent."""
        shake = self.lifecycle.forgot('bob').shake
        user = self.lifecycle.reset_password('bob', shake, 'newpass')
        self.assertIsNone(user.shake)
        passwords.check_password('newpass', user.password_salt,
                                 user.password_hash)
        with self.assertRaises(ValidationError):
            self.lifecycle.reset_password('bob', shake, 'otherpass')

    def test_reset_wrong_key(self):
        """:class:`.ValidationError` is raised for the wrong key."""
        self.lifecycle.forgot('bob')
        with self.assertRaises(ValidationError):
            self.lifecycle.reset_password('bob', 'nope', 'newpass')
        self.assertFalse(self.store.get('bob').has_password)

    def test_reset_non_ascii_key(self):
        """A key outside ASCII is simply the wrong key."""
        self.lifecycle.forgot('bob')
        with self.assertRaises(ValidationError):
            self.lifecycle.reset_password('bob', 'ünknown', 'newpass')
