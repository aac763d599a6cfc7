"""
Script for creating a new user account, e.g. the first administrator.

.. warning: Passwords given on the command line may end up in your shell
   history. Prefer the prompt.

"""

import click

from useraccounts import domain
from useraccounts.exceptions import DuplicateKey, ValidationError
from useraccounts.factory import create_web_app
from useraccounts.services import datastore


@click.command()
@click.option('--username', prompt='Username')
@click.option('--email', prompt='Email address')
@click.option('--password', prompt='Password', hide_input=True,
              confirmation_prompt=True)
@click.option('--role', prompt='Role (user, admin)', default=domain.Role.ADMIN,
              type=click.Choice(domain.Role.ROLES))
@click.option('--activate/--no-activate', default=True,
              help='Skip confirmation for this account.')
def create_user(username: str, email: str, password: str, role: str,
                activate: bool) -> None:
    """Create a new user account."""
    app = create_web_app()
    with app.app_context():
        datastore.create_all()
        store = datastore.UserStore(require_activation=not activate)
        try:
            user = store.create({'id': username, 'email': email,
                                 'password': password, 'role': role})
        except (DuplicateKey, ValidationError) as e:
            raise click.ClickException(str(e)) from e
        click.echo(f'Created {user.role} {user.username} ({user.state})')
        if user.invite_code:
            click.echo(f'Invite code: {user.invite_code}')


if __name__ == '__main__':
    create_user()
