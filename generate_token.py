"""
Helper script for generating an auth JWT.

Be sure that you are using the same secret when running this script as when you
run the app. Set ``JWT_SECRET=somesecret`` in your environment to ensure that
the same secret is always used.


.. code-block:: bash

   $ JWT_SECRET=foosecret python generate_token.py
   Username: alice
   Role (user, admin) [user]: admin
   Valid for (seconds) [36000]:

   eyJ0eXAiOiJKV1QiLCJhbGciOiJIUzI1NiJ9.eyJzdWIiOiJhbGljZSIsInJvbGUiOi...


Start the dev server with:

.. code-block:: bash

   $ JWT_SECRET=foosecret FLASK_APP=app.py FLASK_DEBUG=1 flask run


Use the token in your requests to authorized endpoints. Set the header
``Authorization: Bearer [token]``.

"""

import os

import click

from useraccounts import authentication, domain


@click.command()
@click.option('--username', prompt='Username')
@click.option('--role', prompt='Role (user, admin)', default=domain.Role.USER,
              type=click.Choice(domain.Role.ROLES))
@click.option('--expires_in', prompt='Valid for (seconds)', default=36000)
def generate_token(username: str, role: str = domain.Role.USER,
                   expires_in: int = 36000) -> None:
    """Generate an auth token for dev/testing purposes."""
    identity = domain.Identity(username=username.lower(), role=role,
                               method='jwt')
    token = authentication.encode_identity(identity,
                                           os.environ['JWT_SECRET'],
                                           expires_in=int(expires_in))
    click.echo(token)


if __name__ == '__main__':
    generate_token()
