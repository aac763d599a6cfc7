"""Install the user accounts service."""

from setuptools import setup, find_packages

setup(
    name='useraccounts',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    package_data={'useraccounts': ['templates/useraccounts/mail/*.txt']},
    include_package_data=True,
    install_requires=[
        "flask>=2.3",
        "werkzeug>=2.3",
        "flask-sqlalchemy>=3.0",
        "sqlalchemy>=1.4",
        "redis>=4.1",
        "pyjwt>=2.0",
        "pytz",
        "click"
    ],
    extras_require={
        'test': ['pytest']
    },
    zip_safe=False
)
