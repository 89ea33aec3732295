# Usage:
# flask --app loandesk seed-users
# flask --app loandesk seed-users --password StrongPassword123
import click
from flask import current_app
from flask.cli import with_appcontext

from .auth.users import UserStore
from .db import get_supabase
from .roles import Role

SEED_ACCOUNTS = [
    ("Super Admin", "super@example.com", Role.SUPER_ADMIN, {}),
    ("Admin User", "admin@example.com", Role.ADMIN, {}),
    ("John Doe", "user@example.com", Role.USER, {
        "phone_number": "01712345678",
        "address": "123 Dhaka Road, Dhaka",
    }),
]


@click.command("seed-users")
@click.option("--password", default="password", show_default=True,
              help="Password given to every seeded account.")
@with_appcontext
def seed_users(password):
    """Create the super admin, admin and test user accounts if missing."""
    users = UserStore(get_supabase())
    for full_name, email, role, extra in SEED_ACCOUNTS:
        if users.find_by_email(email):
            click.echo(f"{role.value} {email} already exists")
            continue
        users.create(full_name, email, password, role=role, **extra)
        current_app.logger.info(f"Seeded {role.value} account {email}")
        click.echo(f"{role.value} {email} created")

    click.echo("\nLogin credentials:")
    for _, email, role, _ in SEED_ACCOUNTS:
        click.echo(f"{role.value}: {email} / {password}")
