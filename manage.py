"""
manage.py — CLI admin commands for Thailand Tracker.

Usage:
    python manage.py create-user --email me@example.com --name "Me"
    python manage.py sync-provinces --email me@example.com
    python manage.py sync-provinces --all
    python manage.py seed-demo --email me@example.com
"""

import click

import reconcile
from auth import hash_password
from database import SessionLocal, init_db
from demo_data import DEMO_PLACES
from models import AppUser, Place


def _user_by_email(session, email: str) -> AppUser:
    user = session.query(AppUser).filter_by(email=email.strip().lower()).first()
    if user is None:
        click.echo(f'✗ No account with email {email!r}.', err=True)
        raise SystemExit(1)
    return user


@click.group()
def cli():
    """Thailand Tracker admin commands."""
    init_db()


@cli.command('create-user')
@click.option('--email',    prompt=True,  help='Account email address')
@click.option('--name',     prompt=True,  help='Display name')
@click.option('--password', prompt=True,  hide_input=True, confirmation_prompt=True,
              help='Login password (hidden)')
def create_user(email: str, name: str, password: str):
    """Create a new account."""
    email = email.strip().lower()
    if len(password) < 6:
        click.echo('✗ Password must be at least 6 characters.', err=True)
        raise SystemExit(1)

    with SessionLocal() as session:
        existing = session.query(AppUser).filter_by(email=email).first()
        if existing:
            click.echo(f'✗ An account with email {email!r} already exists (id={existing.id}).', err=True)
            raise SystemExit(1)

        user = AppUser(
            email         = email,
            full_name     = name.strip() or None,
            password_hash = hash_password(password),
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        click.echo(f'✓ Created account for {email!r} (id={user.id})')


@cli.command('sync-provinces')
@click.option('--email', default=None, help='Only this account')
@click.option('--all', 'all_users', is_flag=True, help='Every account')
def sync_provinces(email: str | None, all_users: bool):
    """Re-derive visited provinces from logged places."""
    if not email and not all_users:
        click.echo('✗ Pass --email or --all.', err=True)
        raise SystemExit(1)

    with SessionLocal() as session:
        users = [_user_by_email(session, email)] if email else session.query(AppUser).all()
        for user in users:
            provinces, changed = reconcile.apply_reconciliation(session, user.id)
            visited = sum(1 for p in provinces if p['visited'])
            click.echo(f'{user.email}: {changed} change(s), {visited} province(s) visited')


@cli.command('seed-demo')
@click.option('--email', required=True, help='Account to receive the demo places')
def seed_demo(email: str):
    """Copy the demo journey into an account."""
    with SessionLocal() as session:
        user = _user_by_email(session, email)
        # oldest first, so the newest demo entry lists first
        for item in reversed(DEMO_PLACES):
            session.add(Place(
                user_id     = user.id,
                name        = item['name'],
                location    = item['location'],
                date_added  = item['dateAdded'],
                image       = item['image'],
                is_marked   = item['isMarked'],
                category    = item['category'],
                description = item['description'],
            ))
            session.flush()
        session.commit()
        _, changed = reconcile.apply_reconciliation(session, user.id)
        click.echo(f'✓ Added {len(DEMO_PLACES)} places for {user.email} ({changed} province change(s))')


if __name__ == '__main__':
    cli()
