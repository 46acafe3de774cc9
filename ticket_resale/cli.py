"""
Operator commands, run with ``flask --app ticket_resale.app <command>``.
"""

import click

from ticket_resale.errors import ValidationError
from ticket_resale.extensions import db
from ticket_resale.models import User
from ticket_resale.services.reconciliation_service import release_stale_purchases


def register_commands(app):

    @app.cli.command('init-db')
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo('Database initialised')

    @app.cli.command('create-admin')
    @click.option('--email', required=True)
    @click.password_option()
    @click.option('--full-name', default=None)
    def create_admin(email, password, full_name):
        """Provision an admin account (or promote an existing user)."""
        user = User.query.filter_by(email=email).first()
        if user is None:
            user = User(email=email, full_name=full_name)
            user.set_password(password)
            db.session.add(user)
        user.role = 'admin'
        user.email_verified = True
        user.kyc_status = 'verified'
        db.session.commit()
        click.echo(f'Admin ready: {user.email} ({user.user_id})')

    @app.cli.command('release-stale-purchases')
    @click.option('--older-than-minutes', type=int, default=None,
                  help='Release purchases pending for longer than this. '
                       'Defaults to PENDING_PURCHASE_TTL_MINUTES.')
    def release_stale(older_than_minutes):
        """Fail abandoned payments and put their tickets back on sale."""
        minutes = older_than_minutes
        if minutes is None:
            minutes = app.config.get('PENDING_PURCHASE_TTL_MINUTES')
        if minutes is None:
            raise click.UsageError(
                'No age given: pass --older-than-minutes or set PENDING_PURCHASE_TTL_MINUTES'
            )
        try:
            released = release_stale_purchases(minutes)
        except ValidationError as e:
            raise click.BadParameter(e.message, param_hint='--older-than-minutes')
        click.echo(f'Released {len(released)} stale purchase(s)')
