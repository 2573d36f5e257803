"""
Initial data setup for the Aténays back office
Admin accounts and the default profession catalogue
"""

import logging
from datetime import datetime

import click
from werkzeug.security import generate_password_hash

from database import db
from models import Profession, User
from utils.professions import DEFAULT_PROFESSIONS

logger = logging.getLogger(__name__)


def create_admin_user(username, password):
    """
    Create an admin account, or promote the existing user of that name

    Returns:
        bool: True when a new user was created
    """
    username = username.strip().lower()
    user = User.query.filter_by(username=username).first()

    if user:
        if user.role != "admin":
            user.role = "admin"
            db.session.commit()
            logger.info(f"User {username} promoted to admin")
        else:
            logger.info(f"Admin user {username} already exists")
        return False

    user = User(
        username=username,
        password=generate_password_hash(password),
        role="admin",
        created_at=datetime.utcnow(),
    )
    db.session.add(user)
    db.session.commit()
    logger.info(f"Admin user {username} created")
    return True


def seed_professions():
    """
    Insert the default professions that are missing, with empty price brackets

    Returns:
        list: names of the professions created
    """
    existing = {name for (name,) in db.session.query(Profession.name).all()}
    created = []
    for name in DEFAULT_PROFESSIONS:
        if name in existing:
            continue
        db.session.add(Profession(name=name, price_ranges={}))
        created.append(name)
    db.session.commit()
    logger.info(f"Professions seeded: {created or 'none'}")
    return created


def register_setup_commands(app):
    """Register the setup CLI commands."""

    @app.cli.command("users:create-admin")
    @click.argument("username")
    @click.password_option()
    def create_admin_command(username, password):
        """Create (or promote) an admin account."""
        if create_admin_user(username, password):
            click.echo(f"Admin user {username.strip().lower()} created")
        else:
            click.echo(f"User {username.strip().lower()} is now admin")

    @app.cli.command("seed:professions")
    def seed_professions_command():
        """Insert the default professions when missing."""
        created = seed_professions()
        if created:
            click.echo(f"Created: {', '.join(created)}")
        else:
            click.echo("All default professions already exist")
