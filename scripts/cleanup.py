from datetime import datetime
from pathlib import Path

import click
from flask import current_app


def register_cleanup_commands(app):
    """Register the cleanup CLI commands."""

    @app.cli.command("cleanup:sessions")
    @click.option(
        "--dry-run/--no-dry-run", default=True, help="Report only, delete nothing"
    )
    def cleanup_sessions(dry_run: bool):
        """Delete filesystem sessions older than PERMANENT_SESSION_LIFETIME."""
        if current_app.config.get("SESSION_TYPE") != "filesystem":
            current_app.logger.info("Filesystem sessions not in use, nothing to clean")
            click.echo("Sessions are not stored on disk")
            return

        session_dir = Path(current_app.config.get("SESSION_FILE_DIR", ""))
        if not session_dir.exists():
            current_app.logger.info("Session directory not found")
            click.echo(f"No session directory at {session_dir}")
            return

        lifetime = current_app.permanent_session_lifetime
        now = datetime.utcnow()
        checked = removed = 0

        for path in session_dir.glob("*"):
            if not path.is_file():
                continue
            checked += 1
            mtime = datetime.utcfromtimestamp(path.stat().st_mtime)
            if now - mtime <= lifetime:
                continue
            if dry_run:
                current_app.logger.info(f"Would delete {path} (dry-run)")
                continue
            try:
                path.unlink()
                removed += 1
                current_app.logger.info(f"Deleted {path}")
            except OSError as e:
                current_app.logger.error(f"Could not delete {path}: {e}")

        current_app.logger.info(f"Session files checked: {checked}, deleted: {removed}")
        click.echo(f"Checked {checked} file(s), deleted {removed}")
