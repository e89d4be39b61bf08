"""Administrative command-line interface for the StockGenius service."""

from datetime import timedelta

import click

from stockgenius import __version__
from stockgenius.auth.utils import create_access_token
from stockgenius.db.database import init_db


@click.group()
@click.version_option(version=__version__)
def main():
    """StockGenius service administration."""
    pass


@main.command("init-db")
def init_db_command():
    """Create database tables that don't exist yet."""
    init_db()
    click.echo("Database initialized.")


@main.command("issue-token")
@click.argument("owner_id")
@click.option("--days", type=int, default=None, help="Token lifetime in days.")
def issue_token(owner_id: str, days: int | None):
    """Issue an access token scoped to OWNER_ID.

    Paste the token into 'stocksync configure' on the client.
    """
    expires = timedelta(days=days) if days else None
    click.echo(create_access_token(owner_id, expires_delta=expires))


if __name__ == "__main__":
    main()
