"""Propdesk CLI tool."""

import asyncio
from uuid import UUID

import typer

from propdesk.core.config import settings
from propdesk.core.logging import configure_logging

app = typer.Typer(name="propdesk", help="Propdesk RBAC administration")


@app.callback()
def main() -> None:
    configure_logging(settings.log_level, "text")


@app.command("init-db")
def init_db_command():
    """Create all tables."""
    from propdesk.models.database import close_db, init_db

    async def run() -> None:
        try:
            await init_db()
        finally:
            await close_db()

    asyncio.run(run())
    typer.echo("Tables created")


@app.command("seed")
def seed_command(
    default_role: str = typer.Option(
        None,
        help="Role granted to users without roles (defaults to RBAC_DEFAULT_ROLE)",
    ),
):
    """Seed the default permissions, roles and grants. Safe to re-run."""
    from propdesk.models.database import close_db, session_scope
    from propdesk.rbac.seed import DefaultPolicySeeder
    from propdesk.rbac.service import RBACService

    async def run():
        try:
            async with session_scope() as session:
                return await DefaultPolicySeeder(
                    RBACService(session),
                    default_role=default_role,
                ).seed()
        finally:
            await close_db()

    result = asyncio.run(run())
    typer.echo(
        f"Seeded {result.permissions} permissions, {result.roles} roles, "
        f"{result.links_created} role links, {result.users_defaulted} default grants"
    )


@app.command("token")
def token_command(user_id: UUID = typer.Argument(..., help="User id to put in `sub`")):
    """Issue an access token for local testing."""
    from propdesk.services.auth import AuthService

    typer.echo(AuthService().create_access_token(user_id))


if __name__ == "__main__":
    app()
