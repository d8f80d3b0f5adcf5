"""Local server and database management commands."""

import typer
from rich.console import Console
from rich.panel import Panel

from src.sso_bridge.core.security import generate_secure_token
from src.sso_bridge.core.services.database.db_session import DbSessionService
from src.sso_bridge.runtime.context import get_config

console = Console()

server_app = typer.Typer(help="Run the service and manage its database")


@server_app.command("init-db")
def init_db() -> None:
    """Create the user and account tables."""
    config = get_config()
    service = DbSessionService(config)
    try:
        service.create_all()
    finally:
        service.dispose()
    console.print(f"[green]✅ Database initialized at {config.database.url}[/green]")


@server_app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the HTTP service with uvicorn."""
    import uvicorn

    config = get_config()
    console.print(
        Panel.fit(
            f"Environment: {config.app.environment}\n"
            f"Token format: {config.sso.token_format}\n"
            f"Expected issuer: {config.sso.expected_issuer}",
            title="SSO Bridge",
        )
    )
    uvicorn.run(
        "src.sso_bridge.api.http.app:create_app",
        factory=True,
        host=host or config.app.host,
        port=port or config.app.port,
        reload=reload,
        access_log=False,
    )


@server_app.command("generate-secret")
def generate_secret(
    length: int = typer.Option(32, "--length", "-l", help="Random bytes"),
) -> None:
    """Print a random secret suitable for signing or credential derivation."""
    typer.echo(generate_secure_token(length))
