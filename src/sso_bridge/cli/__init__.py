"""Main CLI application module."""

import typer
from dotenv.main import load_dotenv

from src.sso_bridge.runtime.context import load_config, set_config

from .server_commands import server_app
from .token_commands import token_app

app = typer.Typer(
    help="SSO Bridge CLI - token tooling and local server management",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(token_app, name="token")
app.add_typer(server_app, name="server")


@app.callback()
def _load_environment() -> None:
    """Load .env before any command reads configuration."""
    load_dotenv()
    set_config(load_config())


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
