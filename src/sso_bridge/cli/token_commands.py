"""Commands for minting and inspecting SSO tokens during development."""

import json

import typer
from rich.console import Console
from rich.table import Table

from src.sso_bridge.core.security import is_placeholder_secret
from src.sso_bridge.core.services.sso.claims import ClaimValidator, ClockSkewPolicy
from src.sso_bridge.core.services.sso.errors import ClaimError
from src.sso_bridge.core.services.sso.token_gen import (
    TokenGenerationError,
    TokenGeneratorService,
)
from src.sso_bridge.core.services.sso.token_verifier import build_token_verifier
from src.sso_bridge.runtime.context import get_config

console = Console()

token_app = typer.Typer(help="Mint and verify SSO tokens")


def _signing_secret(secret: str | None) -> str:
    config = get_config()
    resolved = secret or config.sso.signing_secret
    if is_placeholder_secret(resolved, config.app.environment):
        console.print(
            "[red]❌ No usable signing secret. Set SSO_SIGNING_SECRET or pass --secret.[/red]"
        )
        raise typer.Exit(code=1)
    return resolved


@token_app.command("mint")
def mint_token(
    email: str = typer.Argument(..., help="Email claim of the token"),
    subject: str | None = typer.Option(None, "--sub", "-s", help="Subject claim"),
    name: str | None = typer.Option(None, "--name", "-n", help="Display name claim"),
    expires_in: int = typer.Option(
        600, "--expires-in", "-e", help="Seconds until expiry (negative for expired)"
    ),
    issuer: str | None = typer.Option(
        None, "--issuer", "-i", help="Issuer claim (defaults to sso.expected_issuer)"
    ),
    token_format: str | None = typer.Option(
        None, "--format", "-f", help="'jwt' or 'signed_payload' (defaults to config)"
    ),
    secret: str | None = typer.Option(None, "--secret", help="Override signing secret"),
) -> None:
    """Mint a token the way the partner application would."""
    config = get_config()
    generator = TokenGeneratorService(
        _signing_secret(secret), issuer or config.sso.expected_issuer
    )
    payload = generator.build_claims(
        email=email,
        subject=subject,
        name=name,
        expires_in_seconds=expires_in,
    )
    try:
        token = generator.encode(payload, token_format or config.sso.token_format)
    except TokenGenerationError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1) from e

    typer.echo(token)


@token_app.command("verify")
def verify_token(
    token: str = typer.Argument(..., help="Token to verify"),
    secret: str | None = typer.Option(None, "--secret", help="Override signing secret"),
) -> None:
    """Verify a token and print its validated claims."""
    config = get_config()
    sso_config = config.sso.model_copy(
        update={"signing_secret": _signing_secret(secret)}
    )

    result = build_token_verifier(sso_config).verify(token)
    if not result.ok:
        console.print(f"[red]❌ invalid_token: {result.error.reason}[/red]")
        raise typer.Exit(code=1)

    try:
        policy = ClockSkewPolicy.from_config(sso_config, config.app.environment)
    except ValueError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1) from e

    validator = ClaimValidator(
        expected_issuer=sso_config.expected_issuer,
        token_format=sso_config.token_format,
        policy=policy,
    )
    claims = validator.validate(result.claims)
    if isinstance(claims, ClaimError):
        console.print(
            f"[red]❌ {claims.kind.value}: claim '{claims.field}' {claims.reason}[/red]"
        )
        raise typer.Exit(code=1)

    table = Table(title="Trusted claims")
    table.add_column("Claim", style="cyan")
    table.add_column("Value", style="green")
    for key, value in claims.model_dump(exclude_none=True).items():
        rendered = json.dumps(value) if isinstance(value, dict) else str(value)
        table.add_row(key, rendered)
    console.print(table)
    console.print("[green]✅ Token is valid[/green]")
