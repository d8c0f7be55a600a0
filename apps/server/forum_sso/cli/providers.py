"""CLI commands for bootstrapping and configuring identity providers."""

import json
from typing import Optional

import typer
from pydantic import ValidationError

from forum_sso.db.session import SessionLocal
from forum_sso.schemas.provider import ProviderConfigUpdate, ProviderRead
from forum_sso.services.providers import ensure_provider, get_provider, save_provider_config

app = typer.Typer(help="Manage OAuth2 identity providers.")


@app.command()
def ensure(key: str):
    """Create the provider row with default profile keys if it is missing."""
    db = SessionLocal()
    try:
        provider = ensure_provider(db, key)
        typer.echo(f"Provider '{provider.key}' is ready.")
    finally:
        db.close()


@app.command()
def configure(
    key: str,
    client_id: str = typer.Option(..., help="Client ID issued by the provider."),
    client_secret: str = typer.Option(..., help="Client secret issued by the provider."),
    authorize_url: str = typer.Option(...),
    token_url: str = typer.Option(...),
    profile_url: Optional[str] = typer.Option(None),
    name: Optional[str] = typer.Option(None),
    scope: Optional[str] = typer.Option(None),
    accepted_scope: str = typer.Option("profile"),
    register_url: Optional[str] = typer.Option(None),
    sign_out_url: Optional[str] = typer.Option(None),
    default: bool = typer.Option(False, "--default/--no-default", help="Make this the default sign-in method."),
    profile_key_email: Optional[str] = typer.Option(None),
    profile_key_photo: Optional[str] = typer.Option(None),
    profile_key_name: Optional[str] = typer.Option(None),
    profile_key_full_name: Optional[str] = typer.Option(None),
    profile_key_unique_id: Optional[str] = typer.Option(None),
):
    """Validate and save the connection settings of a provider."""
    try:
        provider_in = ProviderConfigUpdate(
            client_id=client_id,
            client_secret=client_secret,
            authorize_url=authorize_url,
            token_url=token_url,
            profile_url=profile_url,
            name=name,
            scope=scope,
            accepted_scope=accepted_scope,
            register_url=register_url,
            sign_out_url=sign_out_url,
            is_default=default,
            profile_key_email=profile_key_email,
            profile_key_photo=profile_key_photo,
            profile_key_name=profile_key_name,
            profile_key_full_name=profile_key_full_name,
            profile_key_unique_id=profile_key_unique_id,
        )
    except ValidationError as exc:
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"])
            typer.echo(f"Error: {field}: {error['msg']}")
        raise typer.Exit(code=1)

    db = SessionLocal()
    try:
        save_provider_config(db, key, provider_in)
        typer.echo("Saved")
    finally:
        db.close()


@app.command()
def show(key: str):
    """Print a provider's settings; the client secret is never shown."""
    db = SessionLocal()
    try:
        provider = get_provider(db, key)
        if provider is None:
            typer.echo(f"Error: Provider '{key}' not found.")
            raise typer.Exit(code=1)
        typer.echo(json.dumps(ProviderRead.model_validate(provider).model_dump(mode="json"), indent=2))
    finally:
        db.close()


if __name__ == "__main__":
    app()
