"""
Command-line interface for spot-token.

This module implements the CLI using Click, with rich-click for colored
help output.

Commands:
    spot-token token                        Acquire and print an access token
    spot-token secrets                      List known secret versions
    spot-token recommend <track-id>         Recommended playlist for a track
    spot-token lyrics <track-id>            Time-synced lyrics for a track

Usage:
    # Token signed with the configured secret version, validated
    spot-token token

    # Latest known secret version, no validation, JSON output
    spot-token token --latest --no-verify --json

    # Refresh secrets from the remote document and show derived secrets
    spot-token secrets --refresh --show-secret

    # Recommendation playlist for a seed track
    spot-token recommend 4cOdK2wGLETKBW3PvgPWqT

Configuration:
    An optional config.yaml in the current directory (or --config PATH)
    overrides endpoints, defaults and logging. See spot_token.core.config.

Exit Codes:
    0   success
    1   configuration error
    3   network or web API error
    4   any other spot-token error
    130 interrupted
"""

import json
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.MAX_WIDTH = 100

from spot_token import __version__
from spot_token.core import (
    Config,
    ConfigError,
    NetworkError,
    SpotTokenError,
    WebPlayerApiError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from spot_token.webplayer import (
    AcquireOptions,
    TokenAcquirer,
    TokenCache,
    derive_secret,
    extract_recommended_playlist,
    get_lyrics,
    get_recommend_song,
)

logger = get_logger(__name__)


@click.group()
@click.option(
    "--config", "config_path",
    type=click.Path(path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Path to configuration file (default: ./config.yaml if present)"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show debug output"
)
@click.version_option(__version__, prog_name="spot-token")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """
    spot-token: Anonymous access tokens for the Spotify web player.

    \b
    BASIC USAGE:
        spot-token token                       # Acquire a token
        spot-token token --latest --json       # Latest secret version, JSON
        spot-token secrets --refresh           # Show secret versions
        spot-token recommend <track-id>        # Recommended playlist
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _load_configuration(ctx: click.Context) -> Config:
    """Load configuration and set up logging from it."""
    config = load_config(ctx.obj.get("config_path"))
    level = "DEBUG" if ctx.obj.get("verbose") else config.logging.level
    setup_logging(config.logging.directory, level)
    return config


def _run(ctx: click.Context, action: Callable[[Config], None]) -> None:
    """
    Run a command body with the shared error handling.

    Maps exceptions to exit codes and always shuts logging down.
    """
    try:
        config = _load_configuration(ctx)
        action(config)
    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)
    except (NetworkError, WebPlayerApiError) as e:
        logger.error(e.message)
        sys.exit(3)
    except SpotTokenError as e:
        logger.error(e.message)
        if e.details:
            logger.debug(f"Details: {e.details}")
        sys.exit(4)
    except KeyboardInterrupt:
        click.echo("\nInterrupted", err=True)
        sys.exit(130)
    except Exception:
        logger.exception("Unexpected error")
        sys.exit(1)
    finally:
        shutdown_logging()


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


# =============================================================================
# token
# =============================================================================

@cli.command()
@click.option(
    "--totp-version",
    type=int,
    default=None,
    metavar="<n>",
    help="Secret version to sign with (default from config)"
)
@click.option(
    "--latest",
    is_flag=True,
    help="Use the highest known secret version"
)
@click.option(
    "--no-download",
    is_flag=True,
    help="Do not refresh secrets from the remote document"
)
@click.option(
    "--secrets-url",
    type=str,
    default=None,
    metavar="<url>",
    help="Remote secret document URL"
)
@click.option(
    "--no-verify",
    is_flag=True,
    help="Skip validating the token against the Web API"
)
@click.option(
    "--json", "as_json",
    is_flag=True,
    help="Print the result as JSON"
)
@click.pass_context
def token(
    ctx: click.Context,
    totp_version: Optional[int],
    latest: bool,
    no_download: bool,
    secrets_url: Optional[str],
    no_verify: bool,
    as_json: bool
) -> None:
    """Acquire a web-player access token."""
    if latest and totp_version is not None:
        raise click.UsageError("Cannot use both --totp-version and --latest")

    def action(config: Config) -> None:
        acquirer = TokenAcquirer.from_config(config)
        defaults = acquirer.default_options

        if latest:
            version = None
        elif totp_version is not None:
            version = totp_version
        else:
            version = defaults.totp_version

        options = AcquireOptions(
            totp_version=version,
            download_secrets=defaults.download_secrets and not no_download,
            secret_dict_url=secrets_url or defaults.secret_dict_url,
            verify_token=defaults.verify_token and not no_verify,
        )
        try:
            result = acquirer.get_access_token(options)
        finally:
            acquirer.close()

        if as_json:
            _echo_json(result.to_dict())
            return

        click.echo(result.access_token)
        logger.info(f"Client ID: {result.client_id or 'unknown'}")
        if result.expires_at is not None:
            logger.info(f"Expires at: {result.expires_at}")
        if result.is_valid is not None:
            logger.info(f"Valid: {'yes' if result.is_valid else 'no'}")

    _run(ctx, action)


# =============================================================================
# secrets
# =============================================================================

@cli.command()
@click.option(
    "--refresh/--no-refresh",
    default=False,
    help="Refresh from the remote document first"
)
@click.option(
    "--show-secret",
    is_flag=True,
    help="Print the derived base32 secret of each version"
)
@click.pass_context
def secrets(ctx: click.Context, refresh: bool, show_secret: bool) -> None:
    """List known secret versions."""

    def action(config: Config) -> None:
        acquirer = TokenAcquirer.from_config(config)
        try:
            if refresh:
                outcome = acquirer.refresh_secrets(config.webplayer.secrets_url)
                if outcome.ok:
                    logger.info("Secrets updated" if outcome.updated else "Secrets unchanged")
        finally:
            acquirer.close()

        store = acquirer.store
        latest = store.latest_version()
        for version in store.versions():
            entry = store.get(version)
            line = f"{version:>4}  ({len(entry.cipher_bytes)} bytes)"
            if show_secret:
                line += f"  {derive_secret(store, version).base32_secret}"
            if version == latest:
                line += "  latest"
            click.echo(line)

    _run(ctx, action)


# =============================================================================
# recommend / lyrics
# =============================================================================

@cli.command()
@click.argument("track_id", metavar="<track-id>")
@click.option(
    "--raw",
    is_flag=True,
    help="Print the raw JSON response"
)
@click.pass_context
def recommend(ctx: click.Context, track_id: str, raw: bool) -> None:
    """Show the recommended playlist for a seed track."""

    def action(config: Config) -> None:
        acquirer = TokenAcquirer.from_config(config)
        try:
            access_token = TokenCache(acquirer).get_token()
            payload = get_recommend_song(
                access_token, track_id,
                session=acquirer.session, timeout=config.acquisition.timeout
            )
        finally:
            acquirer.close()

        if raw:
            _echo_json(payload)
            return

        playlist = extract_recommended_playlist(payload)
        click.echo(playlist.playlist_uri)
        click.echo(f"https://open.spotify.com/playlist/{playlist.playlist_id}")

    _run(ctx, action)


@cli.command()
@click.argument("track_id", metavar="<track-id>")
@click.pass_context
def lyrics(ctx: click.Context, track_id: str) -> None:
    """Print the time-synced lyrics of a track."""

    def action(config: Config) -> None:
        acquirer = TokenAcquirer.from_config(config)
        try:
            access_token = TokenCache(acquirer).get_token()
            payload = get_lyrics(
                access_token, track_id,
                session=acquirer.session, timeout=config.acquisition.timeout
            )
        finally:
            acquirer.close()

        if payload is None:
            click.echo("No lyrics available for this track.")
            return

        lyrics_data = payload.get("lyrics") if isinstance(payload, dict) else None
        lines = (lyrics_data or {}).get("lines") or []
        for line in lines:
            words = line.get("words", "")
            start_ms = int(line.get("startTimeMs") or 0)
            minutes, seconds = divmod(start_ms // 1000, 60)
            click.echo(f"[{minutes:02d}:{seconds:02d}] {words}")

    _run(ctx, action)


def main() -> None:
    """Entry point for the spot-token command."""
    cli(obj={})


if __name__ == "__main__":
    main()
