"""CLI entry point for Lumina Guard."""

from __future__ import annotations

import asyncio
import functools
import shutil
import sys
from pathlib import Path

import click

from lumina.core.enums import LoginStatus, SecurityLevel
from lumina.core.errors import LuminaError

BANNER = """\
╔══════════════════════════════════════╗
║  LUMINA GUARD — Secure Search Portal ║
║  System Initialization               ║
╚══════════════════════════════════════╝"""

VERSION = "0.1.0"


def _find_template() -> Path:
    """Locate config.cp.yaml, supporting both dev and PyInstaller."""
    if getattr(sys, "_MEIPASS", None):
        return Path(sys._MEIPASS) / "lumina" / "config.cp.yaml"
    return Path(__file__).parent / "config.cp.yaml"


def _portal(ctx: click.Context):
    """Build (once per invocation) the portal from the configured database."""
    if "portal" not in ctx.obj:
        from lumina.config import load_config
        from lumina.logging_config import setup_logging
        from lumina.portal import Portal

        config = load_config(ctx.obj.get("config_path"))
        setup_logging(config.log.dir)
        ctx.obj["portal"] = Portal.create(config)
    return ctx.obj["portal"]


def _handle_errors(func):
    """Turn portal errors into a clean CLI failure."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except LuminaError as e:
            raise click.ClickException(str(e)) from e
        except ValueError as e:
            raise click.BadParameter(str(e)) from e
    return wrapper


@click.group(invoke_without_command=True)
@click.option(
    "--config", "config_path", type=click.Path(dir_okay=False),
    default=None, help="Path to a config.yaml file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """Lumina Guard — secure search portal"""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is None:
        ctx.invoke(status)


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite existing config file.")
def init(force: bool) -> None:
    """Initialize config to ~/.lumina/."""
    from lumina.config import _default_data_dir

    config_dir = _default_data_dir()
    config_dest = config_dir / "config.yaml"
    template = _find_template()

    click.echo(BANNER)
    click.echo()

    config_dir.mkdir(parents=True, exist_ok=True)
    click.echo(f"  [ok] Directory ready: {config_dir}")

    if config_dest.exists() and not force:
        click.echo(f"  [--] Config already exists: {config_dest}")
        click.echo("       Use --force to overwrite.")
    else:
        shutil.copy2(template, config_dest)
        click.echo(f"  [ok] Config created: {config_dest}")

    p = config_dir / "logs"
    p.mkdir(parents=True, exist_ok=True)
    click.echo(f"  [ok] Subdirectory ready: {p}")

    click.echo()
    click.echo("  -> Run `lumina login` to sign in.")


@cli.command()
def version() -> None:
    """Show version information."""
    click.echo(f"lumina-guard v{VERSION}")


# ── Authentication ──


@cli.command()
@click.argument("identifier")
@click.option("--secret", prompt=True, hide_input=True, help="Account secret.")
@click.pass_context
@_handle_errors
def login(ctx: click.Context, identifier: str, secret: str) -> None:
    """Sign in as IDENTIFIER."""
    portal = _portal(ctx)
    outcome = asyncio.run(portal.login(identifier, secret))
    if outcome.status == LoginStatus.SUCCESS:
        s = outcome.session
        click.echo(f"Welcome, {s.identifier} ({s.title or s.role.value}).")
        return
    if outcome.status == LoginStatus.LOCKED:
        minutes, seconds = divmod(outcome.seconds_remaining or 0, 60)
        raise click.ClickException(
            f"SYSTEM LOCKED. Too many failed login attempts. Try again in {minutes}:{seconds:02d}."
        )
    remaining = outcome.attempts_remaining or 0
    if remaining == 0:
        raise click.ClickException(
            "Authentication failed. Too many failed login attempts; the system is now locked for 5 minutes."
        )
    raise click.ClickException(
        f"Authentication failed. You have {remaining} attempt{'s' if remaining != 1 else ''} remaining."
    )


@cli.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Sign out."""
    _portal(ctx).logout()
    click.echo("Signed out.")


@cli.command()
@click.pass_context
def whoami(ctx: click.Context) -> None:
    """Show the signed-in principal."""
    session = _portal(ctx).current_session()
    if session is None:
        click.echo("Not signed in.")
        return
    click.echo(f"{session.identifier}  role={session.role.value}  "
               f"department={session.department or '-'}  title={session.title or '-'}")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show lockout and session status."""
    portal = _portal(ctx)
    st = portal.lockout_status()
    click.echo(f"Lockout state:       {st.state.value}")
    click.echo(f"Failed attempts:     {st.failed_count}")
    click.echo(f"Attempts remaining:  {st.attempts_remaining}")
    if st.lockout_end_time is not None:
        minutes, seconds = divmod(st.seconds_remaining, 60)
        click.echo(f"Locked until:        {st.lockout_end_time.isoformat()} ({minutes}:{seconds:02d} left)")
    session = portal.current_session()
    click.echo(f"Signed in as:        {session.identifier if session else '-'}")


# ── Search ──


@cli.command()
@click.argument("query", nargs=-1, required=True)
@click.pass_context
def search(ctx: click.Context, query: tuple[str, ...]) -> None:
    """Search the portal for QUERY."""
    text = " ".join(query)
    results = asyncio.run(_portal(ctx).search(text))
    if not results:
        click.echo("No results found.")
        return
    for r in results:
        click.echo(f"[{r.relevance_score:3d}] {r.title}")
        click.echo(f"      {r.url}  ({r.domain}, {r.content_type.value})")
        click.echo(f"      {r.description}")


@cli.command()
@click.option("--clear", is_flag=True, help="Erase the search history.")
@click.pass_context
def history(ctx: click.Context, clear: bool) -> None:
    """Show or clear the search history."""
    portal = _portal(ctx)
    if clear:
        portal.clear_search_history()
        click.echo("Search history cleared.")
        return
    entries = portal.get_search_history()
    if not entries:
        click.echo("No search history.")
        return
    for i, q in enumerate(entries, start=1):
        click.echo(f"{i:2d}. {q}")


# ── Firewall policy ──


@cli.group()
def firewall() -> None:
    """Inspect and edit the firewall policy."""


def _echo_policy(policy) -> None:
    click.echo(f"Firewall:              {'enabled' if policy.enabled else 'disabled'}")
    click.echo(f"Security level:        {policy.security_level.value}")
    click.echo(f"Block unauthorized IPs: {policy.block_unauthorized_ips}")
    click.echo(f"Allowed domains:       {', '.join(policy.allowed_domains) or '-'}")
    click.echo(f"Blocked keywords:      {', '.join(policy.block_words) or '-'}")
    click.echo(f"Malware protection:    {policy.malware_protection}")
    click.echo(f"Intrusion detection:   {policy.intrusion_detection}")
    click.echo(f"Auto-update defs:      {policy.auto_update_definitions}")
    click.echo(f"Last updated:          {policy.last_updated.isoformat()}")


@firewall.command("show")
@click.pass_context
def firewall_show(ctx: click.Context) -> None:
    """Print the current policy."""
    _echo_policy(_portal(ctx).get_firewall_policy())


@firewall.command("set")
@click.option("--enabled/--disabled", default=None, help="Turn the firewall on or off.")
@click.option("--level", type=click.Choice([lvl.value for lvl in SecurityLevel]), default=None)
@click.option("--block-ips/--allow-ips", default=None, help="Block unauthorized IPs.")
@click.option("--malware/--no-malware", default=None, help="Malware protection.")
@click.option("--intrusion/--no-intrusion", default=None, help="Intrusion detection.")
@click.option("--auto-update/--no-auto-update", default=None, help="Auto-update definitions.")
@click.pass_context
@_handle_errors
def firewall_set(ctx: click.Context, enabled, level, block_ips, malware, intrusion, auto_update) -> None:
    """Change one or more policy settings."""
    changes = {
        "enabled": enabled,
        "security_level": level,
        "block_unauthorized_ips": block_ips,
        "malware_protection": malware,
        "intrusion_detection": intrusion,
        "auto_update_definitions": auto_update,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        raise click.UsageError("Nothing to change.")
    _echo_policy(_portal(ctx).update_firewall_policy(**changes))


@firewall.command("add-domain")
@click.argument("pattern")
@click.pass_context
@_handle_errors
def firewall_add_domain(ctx: click.Context, pattern: str) -> None:
    """Allow PATTERN (e.g. *.example.com)."""
    policy = _portal(ctx).add_allowed_domain(pattern)
    click.echo(f"Allowed domains: {', '.join(policy.allowed_domains)}")


@firewall.command("remove-domain")
@click.argument("pattern")
@click.pass_context
@_handle_errors
def firewall_remove_domain(ctx: click.Context, pattern: str) -> None:
    """Remove PATTERN from the allowed domains."""
    policy = _portal(ctx).remove_allowed_domain(pattern)
    click.echo(f"Allowed domains: {', '.join(policy.allowed_domains) or '-'}")


@firewall.command("add-word")
@click.argument("word")
@click.pass_context
@_handle_errors
def firewall_add_word(ctx: click.Context, word: str) -> None:
    """Block queries containing WORD."""
    policy = _portal(ctx).add_block_word(word)
    click.echo(f"Blocked keywords: {', '.join(policy.block_words)}")


@firewall.command("remove-word")
@click.argument("word")
@click.pass_context
@_handle_errors
def firewall_remove_word(ctx: click.Context, word: str) -> None:
    """Stop blocking WORD."""
    policy = _portal(ctx).remove_block_word(word)
    click.echo(f"Blocked keywords: {', '.join(policy.block_words) or '-'}")


@firewall.command("update-definitions")
@click.pass_context
@_handle_errors
def firewall_update_definitions(ctx: click.Context) -> None:
    """Refresh malware protection definitions."""
    policy = _portal(ctx).update_definitions()
    click.echo(f"Definitions updated at {policy.last_updated.isoformat()}")


# ── System ──


@cli.command()
@click.confirmation_option(prompt="Restore all settings to defaults?")
@click.pass_context
@_handle_errors
def reset(ctx: click.Context) -> None:
    """Restore defaults, clear history and lift any lockout."""
    asyncio.run(_portal(ctx).reset_system())
    click.echo("System reset successful. All settings have been restored to defaults.")
