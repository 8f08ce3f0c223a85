"""crowbar-registry CLI — inspect and update roles and repositories."""

import sys
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.table import Table

from crowbar_registry import __version__
from crowbar_registry.config import Settings
from crowbar_registry.errors import BackendError, LockError, RevisionConflictError

console = Console()


@click.group()
@click.version_option(version=__version__)
@click.option("--backend-dir", "-b", default=None, help="Backend directory (default: $CROWBAR_BACKEND_DIR)")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def main(ctx: click.Context, backend_dir: str | None, verbose: bool):
    """Crowbar registry — shared roles and software repositories.

    Reads its settings from CROWBAR_* environment variables.
    """
    from crowbar_registry.logging_config import setup_logging

    settings = Settings.from_env()
    if backend_dir:
        settings.backend_dir = Path(backend_dir)
    setup_logging("DEBUG" if verbose else settings.log_level)
    ctx.obj = settings


def _backend(settings: Settings):
    from crowbar_registry.backend import JsonConfigBackend

    return JsonConfigBackend(settings.backend_dir)


def _role_registry(settings: Settings):
    from crowbar_registry.locks import FileLockService
    from crowbar_registry.roles import BarclampCatalog, RoleRegistry

    return RoleRegistry(
        backend=_backend(settings),
        locks=FileLockService(settings.lock_dir, timeout=settings.lock_timeout),
        catalog=BarclampCatalog.from_file(settings.barclamp_catalog),
        conflict_policy=settings.conflict_policy,
    )


def _repo_registry(settings: Settings):
    from crowbar_registry.repos import RepositoryRegistry

    return RepositoryRegistry.from_settings(settings, backend=_backend(settings))


# ── Roles ────────────────────────────────────────────────────────────


@main.group()
def roles():
    """Inspect and update role records."""


@roles.command(name="list")
@click.option("--query", "-q", default=None, help="Backend query, e.g. 'name:nova-*'")
@click.pass_obj
def list_roles(settings: Settings, query: str | None):
    """List roles known to the backend."""
    reg = _role_registry(settings)
    try:
        found = reg.find_by_search(query)
    except BackendError as e:
        console.print(f"[red]Backend error:[/] {e}")
        sys.exit(1)

    if not found:
        console.print("[yellow]No roles found.[/]")
        return

    table = Table(title=f"Roles ({len(found)})")
    table.add_column("Name", style="cyan")
    table.add_column("Barclamp")
    table.add_column("Category")
    table.add_column("Revision", justify="right")
    table.add_column("Description")

    for role in found:
        revision = role.revision
        table.add_row(
            role.name,
            reg.service(role).display_name,
            reg.category(role),
            "-" if revision is None else str(revision),
            role.description[:50],
        )

    console.print(table)


@roles.command()
@click.argument("name")
@click.pass_obj
def show(settings: Settings, name: str):
    """Print a role record as YAML."""
    role = _role_registry(settings).find_by_name(name)
    if role is None:
        console.print(f"[yellow]Role not found:[/] {name}")
        sys.exit(1)
    console.print(
        yaml.safe_dump(role.to_record(), default_flow_style=False, sort_keys=False),
        markup=False,
        highlight=False,
    )


@roles.command()
@click.option("--barclamp", default=None, help="Only this barclamp")
@click.option("--instance", default=None, help="Only this instance (needs --barclamp)")
@click.pass_obj
def active(settings: Settings, barclamp: str | None, instance: str | None):
    """List deployed barclamp instances."""
    pairs = _role_registry(settings).list_active(barclamp, instance)
    if not pairs:
        console.print("[yellow]No active deployments.[/]")
        return
    for bc, inst in pairs:
        console.print(f"  [cyan]{bc}[/] {inst}")


@roles.command()
@click.argument("role_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def save(settings: Settings, role_file: str):
    """Save a role from a JSON or YAML file, bumping its revision."""
    from crowbar_registry.roles import Role

    with open(role_file) as f:
        role = Role.from_record(yaml.safe_load(f))
    if role is None:
        console.print(f"[red]Not a role record:[/] {role_file}")
        sys.exit(1)

    try:
        race = _role_registry(settings).save(role)
    except RevisionConflictError as e:
        console.print(f"[red]Conflict:[/] {e}. Re-read the role and retry.")
        sys.exit(1)
    except (LockError, BackendError) as e:
        console.print(f"[red]Save failed:[/] {e}")
        sys.exit(1)

    console.print(f"  Saved: {role.name} (revision {role.revision})")
    if race:
        console.print(
            f"  [yellow]![/] revision race: backend already had revision {race.observed_revision}"
        )


@roles.command()
@click.argument("name")
@click.pass_obj
def destroy(settings: Settings, name: str):
    """Delete a role record."""
    reg = _role_registry(settings)
    role = reg.find_by_name(name)
    if role is None:
        console.print(f"[yellow]Role not found:[/] {name}")
        sys.exit(1)
    reg.destroy(role)
    console.print(f"  Destroyed: {name}")


# ── Repositories ─────────────────────────────────────────────────────


@main.group()
def repos():
    """Inspect software repositories."""


@repos.command(name="list")
@click.option("--platform", "-p", default=None, help="Only this platform")
@click.option("--name", "-n", default=None, help="Only repositories with this name")
@click.pass_obj
def list_repos(settings: Settings, platform: str | None, name: str | None):
    """List repositories of the merged catalog."""
    found = _repo_registry(settings).enumerate(platform, name)
    if not found:
        console.print("[yellow]No repositories found.[/]")
        return

    table = Table(title=f"Repositories ({len(found)})")
    table.add_column("Platform", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Required")
    table.add_column("Features")
    table.add_column("URL")

    for repo in found:
        table.add_row(repo.platform, repo.name, repo.required, ", ".join(repo.features), repo.url())

    console.print(table)


@repos.command()
@click.option("--platform", "-p", default=None, help="Only this platform")
@click.pass_obj
def check(settings: Settings, platform: str | None):
    """Run the trust checks on every repository."""
    found = _repo_registry(settings).enumerate(platform)

    table = Table(title="Repository checks")
    table.add_column("Platform", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Required")
    table.add_column("Exists", justify="center")
    table.add_column("Tag", justify="center")
    table.add_column("Key", justify="center")
    table.add_column("Active", justify="center")

    def mark(ok: bool) -> str:
        return "[green]Y[/]" if ok else "[red]N[/]"

    missing = 0
    for repo in found:
        if repo.required == "mandatory" and not repo.available():
            missing += 1
        table.add_row(
            repo.platform,
            repo.name,
            repo.required,
            mark(repo.exist()),
            mark(repo.valid_repo()),
            mark(repo.valid_key_file()),
            mark(repo.active()),
        )

    console.print(table)
    if missing:
        console.print(f"\n[red]{missing} mandatory repositories unavailable[/]")
        sys.exit(1)


@repos.command()
@click.argument("feature")
@click.option("--platform", "-p", default=None, help="Only this platform")
@click.pass_obj
def feature(settings: Settings, feature: str, platform: str | None):
    """Tell whether an active repository provides FEATURE."""
    if _repo_registry(settings).feature_enabled(feature, platform):
        console.print(f"  [green]enabled[/] {feature}")
    else:
        console.print(f"  [red]disabled[/] {feature}")
        sys.exit(1)


if __name__ == "__main__":
    main()
