#!/usr/bin/env python3
"""
Angular Starter OIDC CLI - create Angular projects wired for OpenID Connect

Usage:
    angular-starter-oidc create <project-name>
    angular-starter-oidc create "My App" --template https://github.com/me/template.git --path ~/work

Or run without installing:
    uvx --from angular-starter-oidc-cli angular-starter-oidc create <project-name>
"""

import logging
import shutil
import sys
from pathlib import Path
from typing import Callable, Optional

import typer
from rich.align import Align
from rich.live import Live
from rich.panel import Panel
from typer.core import TyperGroup

from .app_config import APP_CONFIG_PATH
from .config import (
    PACKAGE_MANAGERS,
    TEMPLATE_URL_ENV,
    VCS_HOSTS,
    build_config,
    defaults_path,
    load_user_defaults,
    resolve_defaults,
)
from .errors import ScaffoldError, ValidationError
from .scaffold import StepResult, check_tool, generate_project, init_git_repo, install_dependencies
from .ui import StepTracker, console, select_with_arrows, show_banner
from .validators import (
    has_forbidden_git_option,
    is_valid_display_name,
    is_valid_git_url,
    to_package_name,
    validate_client_id,
    validate_oidc_authority,
    validate_remote_url,
    validate_required,
    validate_url,
)

logger = logging.getLogger(__name__)

TOOLS = {
    "git": "Git version control",
    "node": "Node.js runtime",
    "npm": "npm package manager",
    "pnpm": "pnpm package manager",
    "yarn": "Yarn package manager",
}


class BannerGroup(TyperGroup):
    """Custom group that shows banner before help."""

    def format_help(self, ctx, formatter):
        show_banner()
        super().format_help(ctx, formatter)


app = typer.Typer(
    name="angular-starter-oidc",
    help="CLI to create Angular starter applications from templates with OIDC support",
    add_completion=False,
    invoke_without_command=True,
    cls=BannerGroup,
)


@app.callback()
def callback(ctx: typer.Context):
    """Show banner when no subcommand is provided."""
    if ctx.invoked_subcommand is None and "--help" not in sys.argv and "-h" not in sys.argv:
        show_banner()
        console.print(Align.center("[dim]Run 'angular-starter-oidc --help' for usage information[/dim]"))
        console.print()


def _configure_logging(debug: bool) -> None:
    # Degraded steps are summarized in a panel, so only debug runs see log records.
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _error_panel(message: str, title: str = "Error", problems: list[str] | None = None) -> None:
    body = message
    if problems:
        body += "\n\n" + "\n".join(f"• {problem}" for problem in problems)
    console.print()
    console.print(Panel(body, title=f"[red]{title}[/red]", border_style="red", padding=(1, 2)))


def _load_defaults() -> dict:
    try:
        user_defaults = load_user_defaults()
    except (OSError, ValueError) as exc:
        console.print(Panel(
            f"Warning: ignoring defaults file {defaults_path()} ({exc})",
            border_style="yellow",
        ))
        user_defaults = {}
    return resolve_defaults(user_defaults)


def prompt_value(message: str, validator: Callable[[str], Optional[str]], default: Optional[str] = None) -> str:
    """Ask until the validator accepts the answer."""
    while True:
        value = typer.prompt(message, default=default)
        problem = validator(value)
        if problem is None:
            return value.strip()
        console.print(f"[red]{problem}[/red]")


def choose(options: dict, prompt_text: str, default: str) -> str:
    """Arrow-key selection on a TTY, otherwise the default."""
    if sys.stdin.isatty():
        return select_with_arrows(options, prompt_text, default)
    return default


@app.command()
def create(
    project_name: str = typer.Argument(..., help="Display name of the project; the directory uses its package name"),
    template: Optional[str] = typer.Option(None, "--template", "-t", help=f"Template repository URL (or set {TEMPLATE_URL_ENV})"),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Path where project should be created"),
    oidc_authority: Optional[str] = typer.Option(None, "--oidc-authority", help="OIDC authority URL"),
    client_id: Optional[str] = typer.Option(None, "--client-id", help="OIDC client ID"),
    redirect_url: Optional[str] = typer.Option(None, "--redirect-url", help="OIDC redirect URL"),
    resource_server_url: Optional[str] = typer.Option(None, "--resource-server-url", help="Resource server (backend API) URL"),
    vcs: Optional[str] = typer.Option(None, "--vcs", help="VCS host: github or gitlab"),
    package_manager: Optional[str] = typer.Option(None, "--package-manager", help="Package manager: npm, pnpm or yarn"),
    node_version: Optional[str] = typer.Option(None, "--node-version", help="Node.js version used in CI"),
    proxy: Optional[bool] = typer.Option(None, "--proxy/--no-proxy", help="Route API calls through the dev-server proxy"),
    no_install: bool = typer.Option(False, "--no-install", help="Skip dependency installation"),
    no_git: bool = typer.Option(False, "--no-git", help="Skip git repository initialization"),
    remote: Optional[str] = typer.Option(None, "--remote", help="Add this URL as the origin remote after git init"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing project directory without asking"),
    debug: bool = typer.Option(False, "--debug", help="Show verbose diagnostic output"),
):
    """
    Create a new Angular starter project from the template repository.

    This command will:
    1. Clone the template repository
    2. Ask for OIDC, resource server, VCS host and package manager settings
    3. Replace configuration tokens in the template files
    4. Keep the CI configuration of the chosen VCS host only
    5. Generate public/assets/app-config.json
    6. Install dependencies and initialize a git repository

    Examples:
        angular-starter-oidc create "My App"
        angular-starter-oidc create my-app --vcs gitlab --package-manager pnpm
        angular-starter-oidc create my-app --template git@github.com:me/template.git --no-git
    """
    show_banner()
    _configure_logging(debug)

    if not project_name or not project_name.strip():
        _error_panel("Project name is required!")
        raise typer.Exit(1)
    if not is_valid_display_name(project_name):
        _error_panel("Project name must contain at least one alphanumeric character")
        raise typer.Exit(1)

    display_name = project_name.strip()
    package_name = to_package_name(display_name)
    console.print(f"[cyan]Project name:[/cyan] {display_name}")
    console.print(f"[dim]Package name: {package_name}[/dim]\n")

    defaults = _load_defaults()
    template_url = (template or defaults["template_url"]).strip()
    if not is_valid_git_url(template_url):
        _error_panel(f"Invalid template URL format: {template_url}")
        raise typer.Exit(1)
    if has_forbidden_git_option(template_url):
        _error_panel("Invalid template URL: contains forbidden git options")
        raise typer.Exit(1)
    if remote is not None and no_git:
        _error_panel("--remote cannot be combined with --no-git")
        raise typer.Exit(1)
    if remote is not None:
        problem = validate_remote_url(remote)
        if problem:
            _error_panel(problem)
            raise typer.Exit(1)

    project_path = (path / package_name).resolve()
    overwrite = False
    if project_path.exists():
        if not force and not typer.confirm(f'Directory "{package_name}" already exists. Overwrite?', default=False):
            console.print("[yellow]Aborted.[/yellow]")
            raise typer.Exit(0)
        overwrite = True

    console.print("[cyan]Please provide the following configuration:[/cyan]\n")
    if oidc_authority is None:
        oidc_authority = prompt_value("What is your OIDC authority URL?", validate_oidc_authority)
    if client_id is None:
        client_id = prompt_value("What is your OIDC client ID?", validate_client_id)
    if redirect_url is None:
        redirect_url = prompt_value(
            "What is your OIDC redirect URL?",
            lambda value: validate_url(value, "Redirect URL"),
            defaults["redirect_url"],
        )
    if resource_server_url is None:
        resource_server_url = prompt_value(
            "What is your resource server URL?",
            lambda value: validate_url(value, "Resource server URL"),
            defaults["resource_server_url"],
        )
    if vcs is None:
        vcs = choose(VCS_HOSTS, "Which VCS host are you using?", defaults["vcs_host"])
    if package_manager is None:
        package_manager = choose(
            {name: f"scripts via '{run}'" for name, run in PACKAGE_MANAGERS.items()},
            "Which package manager would you like to use?",
            defaults["package_manager"],
        )
    if node_version is None:
        node_version = prompt_value(
            "Which Node.js version?",
            lambda value: validate_required(value, "Node version"),
            str(defaults["node_version"]),
        )
    if proxy is None:
        proxy = typer.confirm("Route API calls through the dev-server proxy?", default=defaults["use_proxy"])

    try:
        config = build_config(
            display_name,
            oidc_authority=oidc_authority,
            oidc_client_id=client_id,
            redirect_url=redirect_url,
            resource_server_url=resource_server_url,
            vcs_host=vcs,
            package_manager=package_manager,
            node_version=node_version,
            use_proxy=proxy,
        )
    except ValidationError as e:
        _error_panel(str(e), problems=e.problems)
        raise typer.Exit(1)

    init_git = False
    if not no_git:
        init_git = remote is not None or typer.confirm("Initialize git repository?", default=True)
        if init_git and remote is None and typer.confirm("Add git remote?", default=False):
            remote = prompt_value("Enter remote repository URL:", validate_remote_url)

    setup_lines = [
        "[cyan]Angular Starter Project Setup[/cyan]",
        "",
        f"{'Project':<17} [green]{config.display_name}[/green]",
        f"{'Package':<17} [green]{config.package_name}[/green]",
        f"{'Target Path':<17} [dim]{project_path}[/dim]",
        f"{'Template':<17} [dim]{template_url}[/dim]",
        f"{'VCS Host':<17} [yellow]{config.vcs_host}[/yellow]",
        f"{'Package Manager':<17} [yellow]{config.package_manager}[/yellow]",
    ]
    console.print(Panel("\n".join(setup_lines), border_style="cyan", padding=(1, 2)))

    if overwrite:
        logger.debug("Removing existing directory %s", project_path)
        try:
            shutil.rmtree(project_path)
        except OSError as e:
            _error_panel(f"Could not remove existing directory {project_path}: {e}")
            raise typer.Exit(1)

    tracker = StepTracker("Create Angular Starter Project")

    warnings: list[str] = []

    def record(key: str, result: StepResult) -> None:
        tracker.finish(key, result.ok, result.detail)
        if not result.ok:
            warnings.append(result.warning)

    # Use transient so live tree is replaced by the final static render (avoids duplicate output)
    with Live(tracker.render(), console=console, refresh_per_second=8, transient=True) as live:
        tracker.on_change = lambda: live.update(tracker.render())
        try:
            for result in generate_project(template_url, project_path, config, tracker=tracker):
                if not result.ok:
                    warnings.append(result.warning)

            if no_install:
                tracker.skip("install", "--no-install flag")
            else:
                tracker.start("install", config.package_manager)
                record("install", install_dependencies(project_path, config))

            if init_git:
                tracker.start("git")
                record("git", init_git_repo(project_path, remote))
            else:
                tracker.skip("git", "--no-git flag" if no_git else "declined")

            tracker.complete("final", "project ready")
        except ScaffoldError as e:
            tracker.error("final", str(e))
            live.stop()
            console.print(tracker.render())
            _error_panel(f"Project creation failed: {e}", title="Failure")
            if debug:
                _env_pairs = [
                    ("Python", sys.version.split()[0]),
                    ("Platform", sys.platform),
                    ("CWD", str(Path.cwd())),
                ]
                _label_width = max(len(k) for k, _ in _env_pairs)
                env_lines = [f"{k.ljust(_label_width)} → [bright_black]{v}[/bright_black]" for k, v in _env_pairs]
                console.print(Panel("\n".join(env_lines), title="Debug Environment", border_style="magenta"))
            if project_path.exists():
                console.print(f"[dim]Partially created project left at {project_path} for inspection.[/dim]")
            raise typer.Exit(1)

    # Final static tree (ensures finished state visible after Live context ends)
    console.print(tracker.render())
    console.print(f'\n[bold green]Project "{config.package_name}" created successfully![/bold green]')

    if warnings:
        console.print()
        console.print(Panel(
            "\n".join(f"• {warning}" for warning in warnings),
            title="[yellow]Completed With Warnings[/yellow]",
            border_style="yellow",
            padding=(1, 2),
        ))

    steps_lines = [
        f"1. Go to the project folder: [cyan]cd {project_path}[/cyan]",
        f"2. Start the dev server: [cyan]{config.pkg_mgr_run} start[/cyan]",
        f"3. Make a commit (uses commitizen): [cyan]{config.pkg_mgr_run} commit[/cyan]",
    ]
    console.print()
    console.print(Panel("\n".join(steps_lines), title="Next Steps", border_style="cyan", padding=(1, 2)))

    summary_lines = [
        f"OIDC             {config.oidc_authority}",
        f"Resource Server  {config.resource_server_url}",
        f"Proxy            {'enabled' if config.use_proxy else 'disabled'}",
        f"Runtime Config   edit [cyan]{APP_CONFIG_PATH.as_posix()}[/cyan] to change runtime settings",
        "Documentation    see README.md",
    ]
    console.print()
    console.print(Panel("\n".join(summary_lines), title="Configuration", border_style="cyan", padding=(1, 2)))


@app.command()
def check():
    """Check that the tools used to scaffold and build projects are installed."""
    show_banner()
    console.print("[bold]Checking for installed tools...[/bold]\n")

    tracker = StepTracker("Check Available Tools", TOOLS.items())
    found = {}
    for tool in TOOLS:
        found[tool] = check_tool(tool)
        tracker.finish(tool, found[tool], "available" if found[tool] else "not found")

    console.print(tracker.render())
    console.print("\n[bold green]Angular Starter CLI is ready to use![/bold green]")

    if not found["git"]:
        console.print("[dim]Tip: Install git to clone templates and initialize repositories[/dim]")
    if not any(found[pm] for pm in PACKAGE_MANAGERS):
        console.print("[dim]Tip: Install npm, pnpm or yarn to install project dependencies[/dim]")


def main():
    app()


if __name__ == "__main__":
    main()
