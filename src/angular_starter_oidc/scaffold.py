"""Project generation pipeline and the external tools it drives."""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .app_config import generate_app_config
from .config import CLI_PACKAGE, ScaffoldConfig
from .template import clone_template, prune_ci_files, replace_tokens
from .ui import StepTracker

logger = logging.getLogger(__name__)

INITIAL_COMMIT_MESSAGE = f"chore: initial commit from {CLI_PACKAGE}"


@dataclass(frozen=True)
class StepResult:
    """Outcome of a step whose failure should not abort the run."""

    ok: bool
    detail: str = ""
    warning: str | None = None

    @classmethod
    def success(cls, detail: str = "") -> "StepResult":
        return cls(ok=True, detail=detail)

    @classmethod
    def warn(cls, detail: str, warning: str) -> "StepResult":
        logger.warning(warning)
        return cls(ok=False, detail=detail, warning=warning)


def run_command(cmd: list[str], cwd: Path | None = None) -> subprocess.CompletedProcess:
    """Run a command from an argument vector, raising CalledProcessError on failure."""
    logger.debug("Running %s (cwd=%s)", cmd, cwd)
    return subprocess.run(cmd, cwd=cwd, check=True, capture_output=True, text=True)


def check_tool(tool: str) -> bool:
    """Check if a tool is installed."""
    return shutil.which(tool) is not None


def configure_ci(target_path: Path, vcs_host: str) -> StepResult:
    try:
        prune_ci_files(target_path, vcs_host)
    except OSError as e:
        return StepResult.warn(
            "partially configured",
            f"Could not fully configure CI files for {vcs_host} ({e}). Remove the unused CI configuration manually.",
        )
    return StepResult.success(vcs_host)


def install_dependencies(target_path: Path, config: ScaffoldConfig) -> StepResult:
    pm = config.package_manager
    manual = f"Please run '{pm} install' manually in the project directory."
    try:
        version = run_command([pm, "--version"]).stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        return StepResult.warn(
            f"{pm} not found",
            f"{pm} is not installed on your system. Please install {pm} and run '{pm} install' manually.",
        )

    try:
        run_command([pm, "install"], cwd=target_path)
    except (OSError, subprocess.CalledProcessError) as e:
        stderr = getattr(e, "stderr", None)
        if stderr:
            logger.debug("%s install output:\n%s", pm, stderr)
        return StepResult.warn("install failed", f"Failed to install dependencies with {pm}. {manual}")
    return StepResult.success(f"{pm} {version}" if version else pm)


def init_git_repo(target_path: Path, remote_url: str | None = None) -> StepResult:
    """Initialize a git repository with an initial commit and optional origin remote."""
    if not check_tool("git"):
        return StepResult.warn("git not available", "Git is not installed. Run 'git init' manually later.")

    try:
        run_command(["git", "init"], cwd=target_path)
        run_command(["git", "add", "."], cwd=target_path)
        run_command(["git", "commit", "-m", INITIAL_COMMIT_MESSAGE], cwd=target_path)
    except (OSError, subprocess.CalledProcessError) as e:
        return StepResult.warn(
            "init failed",
            f"Failed to initialize git repository ({e}). Run 'git init' and commit manually.",
        )

    if not remote_url:
        return StepResult.success("initialized")

    try:
        run_command(["git", "remote", "add", "origin", remote_url], cwd=target_path)
    except (OSError, subprocess.CalledProcessError) as e:
        return StepResult.warn(
            "remote not added",
            f"Failed to add remote ({e}). Run 'git remote add origin {remote_url}' manually.",
        )
    return StepResult.success("initialized, origin added")


def generate_project(
    template_url: str,
    target_path: Path,
    config: ScaffoldConfig,
    *,
    tracker: StepTracker | None = None,
) -> list[StepResult]:
    """Clone the template and turn it into the configured project.

    Returns the results of the steps that degrade to a warning. Clone,
    substitution and runtime config failures propagate as ScaffoldError.
    Uses tracker if provided (keys: clone, tokens, ci, app-config).
    """
    results: list[StepResult] = []

    if tracker:
        tracker.start("clone", template_url)
    try:
        clone_template(template_url, target_path)
    except Exception as e:
        if tracker:
            tracker.error("clone", str(e))
        raise
    if tracker:
        tracker.complete("clone", str(target_path))
        tracker.start("tokens")
    try:
        rewritten = replace_tokens(target_path, config)
    except Exception as e:
        if tracker:
            tracker.error("tokens", str(e))
        raise
    if tracker:
        tracker.complete("tokens", f"{len(rewritten)} file(s)")
        tracker.start("ci")

    ci_result = configure_ci(target_path, config.vcs_host)
    results.append(ci_result)
    if tracker:
        tracker.finish("ci", ci_result.ok, ci_result.detail)
        tracker.start("app-config")

    try:
        app_config_path = generate_app_config(target_path, config)
    except Exception as e:
        if tracker:
            tracker.error("app-config", str(e))
        raise
    if tracker:
        tracker.complete("app-config", app_config_path.relative_to(target_path).as_posix())

    return results
