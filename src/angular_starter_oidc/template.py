"""Template cloning, placeholder substitution and CI file pruning."""

import json
import logging
import re
import shutil
import subprocess
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from .config import ScaffoldConfig
from .errors import FetchError, SubstitutionError
from .validators import has_forbidden_git_option, is_valid_git_url

logger = logging.getLogger(__name__)

# Files rewritten on every run, relative to the project root.
TOKEN_FILES = (
    "package.json",
    "angular.json",
    "src/app/app.spec.ts",
    "README.md",
    "public/assets/app-config.json",
    "src/proxy.conf.json",
)

CI_FILES = {
    "github": ".github/workflows/ci.yml",
    "gitlab": ".gitlab-ci.yml",
}

GITHUB_DIR = ".github"
GITLAB_CI_FILE = ".gitlab-ci.yml"
DEFAULT_REALM = "my-realm"
PROXY_ROUTE = "/api"
PROXY_CONFIG_FRAGMENT = ',\n            "proxyConfig": "src/proxy.conf.json"'

_REALM_PATTERN = re.compile(r"/realms/([^/]+)")


def clone_template(template_url: str, target_path: Path) -> None:
    """Clone the template repository into target_path and drop its history.

    The URL is handed to git as a discrete argument after ``--``; nothing
    goes through a shell. A partially cloned directory is left in place
    on failure.
    """
    if not is_valid_git_url(template_url):
        raise FetchError("Invalid template URL format")
    if has_forbidden_git_option(template_url):
        raise FetchError("Invalid template URL: contains forbidden git options")

    cmd = ["git", "clone", "--", template_url, str(target_path)]
    logger.debug("Running %s", cmd)
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        raise FetchError(f"Failed to clone template: {e}") from e
    if result.returncode != 0:
        detail = (result.stderr or "").strip() or f"git clone exited with {result.returncode}"
        raise FetchError(f"Failed to clone template: {detail}")

    git_dir = target_path / ".git"
    if git_dir.exists():
        logger.debug("Removing template history at %s", git_dir)
        try:
            shutil.rmtree(git_dir)
        except OSError as e:
            raise FetchError(f"Failed to remove template history at {git_dir}: {e}") from e


def extract_realm(authority: str) -> str:
    """Return the Keycloak-style realm from an authority URL, or the default."""
    match = _REALM_PATTERN.search(authority)
    return match.group(1) if match else DEFAULT_REALM


def build_token_map(config: ScaffoldConfig) -> Mapping[str, str]:
    """Placeholder -> replacement for one run.

    Placeholders must never be substrings of one another.
    """
    if config.use_proxy:
        secure_routes = json.dumps(PROXY_ROUTE)
        proxy_config = PROXY_CONFIG_FRAGMENT
    else:
        secure_routes = json.dumps(config.resource_server_url)
        proxy_config = ""

    return MappingProxyType({
        "__APP_NAME__": config.package_name,
        "__APP_DISPLAY_NAME__": config.display_name,
        "__OIDC_AUTHORITY__": config.oidc_authority,
        "__CLIENT_ID__": config.oidc_client_id,
        "__REDIRECT_URL__": config.redirect_url,
        "__POST_LOGOUT_REDIRECT_URL__": config.redirect_url,
        "__BACKEND_URL__": config.resource_server_url,
        "__SECURE_ROUTES__": secure_routes,
        "__PROXY_CONFIG__": proxy_config,
        "__REALM__": extract_realm(config.oidc_authority),
        "__NODE_VERSION__": config.node_version,
        "__PKG_MGR__": config.package_manager,
        "__PKG_MGR_RUN__": config.pkg_mgr_run,
        "__CLI_PACKAGE__": config.cli_package,
    })


def token_files(vcs_host: str) -> tuple[str, ...]:
    ci_file = CI_FILES.get(vcs_host)
    return TOKEN_FILES + ((ci_file,) if ci_file else ())


def replace_tokens(target_path: Path, config: ScaffoldConfig) -> list[str]:
    """Rewrite placeholders in the known template files.

    Files missing from the template are skipped. Each file is rewritten in
    a single pass, so replacement values are never substituted again.
    Returns the relative paths that changed.
    """
    tokens = build_token_map(config)
    pattern = re.compile("|".join(re.escape(token) for token in sorted(tokens, key=len, reverse=True)))

    rewritten: list[str] = []
    for rel_path in token_files(config.vcs_host):
        file_path = target_path / rel_path
        if not file_path.is_file():
            logger.debug("Skipping %s (not in template)", rel_path)
            continue
        try:
            with file_path.open("r", encoding="utf-8", newline="") as fh:
                content = fh.read()
            updated = pattern.sub(lambda m: tokens[m.group(0)], content)
            if updated == content:
                continue
            with file_path.open("w", encoding="utf-8", newline="") as fh:
                fh.write(updated)
        except (OSError, UnicodeDecodeError) as e:
            raise SubstitutionError(f"Failed to replace tokens in {rel_path}: {e}") from e
        logger.debug("Replaced tokens in %s", rel_path)
        rewritten.append(rel_path)
    return rewritten


def prune_ci_files(target_path: Path, vcs_host: str) -> None:
    """Delete the CI configuration of the VCS host that was not chosen."""
    if vcs_host == "github":
        gitlab_ci = target_path / GITLAB_CI_FILE
        if gitlab_ci.exists():
            logger.debug("Removing %s", gitlab_ci)
            gitlab_ci.unlink()
    elif vcs_host == "gitlab":
        github_dir = target_path / GITHUB_DIR
        if github_dir.exists():
            logger.debug("Removing %s", github_dir)
            shutil.rmtree(github_dir)
