"""Configuration record and the defaults that feed the interactive prompts."""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_dir

from .errors import ValidationError
from .validators import (
    is_valid_display_name,
    to_package_name,
    validate_client_id,
    validate_oidc_authority,
    validate_required,
    validate_url,
)

logger = logging.getLogger(__name__)

APP_NAME = "angular-starter-oidc"
CLI_PACKAGE = "angular-starter-oidc-cli"
DEFAULT_TEMPLATE_URL = "https://github.com/Spokay/angular-starter-app-template.git"
TEMPLATE_URL_ENV = "ANGULAR_STARTER_TEMPLATE_URL"
DEFAULTS_FILENAME = "defaults.json"

VCS_HOSTS = {
    "github": "GitHub (GitHub Actions)",
    "gitlab": "GitLab (GitLab CI)",
}

# package manager -> prefix used to run package.json scripts
PACKAGE_MANAGERS = {
    "npm": "npm run",
    "pnpm": "pnpm",
    "yarn": "yarn",
}

BUILTIN_DEFAULTS = {
    "template_url": DEFAULT_TEMPLATE_URL,
    "redirect_url": "http://localhost:4200",
    "resource_server_url": "http://localhost:8080",
    "vcs_host": "github",
    "package_manager": "npm",
    "node_version": "20",
    "use_proxy": False,
}


@dataclass(frozen=True)
class ScaffoldConfig:
    display_name: str
    package_name: str
    oidc_authority: str
    oidc_client_id: str
    redirect_url: str
    resource_server_url: str
    vcs_host: str
    package_manager: str
    node_version: str
    use_proxy: bool = False
    cli_package: str = CLI_PACKAGE

    @property
    def pkg_mgr_run(self) -> str:
        return PACKAGE_MANAGERS[self.package_manager]


def build_config(
    display_name: str,
    *,
    oidc_authority: str,
    oidc_client_id: str,
    redirect_url: str,
    resource_server_url: str,
    vcs_host: str,
    package_manager: str,
    node_version: str,
    use_proxy: bool = False,
) -> ScaffoldConfig:
    """Validate collected answers and assemble the configuration record.

    Raises ValidationError naming every rejected field.
    """
    problems: list[str] = []

    if not is_valid_display_name(display_name):
        problems.append("Project name must contain at least one alphanumeric character")
        package_name = ""
    else:
        display_name = display_name.strip()
        package_name = to_package_name(display_name)

    checks = [
        validate_oidc_authority(oidc_authority),
        validate_client_id(oidc_client_id),
        validate_url(redirect_url, "Redirect URL"),
        validate_url(resource_server_url, "Resource server URL"),
        validate_required(node_version, "Node version"),
    ]
    problems.extend(message for message in checks if message)

    if vcs_host not in VCS_HOSTS:
        problems.append(f"Invalid VCS host '{vcs_host}'. Choose from: {', '.join(VCS_HOSTS)}")
    if package_manager not in PACKAGE_MANAGERS:
        problems.append(
            f"Invalid package manager '{package_manager}'. Choose from: {', '.join(PACKAGE_MANAGERS)}"
        )

    if problems:
        raise ValidationError("Invalid project configuration", problems)

    return ScaffoldConfig(
        display_name=display_name,
        package_name=package_name,
        oidc_authority=oidc_authority.strip(),
        oidc_client_id=oidc_client_id.strip(),
        redirect_url=redirect_url.strip(),
        resource_server_url=resource_server_url.strip(),
        vcs_host=vcs_host,
        package_manager=package_manager,
        node_version=node_version.strip(),
        use_proxy=bool(use_proxy),
    )


def defaults_path() -> Path:
    return Path(user_config_dir(APP_NAME)) / DEFAULTS_FILENAME


def load_user_defaults(path: Path | None = None) -> dict:
    """Read prompt defaults from the user's config directory.

    A missing file yields an empty mapping. A malformed file raises
    ValueError and the caller decides whether to warn.
    """
    path = path or defaults_path()
    if not path.is_file():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    known = {key: value for key, value in data.items() if key in BUILTIN_DEFAULTS}
    for key, value in known.items():
        expected = type(BUILTIN_DEFAULTS[key])
        if not isinstance(value, expected):
            raise ValueError(f"'{key}' in {path} must be a {'boolean' if expected is bool else 'string'}")
    logger.debug("Loaded %d default(s) from %s", len(known), path)
    return known


def resolve_defaults(user_defaults: dict | None = None) -> dict:
    """Merge built-in defaults, the user defaults file and the environment."""
    resolved = dict(BUILTIN_DEFAULTS)
    resolved.update(user_defaults or {})
    env_template = (os.getenv(TEMPLATE_URL_ENV) or "").strip()
    if env_template:
        resolved["template_url"] = env_template
    return resolved
