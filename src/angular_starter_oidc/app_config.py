"""Runtime configuration file read by the generated application at startup."""

import json
import logging
from pathlib import Path

from .config import ScaffoldConfig
from .errors import SubstitutionError

logger = logging.getLogger(__name__)

APP_CONFIG_PATH = Path("public") / "assets" / "app-config.json"
OIDC_SCOPE = "openid profile email"
OIDC_RESPONSE_TYPE = "code"


def build_app_config(config: ScaffoldConfig) -> dict:
    return {
        "oidc": {
            "authority": config.oidc_authority,
            "clientId": config.oidc_client_id,
            "redirectUrl": config.redirect_url,
            "postLogoutRedirectUri": config.redirect_url,
            "scope": OIDC_SCOPE,
            "responseType": OIDC_RESPONSE_TYPE,
            "secureRoutes": [config.resource_server_url],
        },
        "resourceServer": {
            "baseUrl": config.resource_server_url,
        },
    }


def generate_app_config(target_path: Path, config: ScaffoldConfig) -> Path:
    """Write public/assets/app-config.json, replacing any existing file."""
    app_config_path = target_path / APP_CONFIG_PATH
    try:
        app_config_path.parent.mkdir(parents=True, exist_ok=True)
        with app_config_path.open("w", encoding="utf-8") as fh:
            json.dump(build_app_config(config), fh, indent=2)
    except OSError as e:
        raise SubstitutionError(f"Failed to generate {APP_CONFIG_PATH.as_posix()}: {e}") from e
    logger.debug("Wrote %s", app_config_path)
    return app_config_path
