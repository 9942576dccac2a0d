"""Input validation for project names, URLs and git sources.

Field validators return ``None`` when the value is acceptable and a
user-facing message otherwise, so prompts can show the message and ask again.
"""

import re

PACKAGE_NAME_PATTERN = re.compile(r"\A[a-z0-9-]+\Z")

# Allow-list: anything outside these characters is rejected.
GIT_URL_PATTERN = re.compile(
    r"\A(https?://|git@|git://)[\w.\-@:/~]+(\.git)?\Z",
    re.IGNORECASE | re.ASCII,
)

# "-u" is short for --upload-pack on git clone.
_SHORT_UPLOAD_PACK = re.compile(r"(^|[/:@=])-u($|[/:=])")


def to_package_name(display_name: str) -> str:
    """Convert a display name to an npm-friendly package name.

    "My Awesome App", "MyAwesomeApp" and "my_awesome_app" all become
    "my-awesome-app".
    """
    name = display_name.strip()
    name = re.sub(r"([a-z])([A-Z])", r"\1-\2", name)
    name = re.sub(r"[\s_]+", "-", name)
    name = name.lower()
    name = re.sub(r"[^a-z0-9-]", "", name)
    name = re.sub(r"-+", "-", name)
    return name.strip("-")


def is_valid_package_name(name: str) -> bool:
    return bool(PACKAGE_NAME_PATTERN.match(name))


def is_valid_display_name(display_name: str) -> bool:
    """True when the display name converts to a non-empty valid package name."""
    if not display_name or not display_name.strip():
        return False
    package_name = to_package_name(display_name)
    return len(package_name) > 0 and is_valid_package_name(package_name)


def is_valid_git_url(url: str) -> bool:
    """Accept HTTPS, SSH (git@host:path) and git:// repository URLs."""
    if not url:
        return False
    return GIT_URL_PATTERN.match(url) is not None


def has_forbidden_git_option(url: str) -> bool:
    """Detect URLs that git could read as an --upload-pack option."""
    return "--upload-pack" in url or _SHORT_UPLOAD_PACK.search(url) is not None


def validate_required(value: str | None, field_name: str = "Field") -> str | None:
    if not value or not value.strip():
        return f"{field_name} is required"
    return None


def validate_oidc_authority(value: str | None) -> str | None:
    if not value or not value.strip():
        return "OIDC authority URL is required"
    # http is only tolerated for a local identity provider
    if not re.match(r"^https://.+", value) and not value.startswith("http://localhost"):
        return "OIDC authority must be a valid HTTPS URL (or HTTP for localhost)"
    return None


def validate_client_id(value: str | None) -> str | None:
    if not value or not value.strip():
        return "OIDC client ID is required"
    return None


def validate_url(value: str | None, field_name: str = "URL") -> str | None:
    if not value or not value.strip():
        return f"{field_name} is required"
    if not re.match(r"^https?://.+", value):
        return f"{field_name} must be a valid URL"
    return None


def validate_remote_url(value: str | None) -> str | None:
    if not value or not value.strip():
        return "Remote URL is required"
    if not is_valid_git_url(value):
        return "Remote URL must be an HTTPS, SSH or git:// repository URL"
    if has_forbidden_git_option(value):
        return "Remote URL contains forbidden git options"
    return None
