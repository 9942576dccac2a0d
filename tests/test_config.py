from __future__ import annotations

import dataclasses
import json
from pathlib import Path

import pytest

from angular_starter_oidc import config as config_module
from angular_starter_oidc.config import (
    BUILTIN_DEFAULTS,
    DEFAULT_TEMPLATE_URL,
    TEMPLATE_URL_ENV,
    build_config,
    load_user_defaults,
    resolve_defaults,
)
from angular_starter_oidc.errors import ValidationError
from conftest import make_config


def test_build_config_derives_package_name() -> None:
    config = make_config(display_name="  MyAwesomeApp  ")
    assert config.display_name == "MyAwesomeApp"
    assert config.package_name == "my-awesome-app"
    assert config.cli_package == "angular-starter-oidc-cli"


@pytest.mark.parametrize(
    ("package_manager", "run_prefix"),
    [("npm", "npm run"), ("pnpm", "pnpm"), ("yarn", "yarn")],
)
def test_pkg_mgr_run(package_manager: str, run_prefix: str) -> None:
    assert make_config(package_manager=package_manager).pkg_mgr_run == run_prefix


def test_config_is_immutable() -> None:
    config = make_config()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.package_name = "other"  # type: ignore[misc]


def test_build_config_reports_every_problem() -> None:
    with pytest.raises(ValidationError) as excinfo:
        build_config(
            "!@#",
            oidc_authority="http://idp.example.com",
            oidc_client_id="",
            redirect_url="localhost",
            resource_server_url="http://localhost:8080",
            vcs_host="bitbucket",
            package_manager="bun",
            node_version="20",
        )
    problems = excinfo.value.problems
    assert len(problems) == 6
    assert any("alphanumeric" in problem for problem in problems)
    assert any("bitbucket" in problem for problem in problems)
    assert any("bun" in problem for problem in problems)


def test_build_config_allows_localhost_authority() -> None:
    config = make_config(oidc_authority="http://localhost:8180/realms/dev")
    assert config.oidc_authority == "http://localhost:8180/realms/dev"


def test_load_user_defaults_missing_file(tmp_path: Path) -> None:
    assert load_user_defaults(tmp_path / "defaults.json") == {}


def test_load_user_defaults_keeps_known_keys(tmp_path: Path) -> None:
    path = tmp_path / "defaults.json"
    path.write_text(json.dumps({"package_manager": "pnpm", "colour": "blue"}), encoding="utf-8")
    assert load_user_defaults(path) == {"package_manager": "pnpm"}


def test_load_user_defaults_rejects_non_object(tmp_path: Path) -> None:
    path = tmp_path / "defaults.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_user_defaults(path)


@pytest.mark.parametrize(
    ("data", "message"),
    [
        ({"use_proxy": "false"}, "use_proxy.*boolean"),
        ({"node_version": 22}, "node_version.*string"),
        ({"template_url": None}, "template_url.*string"),
    ],
)
def test_load_user_defaults_rejects_wrong_types(tmp_path: Path, data: dict, message: str) -> None:
    path = tmp_path / "defaults.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    with pytest.raises(ValueError, match=message):
        load_user_defaults(path)


def test_load_user_defaults_uses_platform_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "user_config_dir", lambda app_name: str(tmp_path / app_name))
    path = tmp_path / "angular-starter-oidc" / "defaults.json"
    path.parent.mkdir()
    path.write_text(json.dumps({"node_version": "22"}), encoding="utf-8")
    assert load_user_defaults() == {"node_version": "22"}


def test_resolve_defaults_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(TEMPLATE_URL_ENV, raising=False)
    assert resolve_defaults() == BUILTIN_DEFAULTS
    assert resolve_defaults()["template_url"] == DEFAULT_TEMPLATE_URL

    resolved = resolve_defaults({"template_url": "git@host:file/template.git", "vcs_host": "gitlab"})
    assert resolved["template_url"] == "git@host:file/template.git"
    assert resolved["vcs_host"] == "gitlab"

    monkeypatch.setenv(TEMPLATE_URL_ENV, "https://example.com/env/template.git")
    resolved = resolve_defaults({"template_url": "git@host:file/template.git"})
    assert resolved["template_url"] == "https://example.com/env/template.git"
