from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from angular_starter_oidc.config import ScaffoldConfig, build_config

TEMPLATE_FILES = {
    "package.json": '{\n  "name": "__APP_NAME__",\n  "description": "__APP_DISPLAY_NAME__",\n'
    '  "engines": {"node": ">=__NODE_VERSION__"}\n}\n',
    "angular.json": '{\n  "serve": {\n    "options": {\n'
    '      "buildTarget": "__APP_NAME__:build"__PROXY_CONFIG__\n    }\n  }\n}\n',
    "src/app/app.spec.ts": "expect(app.title).toBe('__APP_DISPLAY_NAME__');\n"
    "const secureRoutes = [__SECURE_ROUTES__];\n",
    "README.md": "# __APP_DISPLAY_NAME__\n\nRun `__PKG_MGR_RUN__ start`.\n"
    "Realm: __REALM__\nGenerated with __CLI_PACKAGE__.\n",
    "public/assets/app-config.json": '{"oidc": {"authority": "__OIDC_AUTHORITY__", "clientId": "__CLIENT_ID__"}}\n',
    "src/proxy.conf.json": '{"/api": {"target": "__BACKEND_URL__", "secure": false}}\n',
    "src/environments/environment.ts": "export const redirect = '__REDIRECT_URL__';\n",
    ".github/workflows/ci.yml": "node-version: __NODE_VERSION__\nrun: __PKG_MGR__ install\n",
    ".gitlab-ci.yml": "image: node:__NODE_VERSION__\nscript: __PKG_MGR_RUN__ build\n",
}


def write_template(root: Path, files: dict[str, str] | None = None) -> Path:
    for rel_path, content in (files or TEMPLATE_FILES).items():
        file_path = root / rel_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")
    (root / ".git").mkdir(exist_ok=True)
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
    return root


def make_config(**overrides) -> ScaffoldConfig:
    answers = {
        "oidc_authority": "https://idp.example.com/realms/acme",
        "oidc_client_id": "my-client",
        "redirect_url": "http://localhost:4200",
        "resource_server_url": "http://localhost:8080",
        "vcs_host": "github",
        "package_manager": "npm",
        "node_version": "20",
        "use_proxy": False,
    }
    display_name = overrides.pop("display_name", "My Awesome App")
    answers.update(overrides)
    return build_config(display_name, **answers)


@pytest.fixture
def config() -> ScaffoldConfig:
    return make_config()


@pytest.fixture
def template_source(tmp_path: Path) -> Path:
    return write_template(tmp_path / "template-src")


class FakeRunner:
    """Stands in for subprocess.run; git clone copies a local template directory."""

    def __init__(self, template_source: Path):
        self.template_source = template_source
        self.calls: list[tuple[list[str], Path | None]] = []
        self.failures: dict[tuple[str, ...], int] = {}
        self.clone_stderr = "fatal: repository not found"
        # a failing clone still leaves the target directory behind
        self.partial_clone = False

    def fail(self, *prefix: str, returncode: int = 1) -> None:
        self.failures[prefix] = returncode

    def __call__(self, cmd, cwd=None, check=False, capture_output=False, text=False, **kwargs):
        cmd = list(cmd)
        self.calls.append((cmd, cwd))
        for prefix, returncode in self.failures.items():
            if tuple(cmd[: len(prefix)]) == prefix:
                if returncode < 0:
                    raise FileNotFoundError(2, "No such file or directory", cmd[0])
                if cmd[:2] == ["git", "clone"] and self.partial_clone:
                    Path(cmd[-1]).mkdir(parents=True)
                    (Path(cmd[-1]) / "package.json").write_text("{", encoding="utf-8")
                if check:
                    raise subprocess.CalledProcessError(returncode, cmd, output="", stderr="boom")
                stderr = self.clone_stderr if cmd[:2] == ["git", "clone"] else "boom"
                return subprocess.CompletedProcess(cmd, returncode, stdout="", stderr=stderr)
        if cmd[:2] == ["git", "clone"]:
            shutil.copytree(self.template_source, Path(cmd[-1]))
        stdout = "10.2.0" if cmd[1:] == ["--version"] else ""
        return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr="")

    def commands(self) -> list[list[str]]:
        return [cmd for cmd, _ in self.calls]


@pytest.fixture
def fake_run(monkeypatch: pytest.MonkeyPatch, template_source: Path) -> FakeRunner:
    runner = FakeRunner(template_source)
    monkeypatch.setattr(subprocess, "run", runner)
    return runner
