import io
import json
import subprocess
from pathlib import Path
from typing import Optional
from unittest.mock import patch

import pytest
from rich.console import Console

from cluster_mover.core.integrations.kubectl import KubectlLoader
from cluster_mover.core.models import config as config_module
from cluster_mover.core.models.config import Config

KUBECONFIG_CONTEXTS = [{"name": name, "context": {}} for name in ("source", "destination", "prod")]

NAMESPACES = ["namespace/acme", "namespace/acme-prod", "namespace/acme-dev", "namespace/beta-prod", "namespace/kube-system"]


def k8s_list(*items: dict) -> str:
    return json.dumps({"apiVersion": "v1", "kind": "List", "items": list(items)})


def deployment(namespace: str, name: str, replicas: Optional[int] = 1) -> dict:
    spec = {} if replicas is None else {"replicas": replicas}
    return {"metadata": {"namespace": namespace, "name": name}, "spec": spec}


def cronjob(namespace: str, name: str, suspend: Optional[bool] = False) -> dict:
    spec = {"schedule": "*/5 * * * *"}
    if suspend is not None:
        spec["suspend"] = suspend
    return {"metadata": {"namespace": namespace, "name": name}, "spec": spec}


def schedule(namespace: str, name: str) -> dict:
    return {"metadata": {"namespace": namespace, "name": name}, "spec": {}}


class FakeKubectl:
    """Stands in for the kubectl process, answering by queried resource."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.responses: dict[str, tuple[int, str, str]] = {
            "current-context": (0, "prod\n", ""),
            "ns": (0, "\n".join(NAMESPACES) + "\n", ""),
            "deployments.apps": (
                0,
                k8s_list(
                    deployment("acme-prod", "nginx", 2),
                    deployment("acme-prod", "worker", 0),
                    deployment("acme-dev", "nginx", 1),
                    deployment("beta-prod", "nginx", 1),
                ),
                "",
            ),
            "cronjob": (
                0,
                k8s_list(
                    cronjob("acme-prod", "cron-drush", False),
                    cronjob("acme-dev", "cron-drush", True),
                    cronjob("beta-prod", "cron-drush", False),
                ),
                "",
            ),
            "schedules.backup.appuio.ch": (0, k8s_list(schedule("acme-prod", "k8up-lagoon-backup-schedule")), ""),
        }

    @staticmethod
    def key(argv: list[str]) -> str:
        if "current-context" in argv:
            return "current-context"
        return argv[argv.index("get") + 1]

    def __call__(self, argv, **kwargs) -> subprocess.CompletedProcess:
        self.calls.append(list(argv))
        returncode, stdout, stderr = self.responses[self.key(argv)]
        return subprocess.CompletedProcess(argv, returncode, stdout, stderr)


@pytest.fixture
def fake_kubectl():
    fake = FakeKubectl()
    with patch.object(KubectlLoader, "_execute", new=fake):
        yield fake


@pytest.fixture(autouse=True)
def mock_kubeconfig_contexts():
    with patch.object(
        config_module.config,
        "list_kube_config_contexts",
        return_value=(KUBECONFIG_CONTEXTS, KUBECONFIG_CONTEXTS[2]),
    ) as mock_contexts:
        yield mock_contexts


@pytest.fixture(autouse=True)
def default_config(monkeypatch: pytest.MonkeyPatch) -> Config:
    monkeypatch.setattr(config_module, "_config", None)
    config = Config(width=500, poll_interval=0.01)
    config._logging_console = Console(file=io.StringIO(), width=500)
    Config.set_config(config)
    return config


@pytest.fixture
def console_output(default_config: Config):
    """Everything printed to the console so far."""
    return lambda: default_config.logging_console.file.getvalue()


@pytest.fixture
def project_list(tmp_path: Path) -> Path:
    path = tmp_path / "projects.txt"
    path.write_text("acme\n", encoding="utf-8")
    return path
