from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import Result
from typer.testing import CliRunner

from cluster_mover.core.exceptions import ExecutionError
from cluster_mover.core.executor import CommandExecutor
from cluster_mover.core.integrations.kubectl import KubectlLoader
from cluster_mover.main import app

from .conftest import FakeKubectl

runner = CliRunner()

CLONE_ARGS = ["clone", "-s", "source", "-d", "destination", "-o", "140"]


@pytest.fixture
def executed():
    with patch.object(CommandExecutor, "execute", autospec=True) as mock_execute:
        yield mock_execute


def commands(mock_execute) -> list[str]:
    return [str(call.args[1]) for call in mock_execute.call_args_list]


@pytest.mark.parametrize("command", ["clone", "cleanup"])
def test_help(command: str):
    result = runner.invoke(app, [command, "--help"])
    try:
        assert result.exit_code == 0
    except AssertionError as e:
        raise e from result.exception


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert result.output.strip()


@pytest.mark.parametrize(
    "args",
    [
        ["clone"],
        ["clone", "-s", "source", "-d", "destination", "-o", "140"],
        ["clone", "-s", "source", "-d", "destination", "-f", "projects.txt"],
        ["cleanup"],
        ["cleanup", "-c", "prod"],
    ],
)
def test_missing_required_options(args: list[str], fake_kubectl: FakeKubectl):
    result: Result = runner.invoke(app, args)

    assert result.exit_code == 1
    assert "Usage:" in result.output
    assert fake_kubectl.calls == []


def test_project_list_must_exist(tmp_path: Path, fake_kubectl: FakeKubectl):
    result = runner.invoke(app, ["cleanup", "-f", str(tmp_path / "missing.txt")])

    assert result.exit_code == 1
    assert fake_kubectl.calls == []


def test_unknown_context(project_list: Path, fake_kubectl: FakeKubectl, executed):
    result = runner.invoke(app, ["clone", "-s", "source", "-d", "elsewhere", "-o", "140", "-f", str(project_list)])

    assert result.exit_code == 1
    assert fake_kubectl.calls == []
    assert not executed.called


def test_clone(project_list: Path, fake_kubectl: FakeKubectl, executed):
    result = runner.invoke(app, [*CLONE_ARGS, "-f", str(project_list)], input="y\n" * 4)

    assert result.exit_code == 0, result.output
    assert fake_kubectl.calls == [["kubectl", "--context", "source", "get", "ns", "-o", "name"]]
    assert commands(executed) == [
        "kubectl --context source -n acme get all,pvc",
        "kubectl --context source -n acme-prod get all,pvc",
        "kubectl --context source -n acme-dev get all,pvc",
        "./migrate-between-clusters.sh -z skip -d destination -s source -n acme",
        "./migrate-between-clusters.sh -z skip -d destination -s source -n acme-prod",
        "./migrate-between-clusters.sh -z skip -d destination -s source -n acme-dev",
        "lagoon -l amazeeio update project --openshift 140 --project acme",
        "lagoon -l amazeeio deploy latest --project acme --force --environment acme",
        "lagoon -l amazeeio deploy latest --project acme --force --environment prod",
        "lagoon -l amazeeio deploy latest --project acme --force --environment dev",
    ]
    assert "namespace/beta-prod" not in result.output


def test_clone_prompts_for_empty_stages(tmp_path: Path, fake_kubectl: FakeKubectl, executed):
    projects = tmp_path / "projects.txt"
    projects.write_text("gamma\n", encoding="utf-8")

    # listing, cloning and deploying have nothing to run but still wait for confirmation
    result = runner.invoke(app, [*CLONE_ARGS, "-f", str(projects)], input="y\n" * 4)

    assert result.exit_code == 0, result.output
    assert result.output.count("press 'y' to continue") == 4
    assert commands(executed) == ["lagoon -l amazeeio update project --openshift 140 --project gamma"]


def test_cleanup(project_list: Path, fake_kubectl: FakeKubectl, executed):
    result = runner.invoke(app, ["cleanup", "-f", str(project_list)], input="y\n" * 4)

    assert result.exit_code == 0, result.output
    assert "about to clean up resources in cluster: prod" in result.output
    assert [call[1:4] for call in fake_kubectl.calls] == [
        ["config", "current-context"],
        ["get", "ns", "-o"],
        ["get", "deployments.apps", "-A"],
        ["get", "cronjob", "-A"],
        ["get", "schedules.backup.appuio.ch", "-A"],
    ]
    assert commands(executed) == [
        "kubectl -n acme-prod get all,pvc",
        "kubectl -n acme-dev get all,pvc",
        "kubectl -n acme-prod scale deployment nginx --replicas=0",
        "kubectl -n acme-dev scale deployment nginx --replicas=0",
        'kubectl -n acme-prod patch cronjob cron-drush -p {"spec" : {"suspend" : true }}',
        "kubectl -n acme-prod delete schedules.backup.appuio.ch k8up-lagoon-backup-schedule",
    ]


def test_cleanup_with_nothing_to_do(tmp_path: Path, fake_kubectl: FakeKubectl, executed):
    projects = tmp_path / "projects.txt"
    projects.write_text("gamma\n\n", encoding="utf-8")

    result = runner.invoke(app, ["cleanup", "-f", str(projects)])

    assert result.exit_code == 0, result.output
    assert result.output.count("nothing to do") == 4
    assert "press 'y'" not in result.output
    assert not executed.called


def test_query_failure(project_list: Path, fake_kubectl: FakeKubectl, executed):
    fake_kubectl.responses["cronjob"] = (1, "", 'error: the server doesn\'t have a resource type "cronjob"')

    result = runner.invoke(app, ["cleanup", "-f", str(project_list)], input="y\n" * 4)

    assert result.exit_code == 2
    assert "the server doesn't have a resource type" in result.output
    assert "run commands?" not in result.output
    assert not executed.called


def test_failed_command_stops_remaining_projects(tmp_path: Path, fake_kubectl: FakeKubectl, executed):
    projects = tmp_path / "projects.txt"
    projects.write_text("acme\nbeta\n", encoding="utf-8")
    executed.side_effect = ExecutionError(["kubectl", "-n", "acme-prod", "get", "all,pvc"], 5)

    result = runner.invoke(app, ["cleanup", "-f", str(projects)], input="y\n" * 8)

    assert result.exit_code == 5
    assert executed.call_count == 1
    assert '"beta"' not in result.output


def test_end_of_input_exits_with_130(project_list: Path, fake_kubectl: FakeKubectl, executed):
    result = runner.invoke(app, [*CLONE_ARGS, "-f", str(project_list)], input="n\nno\n")

    assert result.exit_code == 130
    assert "Exiting" in result.output
    assert not executed.called


def test_environment_overrides_tool_paths(project_list: Path, fake_kubectl: FakeKubectl, executed):
    result = runner.invoke(
        app,
        ["cleanup", "-f", str(project_list), "--kubeconfig", "/tmp/kubeconfig"],
        input="y\n" * 4,
        env={"CLUSTER_MOVER_KUBECTL": "/opt/bin/kubectl"},
    )

    assert result.exit_code == 0, result.output
    assert all(call[:3] == ["/opt/bin/kubectl", "--kubeconfig", "/tmp/kubeconfig"] for call in fake_kubectl.calls)
    assert commands(executed)[0] == "/opt/bin/kubectl --kubeconfig /tmp/kubeconfig -n acme-prod get all,pvc"


@pytest.mark.parametrize(
    "args",
    [
        [*CLONE_ARGS, "-f"],
        ["cleanup", "-f", "projects.txt", "--bogus"],
        ["cleanup", "-f", "projects.txt", "--width", "wide"],
        ["rollback"],
    ],
)
def test_bad_flags_exit_with_1(args: list[str], fake_kubectl: FakeKubectl):
    result = runner.invoke(app, args)

    assert result.exit_code == 1
    assert fake_kubectl.calls == []


def test_quiet_still_reports_unknown_context(project_list: Path, fake_kubectl: FakeKubectl):
    result = runner.invoke(app, ["clone", "-q", "-s", "source", "-d", "elsewhere", "-o", "140", "-f", str(project_list)])

    assert result.exit_code == 1
    assert "'elsewhere'" in result.output


def test_quiet_still_reports_missing_kubectl(project_list: Path):
    with patch.object(KubectlLoader, "_execute", side_effect=FileNotFoundError(2, "No such file or directory")):
        result = runner.invoke(app, ["cleanup", "-q", "-f", str(project_list)])

    assert result.exit_code == 2
    assert "Failed to query the cluster" in result.output


def test_quiet_still_reports_failed_command(project_list: Path, fake_kubectl: FakeKubectl, executed):
    executed.side_effect = ExecutionError(["kubectl", "-n", "acme-prod", "get", "all,pvc"], 5)

    result = runner.invoke(app, ["cleanup", "-q", "-f", str(project_list)], input="y\n")

    assert result.exit_code == 5
    assert "command failed with exit code 5" in result.output
