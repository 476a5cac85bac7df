from __future__ import annotations

import logging
from typing import Any, Optional

import click
import typer
from pydantic import ValidationError
from typer.core import TyperCommand, TyperGroup

from cluster_mover.core.exceptions import ArgumentError
from cluster_mover.core.models.config import Config
from cluster_mover.core.planner import BaseFlow
from cluster_mover.core.runner import Runner
from cluster_mover.utils.version import get_version


class _ArgumentExitCode:
    """Unknown flags, missing flag values and badly typed values exit like any other argument error."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)  # type: ignore[misc]
        except click.UsageError as e:
            e.exit_code = ArgumentError.exit_code
            raise


class MoverCommand(_ArgumentExitCode, TyperCommand):
    pass


class MoverGroup(_ArgumentExitCode, TyperGroup):
    def resolve_command(self, ctx: click.Context, args: list[str]) -> Any:
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as e:
            e.exit_code = ArgumentError.exit_code
            raise


app = typer.Typer(
    cls=MoverGroup,
    pretty_exceptions_show_locals=False,
    pretty_exceptions_short=True,
    no_args_is_help=True,
    help="Move Lagoon projects between Kubernetes clusters and clean up the source cluster afterwards.",
)

logger = logging.getLogger("cluster_mover")


@app.command(cls=MoverCommand, rich_help_panel="Utils")
def version() -> None:
    typer.echo(get_version())


def _require(ctx: typer.Context, **options: Optional[str]) -> None:
    """Print usage and exit with 1 if any required option is missing."""
    missing = [name for name, value in options.items() if value is None]
    if not missing:
        return

    typer.echo(ctx.get_usage())
    typer.echo(f"Missing required options: {', '.join('--' + name.replace('_', '-') for name in missing)}")
    raise typer.Exit(code=1)


def _run_flow(flow_name: str, **kwargs: Any) -> None:
    try:
        # options left unset fall back to the CLUSTER_MOVER_* environment and the defaults
        config = Config(**{key: value for key, value in kwargs.items() if value is not None})
    except ValidationError as e:
        typer.echo(f"Invalid arguments:\n{e}", err=True)
        raise typer.Exit(code=1)

    Config.set_config(config)
    flow = BaseFlow.find(flow_name)()
    exit_code = Runner(flow).run()
    raise typer.Exit(code=exit_code)


@app.command(cls=MoverCommand, rich_help_panel="Flows")
def clone(
    ctx: typer.Context,
    source_context: Optional[str] = typer.Option(
        None,
        "--source-kubectx",
        "--source-context",
        "-s",
        help="Source kubectx. Namespaces are listed and cloned from this context. Required.",
        rich_help_panel="Kubernetes Settings",
    ),
    destination_context: Optional[str] = typer.Option(
        None,
        "--destination-kubectx",
        "--destination-context",
        "-d",
        help="Destination kubectx the namespaces are cloned to. Required.",
        rich_help_panel="Kubernetes Settings",
    ),
    destination_openshift: Optional[str] = typer.Option(
        None,
        "--destination-openshift",
        "-o",
        help="Destination Lagoon openshift ID. Must match the destination cluster. Required.",
        rich_help_panel="Lagoon Settings",
    ),
    project_list: Optional[str] = typer.Option(
        None,
        "--project-list",
        "-f",
        help="File containing a list of projects, one per line. Required.",
        rich_help_panel="General Settings",
    ),
    kubeconfig: Optional[str] = typer.Option(
        None,
        "--kubeconfig",
        "-k",
        help="Path to kubeconfig file. If not provided, kubectl will find it.",
        rich_help_panel="Kubernetes Settings",
    ),
    kubectl: Optional[str] = typer.Option(
        None, "--kubectl", help="kubectl binary to use.", rich_help_panel="Kubernetes Settings"
    ),
    migrate_script: Optional[str] = typer.Option(
        None,
        "--migrate-script",
        help="Script that clones a single namespace between clusters. Defaults to ./migrate-between-clusters.sh",
        rich_help_panel="Lagoon Settings",
    ),
    lagoon: Optional[str] = typer.Option(
        None, "--lagoon", help="lagoon CLI binary to use.", rich_help_panel="Lagoon Settings"
    ),
    lagoon_instance: Optional[str] = typer.Option(
        None,
        "--lagoon-instance",
        "-l",
        help="Lagoon instance passed to `lagoon -l`. Defaults to amazeeio.",
        rich_help_panel="Lagoon Settings",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose mode", rich_help_panel="Logging Settings"
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Enable quiet mode", rich_help_panel="Logging Settings"),
    log_to_stderr: bool = typer.Option(
        False, "--logtostderr", help="Pass logs to stderr", rich_help_panel="Logging Settings"
    ),
    width: Optional[int] = typer.Option(
        None,
        "--width",
        help="Width of the output. Will use console width by default.",
        rich_help_panel="Logging Settings",
    ),
) -> None:
    """Clone the namespaces of every listed project to another cluster, then retarget and redeploy them in Lagoon"""
    _require(
        ctx,
        source_context=source_context,
        destination_context=destination_context,
        destination_openshift=destination_openshift,
        project_list=project_list,
    )
    _run_flow(
        "clone",
        source_context=source_context,
        destination_context=destination_context,
        destination_openshift=destination_openshift,
        project_list=project_list,
        kubeconfig=kubeconfig,
        kubectl=kubectl,
        migrate_script=migrate_script,
        lagoon=lagoon,
        lagoon_instance=lagoon_instance,
        verbose=verbose,
        quiet=quiet,
        log_to_stderr=log_to_stderr,
        width=width,
    )


@app.command(cls=MoverCommand, rich_help_panel="Flows")
def cleanup(
    ctx: typer.Context,
    project_list: Optional[str] = typer.Option(
        None,
        "--project-list",
        "-f",
        help="File containing a list of projects, one per line. Required.",
        rich_help_panel="General Settings",
    ),
    context: Optional[str] = typer.Option(
        None,
        "--context",
        "-c",
        help="kubectx to clean up. By default, will run on the current context.",
        rich_help_panel="Kubernetes Settings",
    ),
    kubeconfig: Optional[str] = typer.Option(
        None,
        "--kubeconfig",
        "-k",
        help="Path to kubeconfig file. If not provided, kubectl will find it.",
        rich_help_panel="Kubernetes Settings",
    ),
    kubectl: Optional[str] = typer.Option(
        None, "--kubectl", help="kubectl binary to use.", rich_help_panel="Kubernetes Settings"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose mode", rich_help_panel="Logging Settings"
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Enable quiet mode", rich_help_panel="Logging Settings"),
    log_to_stderr: bool = typer.Option(
        False, "--logtostderr", help="Pass logs to stderr", rich_help_panel="Logging Settings"
    ),
    width: Optional[int] = typer.Option(
        None,
        "--width",
        help="Width of the output. Will use console width by default.",
        rich_help_panel="Logging Settings",
    ),
) -> None:
    """Scale down deployments, suspend cronjobs and delete backup schedules of projects already cloned elsewhere"""
    _require(ctx, project_list=project_list)
    _run_flow(
        "cleanup",
        project_list=project_list,
        context=context,
        kubeconfig=kubeconfig,
        kubectl=kubectl,
        verbose=verbose,
        quiet=quiet,
        log_to_stderr=log_to_stderr,
        width=width,
    )


def run() -> None:
    app()


if __name__ == "__main__":
    run()
