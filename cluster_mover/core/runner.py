import logging
from typing import Optional

from cluster_mover.core.cancellation import CancellationToken
from cluster_mover.core.exceptions import ArgumentError, ExecutionError, MoverError, OperatorInterrupt, QueryError
from cluster_mover.core.executor import CommandExecutor
from cluster_mover.core.integrations.kubectl import KubectlLoader
from cluster_mover.core.models.config import settings
from cluster_mover.core.models.objects import Inventory, Project
from cluster_mover.core.planner import BaseFlow
from cluster_mover.utils.print import print
from cluster_mover.utils.project_list import load_projects
from cluster_mover.utils.version import get_version

logger = logging.getLogger("cluster_mover")


class Runner:
    """Runs one flow over every project of the project list and turns the outcome into an exit code."""

    def __init__(self, flow: BaseFlow, token: Optional[CancellationToken] = None) -> None:
        self._flow = flow
        self._token = token or CancellationToken()
        self._loader = KubectlLoader(context=flow.context)
        self._executor = CommandExecutor(token=self._token)

    def _greet(self) -> None:
        print(f"Running cluster-mover {get_version()}")
        print(f"Using flow: {self._flow}")

    def _load_inventory(self) -> Inventory:
        inventory = self._loader.load_inventory(self._flow.inventory_kinds, with_context=self._flow.announce_context)
        if self._flow.announce_context:
            print(f"[bold red]!! about to clean up resources in cluster: {inventory.context} !![/bold red]", force=True)
        return inventory

    def _run_project(self, project: Project, inventory: Inventory) -> None:
        namespaces = self._flow.target_namespaces(project, inventory)
        logger.debug(f"Project {project} matched {len(namespaces)} namespaces")

        print("\ntargeted namespaces:", force=True)
        for namespace in namespaces:
            print(namespace, force=True, markup=False, highlight=False, soft_wrap=True)

        for stage in self._flow.plan(project, namespaces, inventory):
            print(f"\n{stage.title}", force=True, markup=False, highlight=False, soft_wrap=True)
            self._executor.run(stage.commands, skip_if_empty=stage.skip_if_empty)

    def _run(self) -> None:
        self._greet()
        settings.check_contexts(*self._flow.required_contexts())

        if settings.project_list is None:
            raise ArgumentError("no project list given")
        projects = load_projects(settings.project_list)
        inventory = self._load_inventory()

        for project in projects:
            self._token.raise_if_cancelled()
            self._run_project(project, inventory)

    def run(self) -> int:
        try:
            self._run()
        except QueryError as e:
            logger.critical(f"Failed to query the cluster: {e}")
            if e.stdout:
                print(e.stdout, rich=False, force=True)
            if e.stderr:
                print(e.stderr, rich=False, force=True)
            return e.exit_code
        except ExecutionError as e:
            logger.critical(e)
            return e.exit_code
        except (KeyboardInterrupt, OperatorInterrupt) as e:
            logger.debug(f"Stopping: {e}")
            print("\nExiting", force=True)
            return OperatorInterrupt.exit_code
        except MoverError as e:
            logger.critical(e)
            return e.exit_code

        return 0
