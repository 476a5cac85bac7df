from __future__ import annotations

import abc
from typing import ClassVar, Optional

from cluster_mover.core.filter import filter_namespaces
from cluster_mover.core.integrations.kubectl import BACKUP_SCHEDULE_RESOURCE
from cluster_mover.core.models.config import settings
from cluster_mover.core.models.objects import (
    Inventory,
    KindLiteral,
    PlannedCommand,
    PrefixStyle,
    Project,
    Stage,
    strip_namespace_prefix,
)

SUSPEND_PATCH = '{"spec" : {"suspend" : true }}'


def environment_name(project: Project, namespace: str) -> str:
    """Lagoon environment deployed into `namespace`: `<project>-<env>` gives `<env>`.

    The project namespace itself has no dash after the project name and keeps its full name
    instead of being passed through as `namespace/<project>`.
    """
    return strip_namespace_prefix(namespace).removeprefix(f"{project}-")


class BaseFlow(abc.ABC):
    """Turns a project and a cluster inventory into confirmation-gated stages of commands.

    The name of the flow is the name of the class in lowercase, without the 'Flow' suffix.
    """

    display_name: ClassVar[str]
    prefix_style: ClassVar[PrefixStyle]
    inventory_kinds: ClassVar[tuple[KindLiteral, ...]] = ()
    # announce the cluster context before touching anything
    announce_context: ClassVar[bool] = False
    # an empty stage is reported and skipped instead of prompting
    skip_empty_stages: ClassVar[bool] = False

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        if "display_name" not in cls.__dict__:
            cls.display_name = cls.__name__.lower().removesuffix("flow")

    def __str__(self) -> str:
        return self.display_name.title()

    @property
    @abc.abstractmethod
    def context(self) -> Optional[str]:
        """kubeconfig context the inventory is loaded from, None for the current one."""

    def required_contexts(self) -> tuple[Optional[str], ...]:
        """Contexts that must exist in the kubeconfig before anything runs."""
        return (self.context,)

    def target_namespaces(self, project: Project, inventory: Inventory) -> list[str]:
        return filter_namespaces(inventory.namespaces, project.name, self.prefix_style)

    def stage(self, title: str, commands: list[PlannedCommand]) -> Stage:
        return Stage(title=title, commands=tuple(commands), skip_if_empty=self.skip_empty_stages)

    @abc.abstractmethod
    def plan(self, project: Project, namespaces: list[str], inventory: Inventory) -> list[Stage]:
        """Build every stage for one project. `namespaces` are the project's targeted namespaces."""

    @classmethod
    def find(cls, name: str) -> type[BaseFlow]:
        flows = cls.get_all()
        if name.lower() in flows:
            return flows[name.lower()]

        raise ValueError(f"Unknown flow name: {name}. Available flows: {', '.join(flows)}")

    @classmethod
    def get_all(cls) -> dict[str, type[BaseFlow]]:
        return {sub_cls.display_name.lower(): sub_cls for sub_cls in cls.__subclasses__()}


class CloneFlow(BaseFlow):
    """Clone every namespace of a project to the destination cluster, retarget the project in Lagoon
    and deploy all cloned environments."""

    prefix_style = PrefixStyle.EXACT

    @property
    def context(self) -> Optional[str]:
        return settings.source_context

    def required_contexts(self) -> tuple[Optional[str], ...]:
        return (settings.source_context, settings.destination_context)

    def _lagoon(self, *args: str) -> PlannedCommand:
        return PlannedCommand.of(settings.lagoon, "-l", settings.lagoon_instance, *args)

    def plan(self, project: Project, namespaces: list[str], inventory: Inventory) -> list[Stage]:
        names = [strip_namespace_prefix(ns) for ns in namespaces]
        kubectl = settings.kubectl_base + ["--context", settings.source_context]

        return [
            self.stage(
                "getting targeted namespaces contents:",
                [PlannedCommand.of(*kubectl, "-n", name, "get", "all,pvc") for name in names],
            ),
            self.stage(
                f'cloning namespaces for project "{project}"',
                [
                    PlannedCommand.of(
                        settings.migrate_script,
                        "-z",
                        "skip",
                        "-d",
                        settings.destination_context,
                        "-s",
                        settings.source_context,
                        "-n",
                        name,
                    )
                    for name in names
                ],
            ),
            self.stage(
                f'switching deploy target for project "{project}" to {settings.destination_openshift}:',
                [
                    self._lagoon(
                        "update", "project", "--openshift", settings.destination_openshift, "--project", project.name
                    )
                ],
            ),
            self.stage(
                f'deploying all cloned environments for "{project}":',
                [
                    self._lagoon(
                        "deploy",
                        "latest",
                        "--project",
                        project.name,
                        "--force",
                        "--environment",
                        environment_name(project, name),
                    )
                    for name in names
                ],
            ),
        ]


class CleanupFlow(BaseFlow):
    """Quiesce a project on the source cluster after it was cloned: scale down deployments,
    suspend cronjobs and remove backup schedules so nothing runs twice."""

    prefix_style = PrefixStyle.DASH_SUFFIX
    inventory_kinds = ("Deployment", "CronJob", "BackupSchedule")
    announce_context = True
    skip_empty_stages = True

    @property
    def context(self) -> Optional[str]:
        return settings.context

    def plan(self, project: Project, namespaces: list[str], inventory: Inventory) -> list[Stage]:
        names = [strip_namespace_prefix(ns) for ns in namespaces]
        kubectl = settings.kubectl_base
        if settings.context is not None:
            kubectl += ["--context", settings.context]

        return [
            self.stage(
                "getting targeted namespaces contents:",
                [PlannedCommand.of(*kubectl, "-n", name, "get", "all,pvc") for name in names],
            ),
            self.stage(
                f'scaling down deployments in "{project}" namespaces',
                [
                    PlannedCommand.of(*kubectl, "-n", name, "scale", "deployment", deployment.name, "--replicas=0")
                    for name in names
                    for deployment in inventory.in_namespace("Deployment", name)
                    if deployment.replicas > 0
                ],
            ),
            self.stage(
                f'suspending cronjobs in "{project}" namespaces',
                [
                    PlannedCommand.of(*kubectl, "-n", name, "patch", "cronjob", cronjob.name, "-p", SUSPEND_PATCH)
                    for name in names
                    for cronjob in inventory.in_namespace("CronJob", name)
                    if not cronjob.suspended
                ],
            ),
            self.stage(
                f'deleting backup schedules in "{project}" namespaces',
                [
                    PlannedCommand.of(*kubectl, "-n", name, "delete", BACKUP_SCHEDULE_RESOURCE, schedule.name)
                    for name in names
                    for schedule in inventory.in_namespace("BackupSchedule", name)
                ],
            ),
        ]
