from __future__ import annotations

import enum
from typing import Any, Literal

import pydantic as pd

KindLiteral = Literal["Namespace", "Deployment", "CronJob", "BackupSchedule"]

NAMESPACE_PREFIX = "namespace/"


def strip_namespace_prefix(name: str) -> str:
    """`namespace/acme-prod` -> `acme-prod`, as listed by `kubectl get ns -o name`."""
    return name.removeprefix(NAMESPACE_PREFIX)


class PrefixStyle(str, enum.Enum):
    # clone: `namespace/<project>` also matches the project namespace itself
    EXACT = "exact"
    # cleanup: only `namespace/<project>-<environment>`
    DASH_SUFFIX = "dash-suffix"


class InventoryItem(pd.BaseModel):
    model_config = pd.ConfigDict(frozen=True)

    kind: KindLiteral
    namespace: str
    name: str
    attributes: dict[str, Any] = pd.Field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.kind} {self.namespace}/{self.name}"

    @property
    def replicas(self) -> int:
        # the API server defaults an unset replica count to 1
        replicas = self.attributes.get("replicas")
        return 1 if replicas is None else int(replicas)

    @property
    def suspended(self) -> bool:
        return bool(self.attributes.get("suspend", False))


class Inventory(pd.BaseModel):
    """Snapshot of the cluster taken once at the start of a run."""

    model_config = pd.ConfigDict(frozen=True)

    context: str | None = None
    namespaces: tuple[str, ...] = ()
    items: tuple[InventoryItem, ...] = ()

    def in_namespace(self, kind: KindLiteral, namespace: str) -> list[InventoryItem]:
        return [item for item in self.items if item.kind == kind and item.namespace == namespace]


class Project(pd.BaseModel):
    model_config = pd.ConfigDict(frozen=True)

    name: str = pd.Field(min_length=1)

    def __str__(self) -> str:
        return self.name


class PlannedCommand(pd.BaseModel):
    model_config = pd.ConfigDict(frozen=True)

    argv: tuple[str, ...] = pd.Field(min_length=1)

    @classmethod
    def of(cls, *argv: str) -> PlannedCommand:
        return cls(argv=argv)

    def __str__(self) -> str:
        return " ".join(self.argv)


class Stage(pd.BaseModel):
    """A batch of commands behind a single confirmation prompt."""

    model_config = pd.ConfigDict(frozen=True)

    title: str
    commands: tuple[PlannedCommand, ...] = ()
    skip_if_empty: bool = False
