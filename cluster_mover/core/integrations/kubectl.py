import json
import logging
import subprocess
from typing import Any, Callable, Optional

from cluster_mover.core.exceptions import QueryError
from cluster_mover.core.models.config import settings
from cluster_mover.core.models.objects import Inventory, InventoryItem, KindLiteral

logger = logging.getLogger("cluster_mover")

BACKUP_SCHEDULE_RESOURCE = "schedules.backup.appuio.ch"


def _deployment_attributes(item: dict[str, Any]) -> dict[str, Any]:
    return {"replicas": (item.get("spec") or {}).get("replicas")}


def _cronjob_attributes(item: dict[str, Any]) -> dict[str, Any]:
    return {"suspend": bool((item.get("spec") or {}).get("suspend", False))}


def _no_attributes(item: dict[str, Any]) -> dict[str, Any]:
    return {}


# kind -> (kubectl resource, attributes extracted from each item)
RESOURCES: dict[KindLiteral, tuple[str, Callable[[dict[str, Any]], dict[str, Any]]]] = {
    "Deployment": ("deployments.apps", _deployment_attributes),
    "CronJob": ("cronjob", _cronjob_attributes),
    "BackupSchedule": (BACKUP_SCHEDULE_RESOURCE, _no_attributes),
}


class KubectlLoader:
    """Reads cluster state by running kubectl queries. Every query is run once per call, nothing is cached.

    :param context: kubeconfig context passed as `--context`, or the current context when None.
    """

    def __init__(self, context: Optional[str] = None) -> None:
        self.context = context

    def _base(self) -> list[str]:
        cmd = settings.kubectl_base
        if self.context is not None:
            cmd += ["--context", self.context]
        return cmd

    @staticmethod
    def _execute(argv: list[str]) -> subprocess.CompletedProcess:
        return subprocess.run(argv, capture_output=True, text=True)

    def _query(self, *args: str) -> str:
        argv = self._base() + list(args)
        logger.debug(f"Running {argv}")
        try:
            result = self._execute(argv)
        except OSError as e:
            raise QueryError(argv, str(e)) from e

        if result.returncode != 0:
            raise QueryError(argv, f"exited with code {result.returncode}", result.stdout, result.stderr)
        return result.stdout

    def _query_json(self, *args: str) -> dict[str, Any]:
        output = self._query(*args, "-o", "json")
        try:
            document = json.loads(output)
        except json.JSONDecodeError as e:
            raise QueryError(self._base() + [*args, "-o", "json"], f"invalid JSON output: {e}", output) from e
        if not isinstance(document, dict):
            raise QueryError(self._base() + [*args, "-o", "json"], "expected a JSON object", output)
        return document

    def current_context(self) -> str:
        return self._query("config", "current-context").strip()

    def list_namespaces(self) -> list[str]:
        """Namespace names as `namespace/<name>`, in the order kubectl lists them."""
        return self._query("get", "ns", "-o", "name").split()

    def list_items(self, kind: KindLiteral) -> list[InventoryItem]:
        resource, get_attributes = RESOURCES[kind]
        document = self._query_json("get", resource, "-A")

        items = []
        for item in document.get("items") or []:
            metadata = item.get("metadata") or {}
            items.append(
                InventoryItem(
                    kind=kind,
                    namespace=metadata.get("namespace", ""),
                    name=metadata.get("name", ""),
                    attributes=get_attributes(item),
                )
            )
        return items

    def load_inventory(self, kinds: tuple[KindLiteral, ...] = (), with_context: bool = False) -> Inventory:
        context = None
        if with_context:
            context = self.current_context() if self.context is None else self.context

        logger.info("Loading namespaces from cluster")
        namespaces = self.list_namespaces()

        items: list[InventoryItem] = []
        for kind in kinds:
            logger.info(f"Loading {RESOURCES[kind][0]} from cluster")
            items += self.list_items(kind)

        logger.debug(f"Loaded {len(namespaces)} namespaces and {len(items)} other objects")
        return Inventory(context=context, namespaces=tuple(namespaces), items=tuple(items))
