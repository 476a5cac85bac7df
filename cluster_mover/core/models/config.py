from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import pydantic as pd
from kubernetes import config
from kubernetes.config.config_exception import ConfigException
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console
from rich.logging import RichHandler

from cluster_mover.core.exceptions import ArgumentError

logger = logging.getLogger("cluster_mover")


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CLUSTER_MOVER_")

    quiet: bool = pd.Field(False)
    verbose: bool = pd.Field(False)

    # Kubernetes Settings
    kubeconfig: Optional[str] = None
    kubectl: str = pd.Field("kubectl", min_length=1)
    source_context: Optional[str] = None
    destination_context: Optional[str] = None
    context: Optional[str] = None

    # Lagoon Settings
    lagoon: str = pd.Field("lagoon", min_length=1)
    lagoon_instance: str = pd.Field("amazeeio", min_length=1)
    destination_openshift: Optional[str] = None
    migrate_script: str = pd.Field("./migrate-between-clusters.sh", min_length=1)

    project_list: Optional[Path] = None

    # Executor Settings
    poll_interval: float = pd.Field(0.1, gt=0)  # in seconds

    # Logging Settings
    log_to_stderr: bool = False
    width: Optional[int] = pd.Field(None, ge=1)

    _logging_console: Optional[Console] = pd.PrivateAttr(None)

    @pd.field_validator("source_context", "destination_context", "context", "destination_openshift")
    @classmethod
    def validate_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("value cannot be blank")
        return v

    @pd.field_validator("project_list")
    @classmethod
    def validate_project_list(cls, v: Optional[Path]) -> Optional[Path]:
        if v is not None and not v.is_file():
            raise ValueError(f"project list {v} is not a readable file")
        return v

    @property
    def logging_console(self) -> Console:
        if self._logging_console is None:
            self._logging_console = Console(file=sys.stderr if self.log_to_stderr else sys.stdout, width=self.width)
        return self._logging_console

    @property
    def kubectl_base(self) -> list[str]:
        """kubectl invocation shared by every query and command."""
        cmd = [self.kubectl]
        if self.kubeconfig is not None:
            cmd += ["--kubeconfig", self.kubeconfig]
        return cmd

    def check_contexts(self, *contexts: Optional[str]) -> None:
        """Make sure the requested contexts exist in the kubeconfig.

        If the kubeconfig cannot be read at all the check is skipped; kubectl will report that itself.
        """
        requested = [context for context in contexts if context is not None]
        if not requested:
            return

        try:
            available, _ = config.list_kube_config_contexts(config_file=self.kubeconfig)
        except (ConfigException, OSError):
            logger.debug("Could not read kubeconfig, skipping context check", exc_info=True)
            return

        names = {context["name"] for context in available or []}
        for context in requested:
            if context not in names:
                raise ArgumentError(f"context {context!r} not found in kubeconfig (available: {', '.join(sorted(names))})")

    @staticmethod
    def set_config(config: Config) -> None:
        global _config

        _config = config
        logging.basicConfig(
            level="NOTSET",
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=config.logging_console)],
            force=True,
        )
        logging.getLogger("").setLevel(logging.CRITICAL)
        logger.setLevel(logging.DEBUG if config.verbose else logging.CRITICAL if config.quiet else logging.INFO)

    @staticmethod
    def get_config() -> Optional[Config]:
        return _config


# NOTE: This class is just a proxy for _config.
# Import settings from this module and use it like it is just a config object.
class _Settings:
    def __getattr__(self, name: str):
        if _config is None:
            raise AttributeError("Config is not set")

        return getattr(_config, name)


_config: Optional[Config] = None
settings: Config = _Settings()  # type: ignore
