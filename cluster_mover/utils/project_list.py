import logging
from pathlib import Path
from typing import Union

from cluster_mover.core.exceptions import ArgumentError
from cluster_mover.core.models.objects import Project

logger = logging.getLogger("cluster_mover")


def load_projects(path: Union[str, Path]) -> list[Project]:
    """Read a newline separated list of project names.

    Lines are stripped and blank lines skipped; no other validation is done.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ArgumentError(f"could not read project list {path}: {e}") from e

    projects = [Project(name=line.strip()) for line in text.splitlines() if line.strip()]
    logger.debug(f"Loaded {len(projects)} projects from {path}")
    return projects
