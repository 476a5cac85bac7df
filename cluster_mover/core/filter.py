from typing import Iterable

from cluster_mover.core.models.objects import NAMESPACE_PREFIX, PrefixStyle


def namespace_pattern(project: str, prefix_style: PrefixStyle) -> str:
    pattern = f"{NAMESPACE_PREFIX}{project}"
    if prefix_style is PrefixStyle.DASH_SUFFIX:
        pattern += "-"
    return pattern


def filter_namespaces(namespaces: Iterable[str], project: str, prefix_style: PrefixStyle) -> list[str]:
    """Select the namespaces belonging to a project, keeping the order they were listed in.

    `namespaces` are names as printed by `kubectl get ns -o name`. The project name is matched
    literally, never as a regular expression.
    """
    pattern = namespace_pattern(project, prefix_style)
    return [ns for ns in namespaces if ns.startswith(pattern)]
