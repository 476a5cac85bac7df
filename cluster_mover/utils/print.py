import builtins

from cluster_mover.core.models.config import settings


def print(*objects, rich: bool = True, force: bool = False, **kwargs) -> None:
    """
    A wrapper around `rich.print` that prints only if `settings.quiet` is False.
    """
    print_func = settings.logging_console.print if rich else builtins.print

    if not settings.quiet or force:
        print_func(*objects, **kwargs)  # type: ignore


__all__ = ["print"]
