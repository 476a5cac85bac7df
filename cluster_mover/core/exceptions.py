from typing import Sequence


class MoverError(Exception):
    """Base class for every error that ends a cluster-mover run."""

    exit_code: int = 1


class ArgumentError(MoverError):
    exit_code = 1


class QueryError(MoverError):
    """An inventory query against the cluster failed.

    Carries both captured streams so they can be shown to the operator.
    """

    exit_code = 2

    def __init__(self, argv: Sequence[str], message: str, stdout: str = "", stderr: str = "") -> None:
        self.argv = tuple(argv)
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(f"{' '.join(self.argv)}: {message}")


class ExecutionError(MoverError):
    """A planned command exited with a non-zero status."""

    def __init__(self, argv: Sequence[str], returncode: int) -> None:
        self.argv = tuple(argv)
        self.exit_code = returncode
        super().__init__(f"command failed with exit code {returncode}: {' '.join(self.argv)}")


class OperatorInterrupt(MoverError):
    exit_code = 130

    def __init__(self, message: str = "interrupted by operator") -> None:
        super().__init__(message)
