import logging
import subprocess
from typing import Callable, Optional, Sequence

from cluster_mover.core.cancellation import CancellationToken
from cluster_mover.core.exceptions import ExecutionError, OperatorInterrupt
from cluster_mover.core.models.config import settings
from cluster_mover.core.models.objects import PlannedCommand
from cluster_mover.utils.print import print

logger = logging.getLogger("cluster_mover")

CONFIRMATION = "y"
PROMPT = "press 'y' to continue or ^C to exit: "

# what a shell reports when the binary does not exist, or exists but cannot be run
COMMAND_NOT_FOUND = 127
COMMAND_NOT_EXECUTABLE = 126


def _read_line() -> str:
    return settings.logging_console.input(PROMPT, markup=False)


class CommandExecutor:
    """Shows a batch of commands, waits for the operator to confirm it, then runs it in order.

    The first failing command aborts the batch with an `ExecutionError`. The cancellation token is
    checked before each command is started and while waiting for it to finish.
    """

    def __init__(
        self,
        token: Optional[CancellationToken] = None,
        read_line: Optional[Callable[[], str]] = None,
        poll_interval: Optional[float] = None,
    ) -> None:
        self.token = token or CancellationToken()
        self._read_line = read_line or _read_line
        self._poll_interval = poll_interval if poll_interval is not None else settings.poll_interval

    def run(self, commands: Sequence[PlannedCommand], skip_if_empty: bool = False) -> None:
        if not commands and skip_if_empty:
            print("nothing to do", force=True)
            return

        print("run commands?", force=True)
        for command in commands:
            print(str(command), force=True, markup=False, highlight=False, soft_wrap=True)

        self.confirm()

        for command in commands:
            self.token.raise_if_cancelled()
            print(f"\n$ {command}", force=True, markup=False, highlight=False, soft_wrap=True)
            self.execute(command)

    def confirm(self) -> None:
        """Block until the operator types the confirmation token. Anything else prompts again."""
        while True:
            self.token.raise_if_cancelled()
            try:
                answer = self._read_line()
            except KeyboardInterrupt:
                self.token.cancel()
            except EOFError:
                self.token.cancel("end of input while waiting for confirmation")
            else:
                if answer.rstrip("\r\n") == CONFIRMATION:
                    return

    def execute(self, command: PlannedCommand) -> None:
        logger.debug(f"Starting {command.argv}")
        try:
            process = subprocess.Popen(command.argv)
        except PermissionError as e:
            logger.error(f"Could not run {command.argv[0]}: {e}")
            raise ExecutionError(command.argv, COMMAND_NOT_EXECUTABLE) from e
        except OSError as e:
            logger.error(f"Could not start {command.argv[0]}: {e}")
            raise ExecutionError(command.argv, COMMAND_NOT_FOUND) from e

        returncode = self._wait(process)
        if returncode != 0:
            # negative codes mean the child was killed by a signal
            raise ExecutionError(command.argv, returncode if returncode > 0 else 128 - returncode)

    def _wait(self, process: subprocess.Popen) -> int:
        while True:
            try:
                return process.wait(timeout=self._poll_interval)
            except subprocess.TimeoutExpired:
                pass
            except KeyboardInterrupt:
                self.token.cancel()

            if self.token.cancelled:
                self._stop(process)
                raise OperatorInterrupt(self.token.reason or "interrupted by operator")

    @staticmethod
    def _stop(process: subprocess.Popen) -> None:
        logger.debug(f"Terminating {process.args}")
        process.terminate()
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
