"""
Executor for appwrap

Runs a built Invocation on the host and reports its exit status. The same
path is used for every backend: container engines, modules and local
binaries are all just a shell command line here. There is no timeout; a
backend that never exits keeps the wrapper waiting.
"""

import logging
import subprocess
from typing import Callable, Optional

from appwrap.core.errors import BackendExecutionFailure
from appwrap.core.models import Invocation

logger = logging.getLogger(__name__)


class CommandExecutor:
    """Execute invocations synchronously through their shell."""

    def __init__(self, runner: Callable = subprocess.run, cwd: Optional[str] = None):
        self.runner = runner
        self.cwd = cwd

    def run(self, invocation: Invocation) -> int:
        """
        Execute invocation and wait for it.

        Args:
            invocation: Built command, redirections included

        Returns:
            0 on success

        Raises:
            BackendExecutionFailure: On a non-zero exit code, carrying it verbatim
        """
        command = invocation.command_line
        logger.info('CMD=%s', command)

        result = self.runner(list(invocation.shell_argv()), cwd=self.cwd, check=False)
        exit_code = result.returncode
        if exit_code != 0:
            logger.error("Error when executing command '%s'", command)
            raise BackendExecutionFailure(command, exit_code)
        return exit_code


class ExitReporter:
    """
    Reports the final exit code of the process exactly once.

    Used from a ``finally`` block so early validation failures are reported
    the same way as backend failures.
    """

    def __init__(self, emit: Optional[Callable[[str], None]] = None):
        self.emit = emit or logger.info
        self.reported: Optional[int] = None

    def report(self, exit_code: int) -> int:
        if self.reported is None:
            self.reported = exit_code
            self.emit(f'Exit code: {exit_code}')
        return self.reported
