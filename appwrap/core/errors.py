"""
Error taxonomy for appwrap

Every failure of a single wrapped invocation is one of these exceptions.
They propagate untouched through the pipeline; only the CLI converts them
into a process exit code.
"""

from typing import Optional


class WrapperError(Exception):
    """Base class for all invocation failures."""

    exit_code = 1
    show_usage = False


class ToolConfigError(WrapperError):
    """A tool definition is missing, unreadable or inconsistent."""

    pass


class MissingArgument(WrapperError):
    """A required input or parameter was not supplied."""

    show_usage = True


class InputNotStaged(WrapperError):
    """An input path did not appear within its staging budget."""

    pass


class InvalidReferenceBundle(WrapperError):
    """A reference directory does not hold exactly one index marker file."""

    pass


class UnsupportedStrategy(WrapperError):
    """The requested execution method is not allowed for the tool."""

    show_usage = True


class NoStrategyAvailable(WrapperError):
    """Auto-detection found no usable execution method on this host."""

    show_usage = True


class MountCollision(WrapperError):
    """Two distinct host paths would map to the same container path."""

    pass


class BackendExecutionFailure(WrapperError):
    """The built command exited with a non-zero status."""

    def __init__(self, command: str, exit_code: int, message: Optional[str] = None):
        super().__init__(message or f"Error when executing command '{command}'")
        self.command = command
        self.exit_code = exit_code
