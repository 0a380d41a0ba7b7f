"""
Input staging for appwrap

Inputs are often copied in by a workflow engine while the wrapper is already
running, so every path is polled for a bounded number of attempts before it
is used. Resolution follows symlinks and splits the path into directory and
base name for later mount translation.
"""

import logging
import os
import time
from typing import Callable, Optional

from appwrap.core.errors import InputNotStaged, InvalidReferenceBundle, MissingArgument
from appwrap.core.models import InputKind, OutputTarget, ReferenceBundle, StagedInput

logger = logging.getLogger(__name__)


def _exists_as(path: str, kind: InputKind) -> bool:
    if kind is InputKind.DIRECTORY:
        return os.path.isdir(path)
    return os.path.isfile(path)


def _split_resolved(path: str):
    full = os.path.realpath(path)
    return os.path.dirname(full), os.path.basename(full)


class Stager:
    """
    Polls for inputs and resolves them into StagedInput records.

    The sleeper is injectable so tests can simulate delayed staging without
    waiting on the wall clock.
    """

    def __init__(self, sleeper: Callable[[float], None] = time.sleep, exists: Optional[Callable] = None):
        self.sleeper = sleeper
        self.exists = exists or _exists_as

    def poll(self, path: str, kind: InputKind, max_wait_seconds: float, poll_interval_seconds: float) -> StagedInput:
        """
        Wait for path to exist as kind.

        Returns:
            StagedInput whose ``staged`` flag tells whether the path appeared
        """
        assert poll_interval_seconds > 0, 'poll_interval_seconds must be positive'
        attempts = int(max_wait_seconds / poll_interval_seconds)

        count = 0
        while not self.exists(path, kind):
            if count >= attempts:
                break
            logger.info('%s not staged, waiting...', path)
            self.sleeper(poll_interval_seconds)
            count += 1

        if not self.exists(path, kind):
            return StagedInput(
                requested_path=path,
                resolved_dir=os.path.dirname(os.path.abspath(path)),
                resolved_name=os.path.basename(path),
                kind=kind,
                staged=False,
            )

        resolved_dir, resolved_name = _split_resolved(path)
        return StagedInput(
            requested_path=path, resolved_dir=resolved_dir, resolved_name=resolved_name, kind=kind, staged=True
        )

    def resolve(
        self,
        path: Optional[str],
        kind: InputKind,
        max_wait_seconds: float = 10,
        poll_interval_seconds: float = 1,
        label: Optional[str] = None,
    ) -> StagedInput:
        """
        Stage and resolve one input.

        Args:
            path: Path as given by the caller (absolute or relative)
            kind: Whether a plain file or a directory is expected
            max_wait_seconds: Total staging budget
            poll_interval_seconds: Sleep between existence checks
            label: Human readable name used in error messages

        Returns:
            A staged StagedInput

        Raises:
            MissingArgument: If path is empty
            InputNotStaged: If the path never appeared within the budget
        """
        label = label or 'Input'
        if not path:
            raise MissingArgument(f'{label} required')

        staged = self.poll(path, kind, max_wait_seconds, poll_interval_seconds)
        if not staged.staged:
            raise InputNotStaged(f'{label} not found: {path}')
        return staged

    def resolve_bundle(
        self,
        path: Optional[str],
        index_suffix: str,
        max_wait_seconds: float = 10,
        poll_interval_seconds: float = 1,
        label: Optional[str] = None,
    ) -> ReferenceBundle:
        staged = self.resolve(path, InputKind.DIRECTORY, max_wait_seconds, poll_interval_seconds, label)
        return reference_bundle(staged, index_suffix, label)


def reference_bundle(staged: StagedInput, index_suffix: str, label: Optional[str] = None) -> ReferenceBundle:
    """
    Derive the index prefix of a staged reference directory.

    The directory must hold exactly one file ending in index_suffix; its
    last extension is stripped to form the prefix (``hg19.fa.bwt`` gives
    ``hg19.fa``).

    Raises:
        InvalidReferenceBundle: On zero or several marker files
    """
    label = label or 'reference index'
    directory = staged.host_path
    matches = sorted(
        name
        for name in os.listdir(directory)
        if name.endswith(index_suffix) and os.path.isfile(os.path.join(directory, name))
    )
    if len(matches) != 1:
        found = ', '.join(matches) if matches else 'none'
        raise InvalidReferenceBundle(
            f'Invalid {label}: expected exactly one *{index_suffix} file in {directory}, found {found}'
        )

    prefix, _ = os.path.splitext(matches[0])
    logger.debug('%s index prefix: %s', label, prefix)
    return ReferenceBundle(staged=staged, index_prefix=prefix)


def resolve_output(path: Optional[str], stderr_log: str, label: Optional[str] = None) -> OutputTarget:
    """Resolve the stdout target; it does not need to exist yet."""
    if not path:
        raise MissingArgument(f'{label or "Output"} required')
    return OutputTarget(stdout=os.path.realpath(path), stderr=stderr_log)
