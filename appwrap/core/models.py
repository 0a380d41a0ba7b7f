"""
Immutable records passed between the stages of one wrapped invocation.

StagedInput -> ReferenceBundle -> MountSpec -> Invocation. No stage keeps
process-wide state; each one returns a new record for the next.
"""

import posixpath
import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from .errors import InputNotStaged


class InputKind(str, Enum):
    FILE = 'file'
    DIRECTORY = 'directory'


@dataclass(frozen=True)
class StagedInput:
    """A caller supplied path after staging and symlink resolution."""

    requested_path: str
    resolved_dir: str
    resolved_name: str
    kind: InputKind
    staged: bool = True

    @property
    def host_path(self) -> str:
        return posixpath.join(self.resolved_dir, self.resolved_name)

    def ensure_staged(self) -> 'StagedInput':
        if not self.staged:
            raise InputNotStaged(f'Input not staged: {self.requested_path}')
        return self


@dataclass(frozen=True)
class ReferenceBundle:
    """
    A directory input holding a multi-file index.

    The tool addresses the index by a prefix (e.g. ``hg19.fa`` for
    ``hg19.fa.bwt``), so the usable path is ``<dir>/<name>/<prefix>``.
    """

    staged: StagedInput
    index_prefix: str

    @property
    def host_path(self) -> str:
        return posixpath.join(self.staged.host_path, self.index_prefix)

    def ensure_staged(self) -> 'ReferenceBundle':
        self.staged.ensure_staged()
        return self


@dataclass(frozen=True)
class MountSpec:
    """Ordered host -> container bindings and the path rewrites they imply."""

    bindings: Tuple[Tuple[str, str], ...] = ()
    rewrites: Tuple[Tuple[str, str], ...] = ()

    def container_path(self, host_path: str) -> Optional[str]:
        for host, container in self.rewrites:
            if host == host_path:
                return container
        return None

    def as_dict(self) -> Dict[str, str]:
        return dict(self.bindings)


@dataclass(frozen=True)
class OutputTarget:
    stdout: str
    stderr: str


@dataclass(frozen=True)
class Invocation:
    """
    A fully built command, ready to be executed exactly once.

    Attributes:
        argv: Backend prefix followed by the tool arguments
        stdout: Host path receiving standard output
        stderr: Host path receiving standard error
        preamble: Shell steps run before argv (e.g. loading a module)
        shell: Interpreter used to run the rendered command line
        mounts: Bindings the container backend was built with
    """

    argv: Tuple[str, ...]
    stdout: str
    stderr: str
    preamble: Tuple[str, ...] = ()
    shell: Tuple[str, ...] = ('/bin/sh', '-c')
    mounts: MountSpec = field(default_factory=MountSpec)

    @property
    def command_line(self) -> str:
        cmd = f'{shlex.join(self.argv)} > {shlex.quote(self.stdout)} 2> {shlex.quote(self.stderr)}'
        if self.preamble:
            return ' && '.join(list(self.preamble) + [cmd])
        return cmd

    def shell_argv(self) -> Tuple[str, ...]:
        return self.shell + (self.command_line,)
