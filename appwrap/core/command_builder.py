"""
Command Builder for appwrap

One backend per concrete ExecutionStrategy. Each backend contributes the
prefix that launches the tool (local binary, module, container engine) and
the tool's own argument grammar is appended to it. Building is a pure
function of its arguments: nothing is read from the environment here.
"""

import shlex
from typing import Dict, List, Mapping, Optional, Tuple

from .errors import ToolConfigError, UnsupportedStrategy
from .models import Invocation, MountSpec, OutputTarget
from .strategy import ExecutionStrategy
from .tool_spec import ToolSpec


class Backend:
    """Base class: run the tool command as found on PATH."""

    shell: Tuple[str, ...] = ('/bin/sh', '-c')

    def prefix(self, strategy: ExecutionStrategy, tool: ToolSpec, mounts: MountSpec) -> List[str]:
        return list(tool.command)

    def preamble(self, strategy: ExecutionStrategy, tool: ToolSpec) -> Tuple[str, ...]:
        return ()


class EnvironmentBackend(Backend):
    pass


class PackageBackend(Backend):
    """Run the binary shipped with the app (or centrally installed)."""

    def prefix(self, strategy, tool, mounts):
        package = tool.packages.get(strategy)
        if package is None:
            raise ToolConfigError(f'No package configured for {tool.name} ({strategy})')
        return [package.binary] + list(tool.command[1:])


class ModuleBackend(Backend):
    """Load an environment module, then run the tool from PATH."""

    shell = ('/bin/bash', '-l', '-c')

    def preamble(self, strategy, tool):
        return (shlex.join(['module', 'load', tool.module]),)


class SingularityBackend(Backend):
    def prefix(self, strategy, tool, mounts):
        args = ['singularity', 'run']
        for host_dir, container_dir in mounts.bindings:
            args.extend(['-B', f'{host_dir}:{container_dir}'])
        args.append(tool.images[strategy])
        return args + list(tool.command)


class DockerBackend(Backend):
    def prefix(self, strategy, tool, mounts):
        args = ['docker', 'run', '--rm']
        for host_dir, container_dir in mounts.bindings:
            args.extend(['-v', f'{host_dir}:{container_dir}'])
        args.append(tool.images[strategy])
        return args + list(tool.command)


BACKENDS: Dict[ExecutionStrategy, Backend] = {
    ExecutionStrategy.PACKAGE: PackageBackend(),
    ExecutionStrategy.SHARED_PACKAGE: PackageBackend(),
    ExecutionStrategy.ENVIRONMENT: EnvironmentBackend(),
    ExecutionStrategy.MODULE: ModuleBackend(),
    ExecutionStrategy.SINGULARITY: SingularityBackend(),
    ExecutionStrategy.SHARED_SINGULARITY: SingularityBackend(),
    ExecutionStrategy.DOCKER: DockerBackend(),
}


def tool_arguments(
    tool: ToolSpec, rewritten_paths: Mapping[str, str], parameters: Mapping[str, Optional[str]]
) -> List[str]:
    """
    Populate the tool's argument grammar.

    Items whose input or parameter has no value are dropped together with
    their option flag.
    """
    args: List[str] = []
    for item in tool.arguments:
        if item.input is not None:
            value = rewritten_paths.get(item.input)
        elif item.parameter is not None:
            value = parameters.get(item.parameter)
        else:
            value = item.literal

        if item.input is not None or item.parameter is not None:
            if value is None or value == '':
                continue
        if item.option:
            args.append(item.option)
        if value is not None:
            args.append(str(value))
    return args


def build(
    strategy: ExecutionStrategy,
    tool: ToolSpec,
    rewritten_paths: Mapping[str, str],
    parameters: Mapping[str, Optional[str]],
    output: OutputTarget,
    mounts: Optional[MountSpec] = None,
) -> Invocation:
    """
    Assemble the Invocation for one backend.

    Args:
        strategy: Effective execution strategy (never AUTO)
        tool: Bound tool definition (images and packages already concrete)
        rewritten_paths: Input name -> path as seen by the tool
        parameters: Parameter name -> value
        output: Host stdout/stderr redirection targets
        mounts: Bindings for container strategies

    Returns:
        Invocation with argv, redirections and shell

    Raises:
        UnsupportedStrategy: If strategy has no backend (e.g. AUTO)
    """
    backend = BACKENDS.get(strategy)
    if backend is None:
        raise UnsupportedStrategy(f'No command backend for execution method {strategy}')
    mounts = mounts or MountSpec()

    argv = backend.prefix(strategy, tool, mounts) + tool_arguments(tool, rewritten_paths, parameters)
    return Invocation(
        argv=tuple(argv),
        stdout=output.stdout,
        stderr=output.stderr,
        preamble=backend.preamble(strategy, tool),
        shell=backend.shell,
        mounts=mounts,
    )
