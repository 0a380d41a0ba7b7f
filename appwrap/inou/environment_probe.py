"""
Environment Probe for appwrap

Detects which backends are usable on this host: container engines and the
native tool on PATH, the environment module system, and bundled image or
package files. Probing only looks; it never starts a container or loads a
module.
"""

import logging
import os
import shutil
from typing import Callable, Dict, Mapping, Optional

from appwrap.core.strategy import ENGINE_FOR_STRATEGY, ExecutionStrategy, ProbeResult
from appwrap.core.tool_spec import ToolSpec

logger = logging.getLogger(__name__)

MODULE_RUNTIME = 'module'
MODULE_ENV_VARS = ('MODULESHOME', 'LMOD_CMD')


class EnvironmentProbe:
    """Lightweight presence checks for the backends a tool declares."""

    def __init__(
        self,
        which: Callable[[str], Optional[str]] = shutil.which,
        exists: Callable[[str], bool] = os.path.isfile,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.which = which
        self.exists = exists
        self.environ = os.environ if environ is None else environ

    def has_executable(self, name: str) -> bool:
        return self.which(name) is not None

    def has_module_system(self) -> bool:
        if any(self.environ.get(var) for var in MODULE_ENV_VARS):
            return True
        return self.has_executable('modulecmd')

    def runtime_available(self, name: str) -> bool:
        if name == MODULE_RUNTIME:
            return self.has_module_system()
        return self.has_executable(name)

    def probe(self, tool: ToolSpec) -> ProbeResult:
        """
        Gather the facts needed to select a strategy for tool.

        Args:
            tool: Bound tool definition (rule and package paths concrete)

        Returns:
            ProbeResult with one entry per runtime and file of interest
        """
        runtime_names = []
        file_paths = []

        def want_runtime(name: str) -> None:
            if name and name not in runtime_names:
                runtime_names.append(name)

        def want_file(path: str) -> None:
            if path and path not in file_paths:
                file_paths.append(path)

        for rule in tool.auto_rules:
            want_runtime(rule.runtime)
            want_file(rule.file)
        for method in tool.exec_methods:
            if method in ENGINE_FOR_STRATEGY:
                want_runtime(ENGINE_FOR_STRATEGY[method])
            elif method is ExecutionStrategy.ENVIRONMENT:
                want_runtime(tool.executable)
            elif method is ExecutionStrategy.MODULE:
                want_runtime(MODULE_RUNTIME)
            if method in tool.packages:
                want_file(tool.packages[method].binary)

        runtimes: Dict[str, bool] = {name: self.runtime_available(name) for name in runtime_names}
        files: Dict[str, bool] = {path: bool(self.exists(path)) for path in file_paths}

        for name, found in runtimes.items():
            logger.debug('runtime %s: %s', name, 'yes' if found else 'no')
        for path, found in files.items():
            logger.debug('file %s: %s', path, 'yes' if found else 'no')
        return ProbeResult(runtimes=runtimes, files=files)
