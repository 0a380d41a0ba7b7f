"""
AppWrapper - single invocation pipeline for appwrap

Ties the stages together in a fixed order:

    validate -> stage inputs -> select strategy -> translate paths
             -> build command -> execute and report

Each stage hands an immutable record to the next; the wrapper itself keeps
no state between invocations.

Example usage:
    tool = load_tool('bwa-mem')
    wrapper = AppWrapper(tool)
    request = WrapRequest(
        values={'input': 'reads.fq', 'reference': 'hg19', 'threads': '4'},
        output='out.sam',
        exec_method='auto',
    )
    exit_code = wrapper.run(request)
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from appwrap.core import command_builder
from appwrap.core.errors import BackendExecutionFailure, MissingArgument
from appwrap.core.models import Invocation, ReferenceBundle, StagedInput
from appwrap.core.mounts import translate
from appwrap.core.report import build_report, write_report
from appwrap.core.strategy import ExecutionStrategy, ProbeResult, select_strategy
from appwrap.core.tool_spec import InputSpec, ToolSpec
from appwrap.inou.environment_probe import EnvironmentProbe
from appwrap.inou.executor import CommandExecutor
from appwrap.inou.package import prepare_package
from appwrap.inou.stager import Stager, resolve_output

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WrapRequest:
    """Raw caller values for one invocation, before any validation."""

    values: Dict[str, Optional[str]] = field(default_factory=dict)
    output: Optional[str] = None
    exec_method: Optional[str] = None
    app_dir: Optional[str] = None


@dataclass(frozen=True)
class PreparedRun:
    tool: ToolSpec
    requested: ExecutionStrategy
    strategy: ExecutionStrategy
    probe: ProbeResult
    inputs: Dict[str, Optional[Union[StagedInput, ReferenceBundle]]]
    rewritten_paths: Dict[str, str]
    parameters: Dict[str, Optional[str]]
    invocation: Invocation


class AppWrapper:
    """Resolve, build and run one tool invocation."""

    def __init__(
        self,
        tool: ToolSpec,
        stager: Optional[Stager] = None,
        probe: Optional[EnvironmentProbe] = None,
        executor: Optional[CommandExecutor] = None,
    ):
        self.tool = tool
        self.stager = stager or Stager()
        self.environment_probe = probe or EnvironmentProbe()
        self.executor = executor or CommandExecutor()

    def _check_required(self, request: WrapRequest) -> None:
        for spec in self.tool.inputs:
            if spec.required and not request.values.get(spec.name):
                raise MissingArgument(f'{spec.label} required')
        for spec in self.tool.parameters:
            if spec.required and not request.values.get(spec.name) and spec.default is None:
                raise MissingArgument(f'{spec.label} required')
        if not request.output:
            raise MissingArgument(f'{self.tool.output.label} required')

    def _stage(self, spec: InputSpec, path: Optional[str]) -> Optional[Union[StagedInput, ReferenceBundle]]:
        if not path:
            return None
        staging = self.tool.staging
        if spec.index_suffix:
            return self.stager.resolve_bundle(
                path, spec.index_suffix, staging.max_wait_seconds, staging.poll_interval_seconds, spec.label
            )
        return self.stager.resolve(path, spec.kind, staging.max_wait_seconds, staging.poll_interval_seconds, spec.label)

    def prepare(self, request: WrapRequest) -> PreparedRun:
        """
        Run every stage up to and including command building.

        Raises:
            WrapperError: Any validation, staging, selection or translation failure
        """
        self._check_required(request)

        staged = {spec.name: self._stage(spec, request.values.get(spec.name)) for spec in self.tool.inputs}
        parameters = {
            spec.name: request.values.get(spec.name) or spec.default for spec in self.tool.parameters
        }
        output = resolve_output(request.output, self.tool.stderr_log, self.tool.output.label)

        requested = ExecutionStrategy.parse(request.exec_method or self.tool.default_exec_method.value)
        tool = self.tool.bind(request.app_dir or self.tool.default_app_dir())
        probe = self.environment_probe.probe(tool)
        strategy = select_strategy(requested, probe, tool.exec_methods, tool.auto_rules)
        if requested is ExecutionStrategy.AUTO:
            logger.info('Detected Execution Method: %s', strategy)

        ordered = {name: staged[name] for name in tool.input_order()}
        mounts, rewritten = translate(strategy, ordered, tool.mount_prefix)
        invocation = command_builder.build(strategy, tool, rewritten, parameters, output, mounts)

        return PreparedRun(
            tool=tool,
            requested=requested,
            strategy=strategy,
            probe=probe,
            inputs=ordered,
            rewritten_paths=rewritten,
            parameters=parameters,
            invocation=invocation,
        )

    def execute(self, prepared: PreparedRun) -> int:
        package = prepared.tool.packages.get(prepared.strategy)
        if package is not None:
            prepare_package(package)
        return self.executor.run(prepared.invocation)

    def run(self, request: WrapRequest, dry_run: bool = False, report_path: Optional[str] = None) -> int:
        """
        Prepare and execute request.

        Args:
            request: Raw caller values
            dry_run: Only build and print the command
            report_path: Optional YAML file receiving a run report

        Returns:
            Exit code (0 on success)

        Raises:
            WrapperError: On any failure; BackendExecutionFailure carries the tool's exit code
        """
        prepared = self.prepare(request)

        if dry_run:
            print(prepared.invocation.command_line)
            if report_path:
                write_report(report_path, build_report(prepared))
            return 0

        try:
            exit_code = self.execute(prepared)
        except BackendExecutionFailure as e:
            if report_path:
                write_report(report_path, build_report(prepared, exit_code=e.exit_code, error=str(e)))
            raise

        if report_path:
            write_report(report_path, build_report(prepared, exit_code=exit_code))
        return exit_code
