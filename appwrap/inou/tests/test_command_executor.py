"""
Tests for CommandExecutor and ExitReporter.
"""

import logging

import pytest

from appwrap.conftest import RecordingRunner
from appwrap.core.errors import BackendExecutionFailure
from appwrap.core.models import Invocation
from appwrap.inou.executor import CommandExecutor, ExitReporter

INVOCATION = Invocation(
    argv=('bwa', 'mem', '/data1/hg19/hg19.fa', '/data2/s_1.fq'), stdout='/out/a.sam', stderr='log.stderr'
)


class TestCommandExecutor:
    def test_success(self, runner, caplog):
        with caplog.at_level(logging.INFO):
            assert CommandExecutor(runner=runner, cwd='/work').run(INVOCATION) == 0

        args, kwargs = runner.calls[0]
        assert args == ['/bin/sh', '-c', 'bwa mem /data1/hg19/hg19.fa /data2/s_1.fq > /out/a.sam 2> log.stderr']
        assert kwargs == {'cwd': '/work', 'check': False}
        assert 'CMD=bwa mem' in caplog.text

    def test_module_invocation_uses_login_shell(self, runner):
        inv = Invocation(
            argv=('bwa', 'mem'), stdout='o', stderr='e', preamble=('module load bwa',), shell=('/bin/bash', '-l', '-c')
        )
        CommandExecutor(runner=runner).run(inv)
        assert runner.calls[0][0] == ['/bin/bash', '-l', '-c', 'module load bwa && bwa mem > o 2> e']

    @pytest.mark.parametrize('code', [1, 2, 137])
    def test_failure_carries_exit_code(self, code, caplog):
        runner = RecordingRunner(returncode=code)

        with pytest.raises(BackendExecutionFailure) as exc:
            CommandExecutor(runner=runner).run(INVOCATION)

        assert exc.value.exit_code == code
        assert exc.value.command == INVOCATION.command_line
        assert f"Error when executing command '{INVOCATION.command_line}'" in caplog.text
        assert len(runner.calls) == 1


class TestExitReporter:
    def test_reports_once(self):
        lines = []
        reporter = ExitReporter(emit=lines.append)

        assert reporter.report(3) == 3
        assert reporter.report(0) == 3

        assert lines == ['Exit code: 3']

    def test_default_emit_logs(self, caplog):
        with caplog.at_level(logging.INFO):
            ExitReporter().report(0)
        assert 'Exit code: 0' in caplog.text
