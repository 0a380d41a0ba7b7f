"""
Global pytest configuration for appwrap tests.

Provides a staged sample workspace (reads plus a BWA reference index) and
test doubles for the sleeper, the probe and the command runner so no test
waits on the wall clock or needs a container engine.
"""

from pathlib import Path
from types import SimpleNamespace

import pytest

from appwrap.core.tool_spec import load_tool


class RecordingSleeper:
    """Sleeper that records requested delays instead of sleeping."""

    def __init__(self, on_sleep=None):
        self.calls = []
        self.on_sleep = on_sleep

    def __call__(self, seconds):
        self.calls.append(seconds)
        if self.on_sleep:
            self.on_sleep(len(self.calls))


class RecordingRunner:
    """Stand-in for subprocess.run returning a fixed exit code."""

    def __init__(self, returncode=0):
        self.returncode = returncode
        self.calls = []

    def __call__(self, args, **kwargs):
        self.calls.append((args, kwargs))
        return SimpleNamespace(returncode=self.returncode)


@pytest.fixture
def sleeper():
    return RecordingSleeper()


@pytest.fixture
def runner():
    return RecordingRunner()


@pytest.fixture
def bwa_tool():
    return load_tool('bwa-mem')


@pytest.fixture
def workspace(tmp_path):
    """
    Sample inputs laid out like a staged job:

        reads/sample_1.fq, reads/sample_2.fq
        refs/hg19/hg19.fa.{bwt,pac,sa}
        out/
    """
    reads = tmp_path / 'reads'
    reads.mkdir()
    (reads / 'sample_1.fq').write_text('@r1\nACGT\n+\nIIII\n')
    (reads / 'sample_2.fq').write_text('@r1\nTGCA\n+\nIIII\n')

    ref = tmp_path / 'refs' / 'hg19'
    ref.mkdir(parents=True)
    for suffix in ('bwt', 'pac', 'sa'):
        (ref / f'hg19.fa.{suffix}').write_text('index')

    out = tmp_path / 'out'
    out.mkdir()
    return SimpleNamespace(
        root=Path(tmp_path),
        input=str(reads / 'sample_1.fq'),
        pair=str(reads / 'sample_2.fq'),
        reference=str(ref),
        output=str(out / 'aligned.sam'),
    )
