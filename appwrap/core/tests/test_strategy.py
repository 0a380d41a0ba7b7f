"""
Tests for ExecutionStrategy parsing and select_strategy.
"""

import itertools

import pytest

from appwrap.core.errors import NoStrategyAvailable, UnsupportedStrategy
from appwrap.core.strategy import AutoRule, ExecutionStrategy, ProbeResult, select_strategy

S = ExecutionStrategy

BWA_ALLOW = (S.SINGULARITY, S.SHARED_SINGULARITY, S.DOCKER, S.ENVIRONMENT, S.AUTO)
BWA_RULES = (
    AutoRule(S.SINGULARITY, runtime='singularity', file='/app/bwa.simg'),
    AutoRule(S.SHARED_SINGULARITY, runtime='singularity', file='/apps/shared/bwa.simg'),
    AutoRule(S.DOCKER, runtime='docker'),
    AutoRule(S.ENVIRONMENT, runtime='bwa'),
)


def make_probe(singularity=False, docker=False, bwa=False, local_image=False, shared_image=False):
    return ProbeResult(
        runtimes={'singularity': singularity, 'docker': docker, 'bwa': bwa},
        files={'/app/bwa.simg': local_image, '/apps/shared/bwa.simg': shared_image},
    )


class TestParse:
    def test_canonical_names(self):
        assert ExecutionStrategy.parse('docker') is S.DOCKER
        assert ExecutionStrategy.parse('cdc-shared-singularity') is S.SHARED_SINGULARITY
        assert ExecutionStrategy.parse(' AUTO ') is S.AUTO

    def test_generic_aliases(self):
        assert ExecutionStrategy.parse('native') is S.ENVIRONMENT
        assert ExecutionStrategy.parse('container-local') is S.SINGULARITY
        assert ExecutionStrategy.parse('container-shared') is S.SHARED_SINGULARITY
        assert ExecutionStrategy.parse('shared-package') is S.SHARED_PACKAGE

    def test_cdc_names(self):
        assert ExecutionStrategy.parse('cdc-module') is S.MODULE
        assert ExecutionStrategy.parse('cdc-package') is S.SHARED_PACKAGE
        assert ExecutionStrategy.parse('cdc-singularity') is S.SHARED_SINGULARITY

    def test_unknown_name(self):
        with pytest.raises(UnsupportedStrategy, match='Invalid execution method: podman'):
            ExecutionStrategy.parse('podman')

    def test_container_family(self):
        assert S.DOCKER.is_container
        assert S.SINGULARITY.is_container
        assert not S.ENVIRONMENT.is_container
        assert not S.MODULE.is_container
        assert not S.PACKAGE.is_container


class TestSelectExplicit:
    def test_explicit_allowed_is_returned_unchanged(self):
        assert select_strategy(S.DOCKER, make_probe(), BWA_ALLOW, BWA_RULES) is S.DOCKER

    def test_explicit_not_allowed_fails(self):
        with pytest.raises(UnsupportedStrategy) as exc:
            select_strategy(S.MODULE, make_probe(), BWA_ALLOW, BWA_RULES)
        assert exc.value.show_usage
        assert exc.value.exit_code == 1

    def test_auto_not_allowed_fails(self):
        with pytest.raises(UnsupportedStrategy):
            select_strategy(S.AUTO, make_probe(docker=True), (S.DOCKER,), BWA_RULES)


class TestSelectAuto:
    def test_bundled_image_wins(self):
        probe = make_probe(singularity=True, docker=True, bwa=True, local_image=True, shared_image=True)
        assert select_strategy(S.AUTO, probe, BWA_ALLOW, BWA_RULES) is S.SINGULARITY

    def test_shared_image_when_no_bundled_image(self):
        probe = make_probe(singularity=True, docker=True, shared_image=True)
        assert select_strategy(S.AUTO, probe, BWA_ALLOW, BWA_RULES) is S.SHARED_SINGULARITY

    def test_image_without_engine_is_skipped(self):
        probe = make_probe(docker=True, local_image=True, shared_image=True)
        assert select_strategy(S.AUTO, probe, BWA_ALLOW, BWA_RULES) is S.DOCKER

    def test_binary_on_path_is_last_resort(self):
        probe = make_probe(bwa=True)
        assert select_strategy(S.AUTO, probe, BWA_ALLOW, BWA_RULES) is S.ENVIRONMENT

    def test_nothing_available(self):
        with pytest.raises(NoStrategyAvailable, match='Valid execution method not detected'):
            select_strategy(S.AUTO, make_probe(), BWA_ALLOW, BWA_RULES)

    def test_rule_outside_allow_list_is_ignored(self):
        allow = (S.ENVIRONMENT, S.AUTO)
        probe = make_probe(docker=True, bwa=True)
        assert select_strategy(S.AUTO, probe, allow, BWA_RULES) is S.ENVIRONMENT

    def test_auto_is_deterministic(self):
        probe = make_probe(singularity=True, docker=True, shared_image=True)
        results = {select_strategy(S.AUTO, probe, BWA_ALLOW, BWA_RULES) for _ in range(20)}
        assert results == {S.SHARED_SINGULARITY}


def test_result_always_in_allow_list_or_error():
    """Every combination of request and probe yields an allowed concrete strategy or a defined error."""
    for requested in ExecutionStrategy:
        for flags in itertools.product([False, True], repeat=5):
            probe = make_probe(*flags)
            try:
                chosen = select_strategy(requested, probe, BWA_ALLOW, BWA_RULES)
            except (UnsupportedStrategy, NoStrategyAvailable):
                continue
            assert chosen in BWA_ALLOW
            assert chosen is not S.AUTO
