"""
YAML run reports.

A report records what one invocation resolved to (requested and effective
strategy, probe facts, mounts, the command) and how it ended, so a failed
run can be inspected without re-running it.
"""

from typing import Any, Dict, Optional

from ruamel.yaml import YAML
from ruamel.yaml.scalarstring import LiteralScalarString


def wrap_literals(obj):
    """Recursively wrap multiline strings as LiteralScalarString for nicer YAML output."""
    if isinstance(obj, dict):
        return {k: wrap_literals(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [wrap_literals(elem) for elem in obj]
    elif isinstance(obj, str) and '\n' in obj:
        return LiteralScalarString(obj)
    else:
        return obj


def build_report(prepared, exit_code: Optional[int] = None, error: Optional[str] = None) -> Dict[str, Any]:
    invocation = prepared.invocation
    data: Dict[str, Any] = {
        'tool': prepared.tool.name,
        'version': prepared.tool.version,
        'requested_exec_method': str(prepared.requested),
        'exec_method': str(prepared.strategy),
        'probe': {
            'runtimes': dict(prepared.probe.runtimes),
            'files': dict(prepared.probe.files),
        },
        'inputs': dict(prepared.rewritten_paths),
        'parameters': {k: v for k, v in prepared.parameters.items() if v is not None},
        'mounts': [{'host': host, 'container': container} for host, container in invocation.mounts.bindings],
        'command': invocation.command_line,
        'stdout': invocation.stdout,
        'stderr': invocation.stderr,
    }
    if exit_code is not None:
        data['exit_code'] = exit_code
    if error:
        data['error'] = error
    return data


def write_report(path: str, data: Dict[str, Any]) -> None:
    yaml = YAML()
    yaml.default_flow_style = False
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump(wrap_literals(data), f)
