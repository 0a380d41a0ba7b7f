#!/usr/bin/env python3
"""
Command line entry point for appwrap.

Options are generated from the tool definition, so every wrapped tool gets
the same interface:

    appwrap bwa-mem --input reads.fq --reference hg19/ --output out.sam

Exit codes: 0 success, 1 validation or usage failure, 2 malformed options,
3 unknown option; any other code is the wrapped tool's own exit status.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from appwrap.core.errors import WrapperError
from appwrap.core.tool_spec import ToolSpec, available_tools, load_tool
from appwrap.core.wrapper import AppWrapper, WrapRequest
from appwrap.inou.executor import ExitReporter

logger = logging.getLogger('appwrap')

EXIT_USAGE = 1
EXIT_INVALID_OPTION = 3


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='[%(levelname)s] %(message)s',
        stream=sys.stdout,
    )


def usage_text(tool: ToolSpec) -> str:
    """Usage with one ``--option => label`` line per option."""
    methods = ', '.join(str(m) for m in tool.exec_methods)
    lines = [f'Usage: appwrap {tool.name}']
    for spec in tool.inputs:
        lines.append(f'  --{spec.name} => {spec.label}')
    for spec in tool.parameters:
        lines.append(f'  --{spec.name} => {spec.label}')
    lines.append(f'  --{tool.output.name} => {tool.output.label}')
    lines.append(f'  --exec_method => Execution method ({methods})')
    lines.append('  --app-dir => Directory holding bundled images and packages')
    lines.append('  --dry-run => Print the command without running it')
    lines.append('  --report => Write a YAML run report to this file')
    lines.append('  --help => Display this help message')
    return '\n'.join(lines)


def build_tool_parser(tool: ToolSpec) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=f'appwrap {tool.name}', usage=usage_text(tool), add_help=False)
    parser.add_argument('-h', '--help', action='store_true')
    for spec in tool.inputs:
        parser.add_argument(f'--{spec.name}', dest=spec.name)
    for spec in tool.parameters:
        parser.add_argument(f'--{spec.name}', dest=spec.name)
    parser.add_argument(f'--{tool.output.name}', dest=tool.output.name)
    parser.add_argument('--exec_method', '--exec-method', dest='exec_method')
    parser.add_argument('--app-dir', dest='app_dir')
    parser.add_argument('--dry-run', action='store_true')
    parser.add_argument('--report')
    parser.add_argument('-v', '--verbose', action='store_true')
    return parser


def env_override(name: str, value: Optional[str]) -> Optional[str]:
    """
    A lower-case environment variable named after an option wins over the CLI.

    Workflow engines pass job inputs this way.
    """
    env_value = os.environ.get(name)
    return env_value if env_value else value


def resolve_app_dir(tool: ToolSpec, app_dir: Optional[str]) -> str:
    if app_dir:
        return os.path.abspath(app_dir)
    if os.environ.get('AGAVE_JOB_ID'):
        logger.info('Agave job detected')
        return os.getcwd()
    return tool.default_app_dir()


class WrapperCLI:
    def __init__(self):
        self.tool: Optional[ToolSpec] = None

    def print_usage(self) -> None:
        if self.tool is not None:
            print(usage_text(self.tool))
        else:
            print('Usage: appwrap <tool> [options]')
            print(f'  tools: {", ".join(available_tools()) or "none found"}')

    def run(self, argv: List[str]) -> int:
        if not argv or argv[0].startswith('-'):
            self.print_usage()
            return 0 if argv and argv[0] in ('-h', '--help') else EXIT_USAGE

        self.tool = load_tool(argv[0])
        parser = build_tool_parser(self.tool)
        args, extra = parser.parse_known_args(argv[1:])

        if args.help:
            self.print_usage()
            return 0
        if extra:
            print('Invalid option')
            self.print_usage()
            return EXIT_INVALID_OPTION

        if args.verbose:
            logging.getLogger().setLevel(logging.DEBUG)

        tool = self.tool
        values = {}
        for spec in list(tool.inputs) + list(tool.parameters):
            values[spec.name] = env_override(spec.name, getattr(args, spec.name))
        output = env_override(tool.output.name, getattr(args, tool.output.name))
        exec_method = env_override('exec_method', args.exec_method) or str(tool.default_exec_method)

        for spec in list(tool.inputs) + list(tool.parameters):
            value = values[spec.name]
            if value is None and spec in tool.parameters:
                value = spec.default
            logger.info('%s: %s', spec.label, value if value is not None else '')
        logger.info('%s: %s', tool.output.label, output or '')
        logger.info('Execution Method: %s', exec_method)

        request = WrapRequest(
            values=values,
            output=output,
            exec_method=exec_method,
            app_dir=resolve_app_dir(tool, args.app_dir),
        )
        return AppWrapper(tool).run(request, dry_run=args.dry_run, report_path=args.report)


def shell_exit_code(code: int) -> int:
    """Map a negative subprocess return code (killed by signal N) to the shell's ``128 + N``."""
    return 128 - code if code < 0 else code


def main(argv: Optional[List[str]] = None) -> int:
    """Run one wrapped invocation; the exit code is reported on every path."""
    setup_logging()
    argv = sys.argv[1:] if argv is None else argv
    cli = WrapperCLI()
    reporter = ExitReporter()
    exit_code = EXIT_USAGE
    try:
        exit_code = cli.run(argv)
    except SystemExit as e:
        # argparse exits with 2 on malformed options
        exit_code = e.code if isinstance(e.code, int) else EXIT_USAGE
    except WrapperError as e:
        logger.error('%s', e)
        if e.show_usage:
            print()
            cli.print_usage()
        exit_code = shell_exit_code(e.exit_code)
    finally:
        reporter.report(exit_code)
    return exit_code


if __name__ == '__main__':
    sys.exit(main())
