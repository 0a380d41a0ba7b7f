"""
Preparation of binaries shipped with an app.

A packaged app may ship its binary inside an archive next to it; the archive
is unpacked into its own directory and the binary made executable before the
first run.
"""

import logging
import os
import stat
import tarfile

from appwrap.core.errors import ToolConfigError
from appwrap.core.tool_spec import PackageSpec

logger = logging.getLogger(__name__)


def prepare_package(package: PackageSpec) -> str:
    """
    Make sure the packaged binary exists and is executable.

    Args:
        package: Binary path and optional archive holding it

    Returns:
        Path of the binary

    Raises:
        ToolConfigError: If neither the binary nor its archive can provide it, or
            the archive cannot be extracted or the binary made executable
    """
    binary = package.binary
    try:
        if not os.path.isfile(binary) and package.archive:
            if not os.path.isfile(package.archive):
                raise ToolConfigError(f'Package archive not found: {package.archive}')
            target = os.path.dirname(os.path.abspath(package.archive))
            logger.info('Extracting %s into %s', package.archive, target)
            with tarfile.open(package.archive, 'r:*') as archive:
                archive.extractall(path=target, filter='data')

        if not os.path.isfile(binary):
            raise ToolConfigError(f'Packaged binary not found: {binary}')

        mode = os.stat(binary).st_mode
        if not mode & stat.S_IXUSR:
            os.chmod(binary, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except (tarfile.TarError, OSError) as e:
        raise ToolConfigError(f'Failed to prepare package {package.archive or binary}: {e}') from e
    return binary
