"""
Host to container path translation.

Container backends only see the host directories that are bound into them,
so every input is rewritten to live under a synthetic mount point
(``/data1``, ``/data2``, ...). Host backends get the resolved host paths
unchanged.
"""

import logging
import posixpath
from typing import Dict, Mapping, Optional, Tuple, Union

from .errors import MountCollision
from .models import MountSpec, ReferenceBundle, StagedInput
from .strategy import ExecutionStrategy

logger = logging.getLogger(__name__)

TranslatableInput = Union[StagedInput, ReferenceBundle]


def _split(item: TranslatableInput) -> Tuple[str, str]:
    """Return (host dir to bind, path of the item relative to that dir)."""
    if isinstance(item, ReferenceBundle):
        staged = item.staged
        return staged.resolved_dir, posixpath.join(staged.resolved_name, item.index_prefix)
    return item.resolved_dir, item.resolved_name


def translate(
    strategy: ExecutionStrategy,
    inputs: Mapping[str, Optional[TranslatableInput]],
    mount_prefix: str = '/data',
) -> Tuple[MountSpec, Dict[str, str]]:
    """
    Build the mount list and the rewritten path of every supplied input.

    Args:
        strategy: Effective (concrete) execution strategy
        inputs: Ordered input name -> staged input, None for omitted optionals
        mount_prefix: Container path prefix for synthetic mount points

    Returns:
        Tuple of (MountSpec, {input name: path as seen by the tool})

    Raises:
        InputNotStaged: If any supplied input was not staged
        MountCollision: If two host paths would share a container path
    """
    present = {}
    for name, item in inputs.items():
        if item is None:
            continue
        present[name] = item.ensure_staged()

    if not strategy.is_container:
        return MountSpec(), {name: item.host_path for name, item in present.items()}

    mount_points: Dict[str, str] = {}
    rewritten: Dict[str, str] = {}
    rewrites: Dict[str, str] = {}
    for name, item in present.items():
        host_dir, relative = _split(item)
        if host_dir not in mount_points:
            mount_points[host_dir] = f'{mount_prefix}{len(mount_points) + 1}'
        container_path = posixpath.join(mount_points[host_dir], relative)

        host_path = item.host_path
        previous = rewrites.get(host_path)
        if previous is None and container_path in rewrites.values():
            raise MountCollision(f'Container path {container_path} is claimed by two host paths')
        rewrites[host_path] = container_path
        rewritten[name] = container_path

    for host_dir, mount in mount_points.items():
        logger.debug('bind %s -> %s', host_dir, mount)

    spec = MountSpec(bindings=tuple(mount_points.items()), rewrites=tuple(rewrites.items()))
    return spec, rewritten
