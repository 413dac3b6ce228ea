"""Port allocation for generated projects.

Every project gets an API, database and Redis port derived from configured
base ports and the project's registry index::

    port = base + project_index * increment

With randomization enabled each port is additionally shifted by an offset
drawn from the OS CSPRNG in ``[-range, range]`` and then clamped into the
unprivileged range.  Randomized ports can still collide across projects; that
risk is accepted.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

from gogen.config import PortsConfig
from gogen.utils import print_warning

MIN_PORT = 1024
MAX_PORT = 65535


@dataclass(frozen=True)
class PortTriple:
    """Ports allocated to one project."""

    api: int
    db: int
    redis: int

    def as_dict(self) -> dict[str, int]:
        """Return a plain ``{service: port}`` mapping."""
        return {"api": self.api, "db": self.db, "redis": self.redis}


def allocate(project_index: int, config: PortsConfig) -> PortTriple:
    """Compute the ports for the project with registry index *project_index*."""
    offset = project_index * config.increment
    base = PortTriple(
        api=config.base_api + offset,
        db=config.base_db + offset,
        redis=config.base_redis + offset,
    )

    jitter = config.randomization.range
    if not (config.randomization.enabled and jitter > 0):
        return base

    return PortTriple(
        api=clamp_port(base.api + random_offset(jitter)),
        db=clamp_port(base.db + random_offset(jitter)),
        redis=clamp_port(base.redis + random_offset(jitter)),
    )


def random_offset(jitter: int) -> int:
    """Return a uniformly random integer in ``[-jitter, jitter]``.

    Falls back to ``0`` if the OS random source is unavailable.
    """
    try:
        return secrets.randbelow(2 * jitter + 1) - jitter
    except (OSError, NotImplementedError) as exc:
        print_warning(f"Random source unavailable ({exc}); using deterministic ports")
        return 0


def clamp_port(port: int) -> int:
    """Fold an out-of-range port back into ``[1024, 65535]``.

    This is a simple remap, not a collision-free scheme.
    """
    if port < MIN_PORT:
        return MIN_PORT + (port % 100)
    if port > MAX_PORT:
        return MAX_PORT - (port % 100)
    return port
