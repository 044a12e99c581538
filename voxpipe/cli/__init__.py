"""voxpipe CLI.

Registers every command on the main group.
"""

from voxpipe.cli.benchmark import benchmark
from voxpipe.cli.main import cli
from voxpipe.cli.pipelines import pipelines
from voxpipe.cli.run import run

__all__ = [
    "benchmark",
    "cli",
    "pipelines",
    "run",
]
