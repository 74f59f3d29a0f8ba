"""ztr - archive a directory tree, honoring .gitignore-style rules."""

from ztr.core.constants import ZTR_VERSION as __version__
from ztr.main import CompressionReport, CompressionRun, run_compress

__all__ = [
    "__version__",
    "CompressionReport",
    "CompressionRun",
    "run_compress",
]
