"""ztr Core - Shared constants and validators.

Import specific names from submodules:
    from ztr.core.constants import ArchiveFormat, ErrorCode
    from ztr.core.validators import ValidationError, validate_config
"""

from ztr.core import constants, validators

__all__ = [
    "constants",
    "validators",
]
