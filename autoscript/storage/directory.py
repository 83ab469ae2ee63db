"""Storage root creation and permission checks."""

import logging
import os
import stat
from pathlib import Path
from typing import Union

from ..errors import ConfigurationError, PermissionMismatch

logger = logging.getLogger(__name__)

# Transcripts capture everything typed, passwords included
STORAGE_MODE = 0o700


def ensure_storage_directory(path: Union[str, Path], mode: int = STORAGE_MODE) -> Path:
    """Create the storage root, or verify an existing one.

    A missing directory is created with ``mode`` (parents as needed). An
    existing directory must already carry exactly ``mode``; it is never
    chmod-ed, since a mismatch points at tampering or a misconfigured
    environment that the user has to look at.

    Args:
        path: Storage root
        mode: Required permission bits

    Returns:
        The storage root as a Path

    Raises:
        PermissionMismatch: Existing directory has different permission bits
        ConfigurationError: Path exists but is not a directory
    """
    root = Path(path)

    try:
        root.mkdir(mode=mode, parents=True)
    except FileExistsError:
        pass
    else:
        # mkdir's mode is filtered through the umask
        os.chmod(root, mode)
        logger.info(f"Created storage directory: {root} (mode {mode:o})")
        return root

    st = root.stat()
    if not stat.S_ISDIR(st.st_mode):
        raise ConfigurationError(f"Storage path {root} exists but is not a directory")

    actual = stat.S_IMODE(st.st_mode)
    if actual != mode:
        logger.error(f"Storage directory {root} has mode {actual:o}, expected {mode:o}")
        raise PermissionMismatch(root, actual, mode)

    logger.debug(f"Storage directory verified: {root}")
    return root
