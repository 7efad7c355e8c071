"""
L1 Domain — ``__init__.py`` re-exports all pure domain functions.

These functions have NO subprocess calls, NO filesystem access,
NO network calls. Pure input→output.
"""

from devboot.core.services.bootstrap.domain.error_analysis import (  # noqa: F401
    classify_failure,
)
from devboot.core.services.bootstrap.domain.errors import (  # noqa: F401
    BootstrapError,
    FatalCapabilityError,
    PackageManagerError,
    RunLockError,
)
from devboot.core.services.bootstrap.domain.version_constraint import (  # noqa: F401
    check_version_constraint,
    extract_version,
)
