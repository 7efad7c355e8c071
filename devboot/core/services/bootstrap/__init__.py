"""
Bootstrap service — package re-exports.

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (data → domain → resolver → detection →
execution → orchestration)::

    from devboot.core.services.bootstrap import ensure_capability
"""

# ── L0: Data ──
from devboot.core.services.bootstrap.data.capabilities import (  # noqa: F401
    CAPABILITY_CATALOG,
    get_capability,
)

# ── L1: Domain ──
from devboot.core.services.bootstrap.domain.errors import (  # noqa: F401
    BootstrapError,
    FatalCapabilityError,
    PackageManagerError,
    RunLockError,
)

# ── L3: Detection ──
from devboot.core.services.bootstrap.detection.platform import detect_platform  # noqa: F401

# ── L5: Orchestration ──
from devboot.core.services.bootstrap.orchestration.bootstrap import (  # noqa: F401
    BootstrapReport,
    run_bootstrap,
)
from devboot.core.services.bootstrap.orchestration.installer import (  # noqa: F401
    ensure_capability,
)
from devboot.core.services.bootstrap.orchestration.verification import (  # noqa: F401
    verify_installations,
)
