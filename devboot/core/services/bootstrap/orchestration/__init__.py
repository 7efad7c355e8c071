"""
L5 Orchestration — ``__init__.py`` re-exports top-level coordinators.

These are the entry points that the CLI calls.
"""

from devboot.core.services.bootstrap.orchestration.bootstrap import (  # noqa: F401
    BootstrapReport,
    refresh_package_index,
    run_bootstrap,
    select_capabilities,
)
from devboot.core.services.bootstrap.orchestration.desktop import (  # noqa: F401
    DesktopReport,
    configure_desktop,
    ensure_taskbar,
)
from devboot.core.services.bootstrap.orchestration.installer import (  # noqa: F401
    ensure_capability,
)
from devboot.core.services.bootstrap.orchestration.k3s import (  # noqa: F401
    K3sError,
    K3sReport,
    install_k3s,
)
from devboot.core.services.bootstrap.orchestration.minikube import (  # noqa: F401
    TroubleshootReport,
    troubleshoot_minikube,
)
from devboot.core.services.bootstrap.orchestration.verification import (  # noqa: F401
    ToolStatus,
    verify_installations,
)
