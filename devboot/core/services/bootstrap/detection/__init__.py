"""
L3 Detection — ``__init__.py`` re-exports read-only probes.

Nothing in this layer mutates the host: file reads, environment
lookups and ``adapter.which`` / ``adapter.probe`` only.
"""

from devboot.core.services.bootstrap.detection.condition import (  # noqa: F401
    evaluate_condition,
    unmet_conditions,
)
from devboot.core.services.bootstrap.detection.desktop import (  # noqa: F401
    detect_desktop_kind,
    has_desktop,
    in_gnome_session,
    is_graphical_session,
)
from devboot.core.services.bootstrap.detection.platform import (  # noqa: F401
    detect_platform,
    map_arch,
    parse_os_release,
)
from devboot.core.services.bootstrap.detection.tool_presence import (  # noqa: F401
    Detection,
    detect_capability,
    probe_version,
)
