"""
L0 Data — ``__init__.py`` re-exports the catalog and bundled configs.
"""

from devboot.core.services.bootstrap.data.capabilities import (  # noqa: F401
    BOOTSTRAP_GROUPS,
    CAPABILITY_CATALOG,
    K9S,
    extra_package,
    get_capability,
)
from devboot.core.services.bootstrap.data.desktop_settings import (  # noqa: F401
    GNOME_DESKTOP_SETTINGS,
    GNOME_TASKBAR_SETTINGS,
    GSetting,
)
