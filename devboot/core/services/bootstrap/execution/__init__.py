"""
L4 Execution — ``__init__.py`` re-exports all execution functions.

These functions WRITE to the system: commands through the adapter,
config file edits, backups, downloads and the run lock.
"""

from devboot.core.services.bootstrap.execution.backup import (  # noqa: F401
    backup_file,
    backup_path_for,
    backup_system_file,
)
from devboot.core.services.bootstrap.execution.config_applier import (  # noqa: F401
    ApplyResult,
    SettingsOutcome,
    apply_settings,
    ensure_block,
    merge_json_settings,
    write_if_absent,
)
from devboot.core.services.bootstrap.execution.configurators import (  # noqa: F401
    CONFIGURATORS,
    ConfigContext,
    ConfigureOutcome,
    run_configurator,
)
from devboot.core.services.bootstrap.execution.download import (  # noqa: F401
    install_binary,
    resolve_release_tag,
    run_with_retry,
)
from devboot.core.services.bootstrap.execution.run_lock import (  # noqa: F401
    RunLock,
)
