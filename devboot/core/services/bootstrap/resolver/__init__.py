"""
L2 Resolver — ``__init__.py`` re-exports strategy selection.
"""

from devboot.core.services.bootstrap.resolver.strategy_selection import (  # noqa: F401
    applies_to,
    placeholder_values,
    platform_keys,
    render,
    render_argv,
    resolve_probe,
    resolve_strategies,
)
