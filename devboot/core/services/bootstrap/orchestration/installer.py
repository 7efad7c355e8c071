"""
L5 Orchestration — Idempotent installer.

One reusable routine for every catalog entry:

    detect → (absent) → strategies in order → verify → configure

A capability that detection reports present is never installed again,
so a second run issues no mutating commands for it. A strategy failure
moves on to the next strategy; success on anything but the first is
reported as installed-with-fallback. Every failed command is kept on
the result as an Attempt.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import replace

from devboot.adapters.base import Adapter
from devboot.core.models.action import Command, Receipt
from devboot.core.models.capability import (
    Attempt,
    Capability,
    ErrorKind,
    InstallResult,
    InstallStatus,
    Strategy,
)
from devboot.core.models.config import BootstrapConfig
from devboot.core.models.platform import Platform
from devboot.core.services.bootstrap.detection.condition import unmet_conditions
from devboot.core.services.bootstrap.detection.tool_presence import detect_capability
from devboot.core.services.bootstrap.domain.error_analysis import classify_failure, stderr_tail
from devboot.core.services.bootstrap.execution.configurators import ConfigContext, run_configurator
from devboot.core.services.bootstrap.execution.download import install_binary, run_with_retry
from devboot.core.services.bootstrap.resolver.strategy_selection import (
    applies_to,
    placeholder_values,
    render,
    resolve_strategies,
)

logger = logging.getLogger(__name__)


def _skipped(capability: Capability, required: bool, reason: str) -> InstallResult:
    logger.info("%s: skipped (%s)", capability.name, reason)
    return InstallResult(
        capability=capability.name,
        status=InstallStatus.SKIPPED,
        required=required,
        reason=reason,
    )


def _attempt_from(strategy: Strategy, receipt: Receipt) -> Attempt:
    kind = classify_failure(receipt, strategy.error_kind)
    message = receipt.error or "command failed"
    return Attempt(
        strategy=strategy.name,
        ok=False,
        command=receipt.command,
        exit_code=receipt.exit_code,
        stderr=stderr_tail(receipt),
        error_kind=kind,
        message=message,
    )


def _run_prepare(strategy: Strategy, adapter: Adapter, config: BootstrapConfig) -> None:
    """Best-effort preparation (repo files, helper packages); failures only logged."""
    for argv in strategy.prepare:
        receipt = adapter.run(Command(
            argv=argv,
            needs_sudo=strategy.needs_sudo,
            env=dict(strategy.env),
            timeout=config.command_timeout,
        ))
        if receipt.failed:
            logger.info("Preparation step failed (continuing): %s: %s", receipt.command, receipt.error)


def _run_strategy(
    capability: Capability,
    strategy: Strategy,
    platform: Platform,
    adapter: Adapter,
    config: BootstrapConfig,
    sleep: Callable[[float], None],
) -> Receipt | None:
    """Execute one strategy. Returns the deciding receipt, None if it had nothing to run."""
    _run_prepare(strategy, adapter, config)

    if strategy.download is not None:
        receipts = install_binary(
            strategy.download,
            name=capability.cli or capability.name,
            platform=platform,
            adapter=adapter,
            needs_sudo=strategy.needs_sudo,
            attempts=config.download_attempts,
            timeout=config.command_timeout,
            sleep=sleep,
        )
        return receipts[-1] if receipts else None

    last: Receipt | None = None
    for argv in strategy.steps:
        command = Command(
            argv=argv,
            needs_sudo=strategy.needs_sudo,
            env=dict(strategy.env),
            timeout=config.command_timeout,
        )
        last = run_with_retry(adapter, command, attempts=config.download_attempts, sleep=sleep)
        if last.failed:
            break
    return last


def _verify(capability: Capability, platform: Platform, adapter: Adapter) -> tuple[bool, str | None, str]:
    """Re-check after a claimed success: the verify command, then detection."""
    if capability.verify:
        receipt = adapter.probe(Command(argv=capability.verify, timeout=60))
        if not receipt.ok:
            return False, None, f"verification command failed: {' '.join(capability.verify)}"
    detection = detect_capability(capability, platform, adapter)
    if not detection.present:
        return False, detection.version, f"still not detected after install ({detection.reason})"
    return True, detection.version, ""


def _configure(
    capability: Capability,
    result: InstallResult,
    context: ConfigContext,
) -> InstallResult:
    context = replace(context, fresh_install=result.status in (
        InstallStatus.INSTALLED, InstallStatus.INSTALLED_WITH_FALLBACK,
    ))
    for name in capability.configure:
        outcome = run_configurator(name, context)
        if outcome.ok:
            result.configured.append(name)
        else:
            result.config_errors.extend(f"{name}: {e}" for e in outcome.errors)
            logger.warning("%s: configuration '%s' incomplete: %s",
                           capability.name, name, "; ".join(outcome.errors))
    return result


def ensure_capability(
    capability: Capability,
    platform: Platform,
    adapter: Adapter,
    config: BootstrapConfig | None = None,
    *,
    context: ConfigContext | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> InstallResult:
    """Make sure ``capability`` is present on this host.

    Args:
        capability: Catalog entry.
        platform: The run's platform, detected once at startup.
        adapter: Command adapter (shell, dry-run or mock).
        config: Run options; defaults to the stock configuration.
        context: Configurator context; built from the other arguments
                 when omitted. Tests pass one with a temporary home.
        sleep: Backoff sleep, injectable for tests.

    Returns:
        InstallResult. Never raises for install failures: a Failed
        result is returned and the caller decides whether it is fatal.
    """
    config = config or BootstrapConfig()
    override = config.required_override(capability.name)
    required = capability.required if override is None else override
    context = context or ConfigContext(platform=platform, adapter=adapter, config=config)

    if config.is_skipped(capability.name):
        return _skipped(capability, required, "disabled in configuration")
    if not applies_to(capability, platform):
        return _skipped(capability, required, f"not applicable on {platform.family.value}")
    unmet = unmet_conditions(
        capability.conditions, platform=platform, config=config, adapter=adapter, env=context.env,
    )
    if unmet:
        return _skipped(capability, required, f"condition not met: {', '.join(unmet)}")

    # ── Detect ──
    detection = detect_capability(capability, platform, adapter)
    if detection.present:
        logger.info("%s already present%s", capability.name,
                    f" ({detection.version})" if detection.version else "")
        result = InstallResult(
            capability=capability.name,
            status=InstallStatus.ALREADY_PRESENT,
            required=required,
            version=detection.version,
        )
        return _configure(capability, result, context)

    # ── Select ──
    values = placeholder_values(platform, home=context.home)
    strategies = resolve_strategies(capability, platform, limit=config.max_strategies, values=values)
    if not strategies:
        result = InstallResult.failed(
            capability,
            ErrorKind.UNSUPPORTED_PLATFORM,
            f"no install strategy for {capability.display_name} on {platform.label()}",
        )
        result.required = required
        logger.warning("%s: %s", capability.name, result.reason)
        return result

    # ── Install, falling back in order ──
    attempts: list[Attempt] = []
    for index, strategy in enumerate(strategies):
        logger.info("Installing %s via %s (%d/%d)",
                    capability.name, strategy.name, index + 1, len(strategies))
        receipt = _run_strategy(capability, strategy, platform, adapter, config, sleep)

        if receipt is not None and receipt.failed:
            attempt = _attempt_from(strategy, receipt)
            attempts.append(attempt)
            logger.warning("%s: strategy '%s' failed (%s): %s",
                           capability.name, strategy.name, attempt.error_kind, attempt.message)
            continue

        if adapter.dry_run:
            attempts.append(Attempt(strategy=strategy.name, ok=True, command=receipt.command if receipt else ""))
            return InstallResult(
                capability=capability.name,
                status=InstallStatus.PLANNED,
                required=required,
                strategy=strategy.name,
                reason=detection.reason,
                attempts=attempts,
            )

        if capability.post_env_path:
            added = adapter.prepend_path([render(p, values) for p in capability.post_env_path])
            if added:
                logger.info("Added to PATH for this run: %s", ", ".join(added))

        ok, version, why = _verify(capability, platform, adapter)
        if not ok:
            attempts.append(Attempt(
                strategy=strategy.name,
                ok=False,
                command=receipt.command if receipt else "",
                error_kind=ErrorKind.VERIFICATION_MISMATCH,
                message=why,
            ))
            logger.warning("%s: strategy '%s' reported success but %s",
                           capability.name, strategy.name, why)
            continue

        attempts.append(Attempt(strategy=strategy.name, ok=True, command=receipt.command if receipt else ""))
        status = InstallStatus.INSTALLED if index == 0 else InstallStatus.INSTALLED_WITH_FALLBACK
        logger.info("%s %s via %s", capability.name, status.value, strategy.name)
        result = InstallResult(
            capability=capability.name,
            status=status,
            required=required,
            strategy=strategy.name,
            version=version,
            attempts=attempts,
        )
        return _configure(capability, result, context)

    last = attempts[-1]
    result = InstallResult.failed(
        capability,
        last.error_kind or ErrorKind.INSTALL_FAILED,
        f"all {len(strategies)} strategies failed; last: {last.strategy}: {last.message}",
        attempts,
    )
    result.required = required
    return result
