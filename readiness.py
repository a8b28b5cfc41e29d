"""
Readiness Module

Polls a set of named health checks until they all pass in the same round or
the attempt budget runs out. The prober only reports; deciding what a failed
report means (exit code, printing) is left to the caller.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List

from models import HealthCheck, ProbeResult, ReadinessReport
from utils import AixclException, ProbeExecutionError, logger


def _evaluate(check: HealthCheck) -> ProbeResult:
    try:
        success = bool(check.probe())
    except ProbeExecutionError as e:
        logger.error("Probe execution failed", check=check.name, error=e.message)
        return ProbeResult(name=check.name, success=False, error=e.message)
    return ProbeResult(name=check.name, success=success)


def _run_round(checks: List[HealthCheck], max_workers: int) -> Dict[str, ProbeResult]:
    if max_workers > 1 and len(checks) > 1:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(checks))) as pool:
            results = list(pool.map(_evaluate, checks))
    else:
        results = [_evaluate(check) for check in checks]
    return {result.name: result for result in results}


def _capture_diagnostic(check: HealthCheck):
    if check.diagnostic is None:
        return None
    try:
        return check.diagnostic()
    except AixclException as e:
        logger.warning("Could not capture diagnostic", check=check.name, error=e.message)
        return f"diagnostic unavailable: {e.message}"


def _require_checks(checks):
    if not checks:
        raise ValueError("at least one health check is required")
    names = [check.name for check in checks]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ValueError(f"health check names must be unique: {', '.join(duplicates)}")


def _validate(checks, max_attempts, interval):
    _require_checks(checks)
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    if interval < 0:
        raise ValueError("interval must not be negative")


def poll_until_ready(
    checks,
    max_attempts=None,
    interval=None,
    *,
    sleep=time.sleep,
    cancel_event=None,
    max_workers=1,
) -> ReadinessReport:
    """Evaluate every check each round until one round passes.

    Args:
        checks: non-empty collection of HealthCheck
        max_attempts: round budget; defaults to the largest per-check budget
        interval: seconds to wait after a failed round; defaults to the
            largest per-check interval
        sleep: suspension used between rounds when no cancel_event is given
        cancel_event: optional threading.Event; when set, polling stops
            with a cancelled, failed report
        max_workers: evaluate checks within a round on this many threads

    Returns:
        ReadinessReport: ``overall`` is True iff some round passed. On
        failure, checks that failed in the final round carry a diagnostic.
    """
    checks = list(checks)
    if checks and max_attempts is None:
        max_attempts = max(check.max_attempts for check in checks)
    if checks and interval is None:
        interval = max(check.interval for check in checks)
    _validate(checks, max_attempts or 0, interval or 0)

    results: Dict[str, ProbeResult] = {}
    rounds = 0
    while rounds < max_attempts:
        if cancel_event is not None and cancel_event.is_set():
            break

        rounds += 1
        results = _run_round(checks, max_workers)
        failing = [name for name, result in results.items() if not result.success]
        logger.debug("Readiness round finished", round=rounds, failing=failing)

        if not failing:
            logger.info("All services ready", rounds=rounds)
            return ReadinessReport(overall=True, rounds=rounds, results=results)

        if rounds < max_attempts:
            if cancel_event is not None:
                cancel_event.wait(interval)
            else:
                sleep(interval)

    cancelled = cancel_event is not None and cancel_event.is_set()
    logger.warning(
        "Services not ready",
        rounds=rounds,
        max_attempts=max_attempts,
        cancelled=cancelled,
        failing=[name for name, result in results.items() if not result.success],
    )

    for check in checks:
        result = results.get(check.name)
        if result is not None and not result.success:
            result.diagnostic = _capture_diagnostic(check)

    return ReadinessReport(
        overall=False, rounds=rounds, results=results, cancelled=cancelled
    )


def check_once(checks, *, max_workers=1) -> Dict[str, ProbeResult]:
    """Evaluate every check exactly once and attach diagnostics to all of them"""
    checks = list(checks)
    _require_checks(checks)

    results = _run_round(checks, max_workers)
    for check in checks:
        results[check.name].diagnostic = _capture_diagnostic(check)
    return results
