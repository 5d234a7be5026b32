"""
Monitoring and instrumentation utilities for New Relic APM.

Everything here is a no-op unless the ``newrelic`` package is installed and a
licence key is configured.
"""
import functools
import inspect
import logging
from typing import Callable
from memorymatch.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Try to import New Relic, but don't fail if not available
try:
    import newrelic.agent
    NEW_RELIC_AVAILABLE = True
except ImportError:
    NEW_RELIC_AVAILABLE = False
    logger.info("New Relic not available - monitoring disabled")


def monitoring_enabled() -> bool:
    return NEW_RELIC_AVAILABLE and bool(settings.new_relic_license_key)


def monitor_transaction(name: str = None):
    """
    Decorator tracing a function call as a New Relic function trace.

    Args:
        name: Custom trace name (defaults to module.function)

    Usage:
        @monitor_transaction("submit_score")
        def submit_score(...):
            ...
    """
    def decorator(func: Callable) -> Callable:
        trace_name = name or f"{func.__module__}.{func.__name__}"

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                if not monitoring_enabled():
                    return await func(*args, **kwargs)
                with newrelic.agent.FunctionTrace(trace_name):
                    return await func(*args, **kwargs)

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            if not monitoring_enabled():
                return func(*args, **kwargs)
            with newrelic.agent.FunctionTrace(trace_name):
                return func(*args, **kwargs)

        return sync_wrapper

    return decorator


def record_custom_metric(metric_name: str, value: float):
    """
    Record a custom metric in New Relic.

    Args:
        metric_name: Name of the metric (e.g., "Scores/Duplicates")
        value: Metric value
    """
    if monitoring_enabled():
        try:
            newrelic.agent.record_custom_metric(metric_name, value)
        except Exception as e:
            logger.debug(f"Failed to record custom metric: {e}")


def record_custom_event(event_type: str, attributes: dict):
    """
    Record a custom event in New Relic.

    Args:
        event_type: Type of event (e.g., "ScoreSubmission")
        attributes: Dictionary of event attributes
    """
    if monitoring_enabled():
        try:
            newrelic.agent.record_custom_event(event_type, attributes)
        except Exception as e:
            logger.debug(f"Failed to record custom event: {e}")


class DatabaseTrace:
    """
    Context manager for tracking database query performance.

    Usage:
        with DatabaseTrace("find_scores_page"):
            # database query here
            pass
    """

    def __init__(self, operation_name: str, target: str = "scores"):
        self.operation_name = operation_name
        self.target = target
        self.trace = None

    def __enter__(self):
        if monitoring_enabled():
            try:
                self.trace = newrelic.agent.DatastoreTrace(
                    product="PostgreSQL",
                    target=self.target,
                    operation=self.operation_name
                )
                self.trace.__enter__()
            except Exception as e:
                logger.debug(f"Failed to start database trace: {e}")
                self.trace = None
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.trace:
            try:
                self.trace.__exit__(exc_type, exc_val, exc_tb)
            except Exception as e:
                logger.debug(f"Failed to end database trace: {e}")
        return False
