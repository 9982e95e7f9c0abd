import asyncio
import logging
from typing import Optional, Union

from mot_playback.core.logging_utils import StructuredLogger, ensure_structured_logger


async def cancel_task_safely(
    task: Optional[asyncio.Task],
    task_name: str = "task",
    timeout: float = 5.0,
    logger_instance: Optional[Union[logging.Logger, StructuredLogger]] = None
) -> bool:
    """Cancel ``task`` and wait for it; False if it would not finish in time."""
    log = ensure_structured_logger(logger_instance, fallback_name="async_utils")
    if task is None:
        log.debug("%s: No task to cancel", task_name)
        return True
    if task.done():
        log.debug("%s: Already done", task_name)
        return True
    log.debug("%s: Cancelling...", task_name)
    task.cancel()
    try:
        await asyncio.wait_for(task, timeout=timeout)
        log.debug("%s: Cancelled successfully", task_name)
        return True
    except asyncio.CancelledError:
        log.debug("%s: Cancelled (CancelledError)", task_name)
        return True
    except asyncio.TimeoutError:
        log.warning("%s: Cancellation timeout after %.1fs", task_name, timeout)
        return False
    except Exception as e:
        log.warning("%s: Exception during cancellation: %s", task_name, e)
        return False
