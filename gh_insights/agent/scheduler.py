"""Periodic report trigger for long-running agents."""

import asyncio
import logging

from ..errors import EmptyStateError
from .agent import AnalysisAgent

logger = logging.getLogger(__name__)


async def run_periodic_reports(
    agent: AnalysisAgent, interval: float, stop: asyncio.Event
) -> int:
    """Generate a report for every known repository each ``interval`` seconds.

    Args:
        agent: Agent whose repositories are reported on
        interval: Seconds between rounds
        stop: Set to end the loop; checked before every round

    Returns:
        Number of reports generated
    """
    if interval <= 0:
        raise ValueError("interval must be positive")

    generated = 0
    while not stop.is_set():
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
            break
        except asyncio.TimeoutError:
            pass

        for repository in agent.repositories():
            try:
                await agent.generate_summary_report(repository)
                generated += 1
            except EmptyStateError:
                logger.debug(f"Skipping {repository}: no issues yet")
    return generated
