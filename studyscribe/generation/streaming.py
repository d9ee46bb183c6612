"""
Consumption of accumulate-latest streams.

A summarizer stream yields the full best-effort text at every step. The
consumer keeps only the most recent value; values are never concatenated.
"""

from collections.abc import AsyncIterable

from studyscribe.logging_config import debug_log, warning


async def collect_latest(stream: AsyncIterable[str]) -> str:
    """
    Drain a stream and return its final value.

    If the final value is empty but a longer value was seen earlier, the
    longest value is returned instead.

    Args:
        stream: Async iterable of accumulated texts

    Returns:
        Final text ('' for an empty stream)
    """
    latest = ""
    longest = ""
    step_count = 0

    async for value in stream:
        step_count += 1
        value = value or ""
        if len(value) > len(longest):
            longest = value
        latest = value

    if not latest and longest:
        warning("[STREAM] Final value was empty, using longest value instead")
        latest = longest

    debug_log(f"[STREAM] Stream complete: {step_count} steps, final length {len(latest)}")
    return latest
