"""
Chunked batch execution with stop-on-first-error or continue-on-error policy.
"""

from twenty_cli.exceptions import CliError
from twenty_cli.models import BatchResult, clamp_batch_size


def chunk_records(records, size):
    """Split *records* into contiguous chunks of at most *size* (clamped)."""
    size = clamp_batch_size(size)
    return [records[i : i + size] for i in range(0, len(records), size)]


def run_batches(records, submit, *, batch_size=None, continue_on_error=False):
    """Submit *records* chunk by chunk.

    *submit(chunk)* performs one API call and returns its result; a CliError
    marks the chunk as failed. Failures are recorded as
    ``batch <start>-<end>: <error>`` with a 1-based inclusive range.
    """
    records = list(records)
    result = BatchResult(total=len(records))
    start = 0
    for chunk in chunk_records(records, batch_size):
        end = start + len(chunk)
        result.chunks_attempted += 1
        try:
            response = submit(chunk)
        except CliError as e:
            result.errors.append(f"batch {start + 1}-{end}: {e}")
            if not continue_on_error:
                break
        else:
            result.succeeded += len(chunk)
            result.responses.append(response)
        start = end
    return result
