"""Tests for batch.py: chunking and the two failure policies."""

import math
from unittest.mock import MagicMock

import pytest

from twenty_cli.batch import chunk_records, run_batches
from twenty_cli.exceptions import CliError
from twenty_cli.models import clamp_batch_size


class TestClampBatchSize:
    @pytest.mark.parametrize(
        "size, expected",
        [(None, 60), (0, 60), (-5, 60), (1, 1), (25, 25), (60, 60), (61, 60), (500, 60)],
    )
    def test_clamp(self, size, expected):
        assert clamp_batch_size(size) == expected


class TestChunkRecords:
    @pytest.mark.parametrize("length, size", [(0, 10), (1, 10), (10, 10), (11, 10), (125, 60)])
    def test_chunk_shape(self, length, size):
        records = list(range(length))
        chunks = chunk_records(records, size)
        assert len(chunks) == math.ceil(length / size)
        for chunk in chunks[:-1]:
            assert len(chunk) == size
        assert [r for chunk in chunks for r in chunk] == records

    def test_size_clamped_to_max(self):
        chunks = chunk_records(list(range(130)), 100)
        assert [len(c) for c in chunks] == [60, 60, 10]


def _failing_first():
    calls = []

    def submit(chunk):
        calls.append(list(chunk))
        if len(calls) == 1:
            raise CliError("[ERROR] HTTP 400: Bad Request")
        return {"ok": len(chunk)}

    return submit, calls


class TestRunBatches:
    def test_all_succeed(self):
        submit = MagicMock(side_effect=lambda chunk: len(chunk))
        result = run_batches(list(range(25)), submit, batch_size=10)
        assert result.ok
        assert result.succeeded == 25
        assert result.total == 25
        assert result.errors == []
        assert result.responses == [10, 10, 5]
        assert submit.call_count == 3

    def test_stop_policy_first_chunk_fails_submits_once(self):
        submit, calls = _failing_first()
        result = run_batches(list(range(30)), submit, batch_size=10)
        assert len(calls) == 1
        assert result.succeeded == 0
        assert result.errors == ["batch 1-10: [ERROR] HTTP 400: Bad Request"]
        assert result.chunks_attempted == 1

    def test_continue_policy_submits_every_chunk(self):
        submit, calls = _failing_first()
        result = run_batches(list(range(30)), submit, batch_size=10, continue_on_error=True)
        assert len(calls) == 3
        assert result.succeeded == 20
        assert len(result.errors) == 1
        assert result.errors[0].startswith("batch 1-10: ")

    def test_stop_policy_counts_only_prior_successes(self):
        def submit(chunk):
            if chunk[0] == 10:
                raise CliError("boom")
            return None

        result = run_batches(list(range(30)), submit, batch_size=10)
        assert result.succeeded == 10
        assert result.errors == ["batch 11-20: boom"]
        assert result.chunks_attempted == 2

    def test_last_chunk_range(self):
        def submit(chunk):
            if len(chunk) < 10:
                raise CliError("short")

        result = run_batches(list(range(23)), submit, batch_size=10, continue_on_error=True)
        assert result.errors == ["batch 21-23: short"]
        assert result.succeeded == 20

    def test_empty_records(self):
        submit = MagicMock()
        result = run_batches([], submit)
        assert result.succeeded == 0
        assert result.ok
        submit.assert_not_called()

    def test_default_batch_size_is_max(self):
        submit = MagicMock(return_value=None)
        run_batches(list(range(61)), submit)
        assert [len(c.args[0]) for c in submit.call_args_list] == [60, 1]

    def test_to_dict(self):
        submit, _ = _failing_first()
        result = run_batches(list(range(20)), submit, batch_size=10, continue_on_error=True)
        assert result.to_dict("imported") == {
            "ok": False,
            "imported": 10,
            "total": 20,
            "errors": ["batch 1-10: [ERROR] HTTP 400: Bad Request"],
        }

    def test_non_cli_errors_propagate(self):
        def submit(chunk):
            raise KeyError("bug")

        with pytest.raises(KeyError):
            run_batches([1], submit)
