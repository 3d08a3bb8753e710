"""
Tests for the process-per-value runner.
"""

import multiprocessing as mp
import queue
import random
from collections import Counter

import pytest

from multiprocessing_oets import PipeLink, _collect, main, parallel_oets_sort
from oets import ConfigurationError, OetsError, StallError


class TestParallelSort:
    """End-to-end sorts with real worker processes."""

    def test_worked_example(self):
        A = [5, 3, 8, 1]
        assert parallel_oets_sort(A, timeout=10) == [1, 3, 5, 8]
        assert A == [1, 3, 5, 8]

    def test_random_input(self):
        rng = random.Random(7)
        values = [rng.randint(0, 255) for _ in range(9)]
        result = parallel_oets_sort(list(values), timeout=10)
        assert result == sorted(values)
        assert Counter(result) == Counter(values)

    def test_single_value(self):
        assert parallel_oets_sort([200]) == [200]

    def test_empty(self):
        assert parallel_oets_sort([]) == []

    def test_worker_count_mismatch(self):
        with pytest.raises(ConfigurationError):
            parallel_oets_sort([1, 2, 3], processes=4)


class TestPipeLink:
    """Test the neighbor pipes directly."""

    def test_send_recv_right(self):
        a, b = mp.Pipe(duplex=True)
        left = PipeLink(0, right=a)
        right = PipeLink(1, left=b)

        left.send(12, 1)
        assert right.recv(0) == 12
        right.send(3, 0)
        assert left.recv(1) == 3

        left.close()
        right.close()

    def test_no_link_to_non_neighbor(self):
        a, b = mp.Pipe(duplex=True)
        link = PipeLink(0, right=a)
        with pytest.raises(ConfigurationError):
            link.send(1, 2)
        with pytest.raises(ConfigurationError):
            link.recv(-1)
        a.close()
        b.close()

    def test_stall_timeout(self):
        a, b = mp.Pipe(duplex=True)
        link = PipeLink(0, right=a, timeout=0.05)
        with pytest.raises(StallError) as exc_info:
            link.recv(1)
        assert exc_info.value.partner == 1
        a.close()
        b.close()


class _FakeProcess:
    def __init__(self, name, exitcode):
        self.name = name
        self.exitcode = exitcode


class TestCollect:
    """Test how the coordinator gathers results and surfaces worker failures."""

    def test_results_ordered_by_rank(self):
        results = queue.Queue()
        for item in [(2, 8, None), (0, 1, None), (1, 5, None)]:
            results.put(item)

        assert _collect(results, [], 3) == [1, 5, 8]

    def test_worker_stall_is_reraised(self):
        results = queue.Queue()
        results.put((0, 1, None))
        results.put((2, None, (1, 3, 0.5)))

        with pytest.raises(StallError) as exc_info:
            _collect(results, [], 4)

        assert exc_info.value.rank == 2
        assert exc_info.value.partner == 1
        assert exc_info.value.round_idx == 3
        assert exc_info.value.timeout == 0.5

    def test_crashed_worker_is_reported(self):
        workers = [_FakeProcess("oets-rank-0", None), _FakeProcess("oets-rank-1", 1)]

        with pytest.raises(OetsError, match="oets-rank-1 exited with code 1"):
            _collect(queue.Queue(), workers, 2)


class TestMultiprocessingCli:
    def test_sorts_file(self, tmp_path, capsys):
        path = tmp_path / "numbers"
        path.write_bytes(bytes([9, 0, 4]))

        assert main(["--input", str(path), "--verify", "--timeout", "10"]) == 0
        assert capsys.readouterr().out == "9 0 4\n0\n4\n9\n"

    def test_missing_input(self, tmp_path):
        assert main(["--input", str(tmp_path / "missing")]) == 1
