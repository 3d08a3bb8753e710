import logging
import multiprocessing as mp
import queue
import random
import sys
import time

from oets import (
    ConfigurationError,
    OetsError,
    SortConfig,
    StallError,
    build_parser,
    check_sequence,
    count_exchanges,
    format_sorted,
    format_unsorted,
    load_data,
    odd_even_sort,
    setup_logging,
)

logger = logging.getLogger(__name__)

# How often the coordinator checks for crashed workers while collecting.
POLL_INTERVAL = 0.1

# ------------------ PARALLEL VERSION (MULTIPROCESSING) ------------------ #
# Strategy: one process per value. Neighbors r and r+1 share a duplex pipe,
# every worker runs the N exchange rounds on its own, and the coordinator
# collects the final values by rank.


class PipeLink:
    """Point-to-point link to the left and right neighbor over duplex pipes."""

    def __init__(self, rank, left=None, right=None, timeout=None):
        self.rank = rank
        self.left = left
        self.right = right
        self.timeout = timeout

    def _conn(self, peer):
        if peer == self.rank - 1 and self.left is not None:
            return self.left
        if peer == self.rank + 1 and self.right is not None:
            return self.right
        raise ConfigurationError(f"rank {self.rank} has no link to rank {peer}")

    def send(self, value, dest):
        self._conn(dest).send(value)

    def recv(self, source):
        conn = self._conn(source)
        if self.timeout is not None and not conn.poll(self.timeout):
            raise StallError(self.rank, source, timeout=self.timeout)
        return conn.recv()

    def close(self):
        for conn in (self.left, self.right):
            if conn is not None:
                conn.close()


def _worker(rank, size, value, left, right, timeout, results):
    link = PipeLink(rank, left, right, timeout)
    try:
        final = odd_even_sort(link, value, rank, size)
    except StallError as e:
        results.put((rank, None, (e.partner, e.round_idx, e.timeout)))
        return
    finally:
        link.close()
    results.put((rank, final, None))


def _collect(results, processes, size):
    final = [None] * size
    pending = size
    while pending:
        try:
            rank, value, error = results.get(timeout=POLL_INTERVAL)
        except queue.Empty:
            dead = [p for p in processes if p.exitcode not in (None, 0)]
            if dead:
                raise OetsError(f"{dead[0].name} exited with code {dead[0].exitcode}")
            continue
        if error is not None:
            raise StallError(rank, *error)
        final[rank] = value
        pending -= 1
    return final


def parallel_oets_sort(A, processes=None, timeout=None):
    """Sort A in place with one worker process per value and return it."""
    size = len(A) if processes is None else processes
    values = check_sequence(A, size)
    if not values:
        return A

    # links[r] connects rank r (left end) with rank r+1 (right end)
    links = [mp.Pipe(duplex=True) for _ in range(size - 1)]
    results = mp.Queue()
    workers = []
    for rank, value in enumerate(values):
        left = links[rank - 1][1] if rank > 0 else None
        right = links[rank][0] if rank < size - 1 else None
        p = mp.Process(
            target=_worker,
            args=(rank, size, value, left, right, timeout, results),
            name=f"oets-rank-{rank}",
        )
        workers.append(p)

    logger.info(f"Starting {size} workers, {count_exchanges(size)} exchanges over {size} rounds")
    for p in workers:
        p.start()
    try:
        sorted_values = _collect(results, workers, size)
    finally:
        for p in workers:
            if p.is_alive():
                p.terminate()
            p.join()
        for a, b in links:
            a.close()
            b.close()

    A[:] = sorted_values
    return A


def benchmark_parallel():
    """Performance profiling of the process-per-value sort."""
    print("\n=== Parallel Odd-Even Transposition Sort (multiprocessing) ===")
    for n in (8, 32, 64):
        A = [random.randint(0, 255) for _ in range(n)]
        start = time.time()
        parallel_oets_sort(A)
        end = time.time()
        print(f"n = {n:>6,}  ->  time = {end - start:.3f} s")


def main(argv=None):
    parser = build_parser("Odd-even transposition sort, one process per value")
    parser.add_argument("--benchmark", action="store_true", help="Time random inputs instead of sorting a file.")
    args = parser.parse_args(argv)
    try:
        config = SortConfig.from_args(args)
    except (OetsError, ValueError) as e:
        parser.error(str(e))
    setup_logging(config.log_level)

    if args.benchmark:
        benchmark_parallel()
        return 0

    try:
        data = load_data(config.input_path)
    except OSError as e:
        logger.error(f"Failed to open input file: {e}")
        return 1

    print(format_unsorted(data))
    try:
        result = parallel_oets_sort(list(data), timeout=config.timeout)
    except OetsError as e:
        logger.error(str(e))
        return 1
    if result:
        print(format_sorted(result))

    if config.verify and result != sorted(data):
        logger.error("Result is not sorted correctly")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
