"""
Sequential odd-even transposition sort.

Runs the N rounds in lockstep inside one process, applying the same
compare-swap rule the parallel runners use. Handy as a reference and for
printing the configuration after every round.

    python -m sequential_oets --input numbers --trace
"""

import logging
import random
import sys
import time
from collections import deque
from typing import Iterator, List

from oets import (
    OetsError,
    SortConfig,
    active_pairs,
    build_parser,
    compare_swap,
    count_exchanges,
    format_sorted,
    format_unsorted,
    load_data,
    setup_logging,
)

logger = logging.getLogger(__name__)


def odd_even_rounds(values: List[int]) -> Iterator[List[int]]:
    """Yield a copy of the configuration after each of the N rounds."""
    A = list(values)
    n = len(A)
    for round_idx in range(n):
        for left, right in active_pairs(n, round_idx):
            # right is the responder: it keeps the larger value
            A[left], A[right] = compare_swap(A[right], A[left])
        yield list(A)


def odd_even_transposition_sort(A: List[int]) -> List[int]:
    """Sort A in place and return it."""
    last = deque(odd_even_rounds(A), maxlen=1)
    if last:
        A[:] = last[0]
    return A


def benchmark_sequential():
    """Timing for increasing worker counts."""
    print("\n=== Sequential Odd-Even Transposition Sort ===")
    for n in (64, 256, 1024):
        A = [random.randint(0, 255) for _ in range(n)]
        start = time.time()
        odd_even_transposition_sort(A)
        end = time.time()
        print(f"n = {n:>6,}  ->  time = {end - start:.3f} s")


def main(argv=None) -> int:
    parser = build_parser("Sequential odd-even transposition sort")
    parser.add_argument("--trace", action="store_true", help="Print the configuration after every round.")
    parser.add_argument("--benchmark", action="store_true", help="Time random inputs instead of sorting a file.")
    args = parser.parse_args(argv)

    try:
        config = SortConfig.from_args(args)
    except (OetsError, ValueError) as e:
        parser.error(str(e))
    setup_logging(config.log_level)

    if args.benchmark:
        benchmark_sequential()
        return 0

    try:
        data = load_data(config.input_path)
    except OSError as e:
        logger.error(f"Failed to open input file: {e}")
        return 1
    if config.timeout is not None:
        logger.warning("--timeout has no effect: the sequential runner never waits on a neighbor")

    print(format_unsorted(data))
    result = list(data)
    for round_idx, state in enumerate(odd_even_rounds(data)):
        if config.trace:
            print(f"round {round_idx}: {format_unsorted(state)}", file=sys.stderr)
        result = state
    logger.info(f"Sorted {len(data)} values in {len(data)} rounds, {count_exchanges(len(data))} exchanges")
    if result:
        print(format_sorted(result))

    if config.verify and result != sorted(data):
        logger.error("Result is not sorted correctly")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
