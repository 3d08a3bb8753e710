"""
MPI-based odd-even transposition sort using mpi4py.

Run with one rank per input byte, e.g. for a 4-byte input file:
    mpiexec -n 4 python -m mpi_oets --input numbers --verify
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional

from mpi4py import MPI

from oets import (
    ROOT,
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

EXCHANGE_TAG = 0
# Sleep between request tests while waiting with a timeout.
POLL_INTERVAL = 0.001


class MPILink:
    """Neighbor send/recv over an MPI communicator."""

    def __init__(self, comm: MPI.Comm, timeout: Optional[float] = None):
        self.comm = comm
        self.rank = comm.Get_rank()
        self.timeout = timeout

    def send(self, value: int, dest: int) -> None:
        self.comm.send(value, dest=dest, tag=EXCHANGE_TAG)

    def recv(self, source: int) -> int:
        if self.timeout is None:
            return self.comm.recv(source=source, tag=EXCHANGE_TAG)

        req = self.comm.irecv(source=source, tag=EXCHANGE_TAG)
        deadline = time.monotonic() + self.timeout
        while True:
            done, value = req.test()
            if done:
                return value
            if time.monotonic() >= deadline:
                req.Cancel()
                req.Wait()
                raise StallError(self.rank, source, timeout=self.timeout)
            time.sleep(POLL_INTERVAL)


def mpi_oets_sort(data: Optional[List[int]], comm: MPI.Comm = MPI.COMM_WORLD, timeout: Optional[float] = None) -> Optional[List[int]]:
    """Distributed sort: scatter one value per rank → N exchange rounds → gather on rank 0."""
    rank = comm.Get_rank()
    size = comm.Get_size()

    error = None
    if rank == ROOT:
        try:
            data = check_sequence(data or [], size)
        except ConfigurationError as e:
            error = str(e)
    # Every rank must agree before the scatter, or the others would block on it.
    error = comm.bcast(error, root=ROOT)
    if error is not None:
        raise ConfigurationError(error)

    my_number: int = comm.scatter(data if rank == ROOT else None, root=ROOT)

    my_number = odd_even_sort(MPILink(comm, timeout), my_number, rank, size)

    gathered = comm.gather(my_number, root=ROOT)
    if rank != ROOT:
        return None
    logger.info(f"Sorted {size} values in {size} rounds, {count_exchanges(size)} exchanges")
    return gathered


def main(argv=None) -> None:
    comm = MPI.COMM_WORLD
    rank = comm.Get_rank()
    parser = build_parser("MPI odd-even transposition sort")
    args = parser.parse_args(argv)
    try:
        config = SortConfig.from_args(args)
    except (OetsError, ValueError) as e:
        parser.error(str(e))
    setup_logging(config.log_level)

    data: Optional[List[int]] = None
    if rank == ROOT:
        try:
            data = load_data(config.input_path)
        except OSError as e:
            logger.error(f"Failed to open input file: {e}")
            comm.Abort(1)
        print(format_unsorted(data), flush=True)

    try:
        sorted_data = mpi_oets_sort(data, comm=comm, timeout=config.timeout)
    except OetsError as e:
        logger.error(f"rank {rank}: {e}")
        comm.Abort(1)

    if rank == ROOT:
        print(format_sorted(sorted_data), flush=True)
        if config.verify and sorted_data != sorted(data):
            logger.error("Result is not sorted correctly")
            comm.Abort(1)


if __name__ == "__main__":
    main()
