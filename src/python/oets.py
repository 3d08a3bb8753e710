"""
Odd-even transposition sort: the shared exchange protocol.

Every runner (sequential, multiprocessing, MPI) drives the functions here.
A worker only needs a *link* object with two methods:

    link.send(value, dest)   # deliver one value to a neighbor rank
    link.recv(source)        # block until one value arrives from a neighbor

Rank r holds one byte. In round k, rank r is the initiator of the pair
(r, r+1) when r % 2 == k % 2, otherwise it is the responder of (r-1, r).
After N rounds the values are ascending by rank.
"""

from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

ROOT = 0
DEFAULT_INPUT = "numbers"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class OetsError(Exception):
    """Base class for sort failures."""


class ConfigurationError(OetsError, ValueError):
    """The input does not fit the worker layout."""


class StallError(OetsError, TimeoutError):
    """A worker gave up waiting for its partner."""

    def __init__(self, rank: int, partner: int, round_idx: Optional[int] = None, timeout: Optional[float] = None):
        self.rank = rank
        self.partner = partner
        self.round_idx = round_idx
        self.timeout = timeout
        where = f" in round {round_idx}" if round_idx is not None else ""
        super().__init__(f"rank {rank} got nothing from rank {partner}{where} after {timeout}s")


class Link(Protocol):
    def send(self, value: int, dest: int) -> None: ...

    def recv(self, source: int) -> int: ...


# ------------------ LOADER ------------------ #

def load_data(path: str | os.PathLike = DEFAULT_INPUT) -> List[int]:
    """Read the whole input file, one unsigned byte per element.

    Raises OSError when the file cannot be opened.
    """
    data = Path(path).read_bytes()
    logger.info(f"Loaded {len(data)} values from {path}")
    return list(data)


def check_sequence(values: Iterable[int], size: int) -> List[int]:
    """Validate the coordinator's sequence against the worker count."""
    values = list(values)
    if len(values) != size:
        raise ConfigurationError(f"input has {len(values)} values but there are {size} workers")
    for v in values:
        if not 0 <= v <= 255:
            raise ConfigurationError(f"value {v} does not fit in one unsigned byte")
    return values


# ------------------ COMPARE-SWAP ------------------ #

def compare_swap(own: int, received: int) -> Tuple[int, int]:
    """Responder's rule: return the smaller value, keep the larger one.

    Returns (return_value, keep_value).
    """
    if received > own:
        return own, received
    return received, own


# ------------------ EXCHANGE PROTOCOL ------------------ #

def is_sender_phase(rank: int, round_idx: int) -> bool:
    return rank % 2 == round_idx % 2


def partner_of(rank: int, size: int, round_idx: int) -> Optional[int]:
    """Neighbor rank for this round, or None when the worker sits out."""
    partner = rank + 1 if is_sender_phase(rank, round_idx) else rank - 1
    if 0 <= partner < size:
        return partner
    return None


def active_pairs(size: int, round_idx: int) -> List[Tuple[int, int]]:
    start = round_idx % 2
    return [(r, r + 1) for r in range(start, size - 1, 2)]


def count_exchanges(size: int) -> int:
    """Total compare-exchanges performed over a full N-round sort."""
    return sum(len(active_pairs(size, k)) for k in range(size))


def exchange(link: Link, value: int, rank: int, size: int, round_idx: int) -> int:
    """Run one round for one worker and return the value it holds afterwards."""
    partner = partner_of(rank, size, round_idx)
    if partner is None:
        logger.debug(f"rank {rank} idle in round {round_idx}")
        return value

    if partner > rank:
        # Initiator: send first, then wait for whichever value comes back.
        link.send(value, partner)
        kept = link.recv(partner)
        logger.debug(f"rank {rank} round {round_idx}: sent {value} to {partner}, got {kept}")
        return kept

    received = link.recv(partner)
    returned, kept = compare_swap(value, received)
    link.send(returned, partner)
    logger.debug(
        f"rank {rank} round {round_idx}: had {value}, got {received} from {partner}, "
        f"returned {returned}, kept {kept}"
    )
    return kept


def odd_even_sort(link: Link, value: int, rank: int, size: int) -> int:
    """Run all N rounds for one worker."""
    if not 0 <= rank < size:
        raise ConfigurationError(f"rank {rank} outside [0, {size})")
    for round_idx in range(size):
        try:
            value = exchange(link, value, rank, size, round_idx)
        except StallError as e:
            if e.round_idx is not None:
                raise
            raise StallError(e.rank, e.partner, round_idx, e.timeout) from e
    return value


# ------------------ OUTPUT ------------------ #

def format_unsorted(values: Iterable[int]) -> str:
    return " ".join(str(v) for v in values)


def format_sorted(values: Iterable[int]) -> str:
    return "\n".join(str(v) for v in values)


# ------------------ CONFIGURATION ------------------ #

@dataclass
class SortConfig:
    """Settings shared by the command-line runners."""

    input_path: str = DEFAULT_INPUT
    timeout: Optional[float] = None  # seconds; None blocks forever
    verify: bool = False
    log_level: str = "WARNING"
    trace: bool = False

    def __post_init__(self):
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError("--timeout must be positive")
        self.log_level = self.log_level.upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigurationError(f"unknown log level {self.log_level!r}")

    @classmethod
    def from_args(cls, args: argparse.Namespace, environ: Optional[dict] = None) -> "SortConfig":
        """Build a config from parsed flags; OETS_* variables fill unset flags."""
        env = os.environ if environ is None else environ
        timeout = args.timeout
        if timeout is None and env.get("OETS_TIMEOUT"):
            timeout = float(env["OETS_TIMEOUT"])
        return cls(
            input_path=args.input or env.get("OETS_INPUT", DEFAULT_INPUT),
            timeout=timeout,
            verify=args.verify,
            log_level=args.log_level or env.get("OETS_LOG_LEVEL", "WARNING"),
            trace=getattr(args, "trace", False),
        )


def build_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--input", default=None, help=f"Binary input file, one byte per value (default: {DEFAULT_INPUT}).")
    parser.add_argument("--timeout", type=float, default=None, help="Seconds to wait for a neighbor before failing.")
    parser.add_argument("--verify", action="store_true", help="Check the final sequence against sorted() on rank 0.")
    parser.add_argument("--log-level", default=None, help="Logging level (default: WARNING).")
    return parser


def setup_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
