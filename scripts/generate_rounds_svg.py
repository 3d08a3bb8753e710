#!/usr/bin/env python3
"""
Generate an SVG diagram of the odd-even transposition rounds for an input
file: one column per round, one row per rank, with the compare-exchange
pairs of each round drawn between the columns. No external dependencies
required.

Output: docs/img/rounds.svg
"""

import argparse
from pathlib import Path
from typing import List

from oets import DEFAULT_INPUT, active_pairs, load_data
from sequential_oets import odd_even_rounds

CELL = 44
MARGIN_LEFT, MARGIN_TOP, MARGIN_RIGHT, MARGIN_BOTTOM = 80, 70, 40, 40
PAIR_COLOR = "#1f77b4"


def shade(value: int) -> str:
    """Grey level for a byte value; darker is larger."""
    level = 235 - value * 160 // 255
    return f"rgb({level},{level},{level})"


def render(values: List[int]) -> str:
    states = [list(values)] + list(odd_even_rounds(values))
    n = len(values)
    width = MARGIN_LEFT + len(states) * CELL * 2 + MARGIN_RIGHT
    height = MARGIN_TOP + max(n, 1) * CELL + MARGIN_BOTTOM

    def col_x(step: int) -> float:
        return MARGIN_LEFT + step * CELL * 2

    def row_y(rank: int) -> float:
        return MARGIN_TOP + rank * CELL

    parts = []
    parts.append(f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" viewBox="0 0 {width} {height}">')
    parts.append('<style>text { font-family: sans-serif; font-size: 13px; }</style>')
    parts.append(f'<text x="{width/2}" y="{MARGIN_TOP - 40}" text-anchor="middle" font-size="18">Odd-Even Transposition Sort (N={n})</text>')

    # Rank labels
    for rank in range(n):
        parts.append(f'<text x="{MARGIN_LEFT - 14}" y="{row_y(rank) + CELL/2 + 4}" text-anchor="end">rank {rank}</text>')

    for step, state in enumerate(states):
        x = col_x(step)
        label = "input" if step == 0 else f"round {step - 1}"
        parts.append(f'<text x="{x + CELL/2}" y="{MARGIN_TOP - 12}" text-anchor="middle">{label}</text>')
        for rank, v in enumerate(state):
            y = row_y(rank)
            fill = shade(v)
            ink = "white" if v > 150 else "black"
            parts.append(f'<rect x="{x}" y="{y}" width="{CELL}" height="{CELL - 4}" fill="{fill}" stroke="#888" />')
            parts.append(f'<text x="{x + CELL/2}" y="{y + CELL/2 + 2}" text-anchor="middle" fill="{ink}">{v}</text>')

        # Pairs exchanged while moving from this column to the next
        if step < len(states) - 1:
            mid = x + CELL * 1.5
            for left, right in active_pairs(n, step):
                y0 = row_y(left) + CELL / 2
                y1 = row_y(right) + CELL / 2
                parts.append(f'<line x1="{mid}" y1="{y0}" x2="{mid}" y2="{y1}" stroke="{PAIR_COLOR}" stroke-width="2" />')
                for y in (y0, y1):
                    parts.append(f'<circle cx="{mid}" cy="{y}" r="3" fill="{PAIR_COLOR}" />')

    parts.append("</svg>")
    return "\n".join(parts)


def main() -> None:
    parser = argparse.ArgumentParser(description="Draw the exchange rounds for an input file")
    parser.add_argument("--input", default=DEFAULT_INPUT, help="Binary input file, one byte per value.")
    parser.add_argument("--output", default="docs/img/rounds.svg", help="Where to write the SVG.")
    args = parser.parse_args()

    values = load_data(args.input)
    out_path = Path(args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(render(values))
    print(f"Wrote {out_path} for {len(values)} values.")


if __name__ == "__main__":
    main()
