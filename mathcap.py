import base64
import random
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

WIDTH = 280
HEIGHT = 80

PALETTE = ["#00D4AA", "#3B82F6", "#8B5CF6", "#F59E0B", "#EF4444"]
BACKGROUNDS = ["#1a1a2e", "#16213e", "#1b1b2f", "#202040"]

NOISE_LINES = 5
NOISE_DOTS = 30
MAX_ROTATION = 8.0
MAX_JITTER = 3.0

A_RANGE = (1, 20)
B_RANGE = (1, 15)


@dataclass
class Puzzle:
    text: str
    answer: str


def _add(a: int, b: int) -> Puzzle:
    return Puzzle(text=f"{a} + {b}", answer=str(a + b))


def _mul(a: int, b: int) -> Puzzle:
    return Puzzle(text=f"{a} x {b}", answer=str(a * b))


def _sub(a: int, b: int) -> Puzzle:
    big, small = max(a, b), min(a, b)
    return Puzzle(text=f"{big} - {small}", answer=str(big - small))


OPERATIONS: List[Callable[[int, int], Puzzle]] = [_add, _mul, _sub]


def make_puzzle(rng: random.Random) -> Puzzle:
    a = rng.randint(*A_RANGE)
    b = rng.randint(*B_RANGE)
    return rng.choice(OPERATIONS)(a, b)


def render_svg(text: str, rng: random.Random) -> str:
    """Render `text` followed by "= ?" as a noisy SVG.

    Each glyph gets its own palette colour; the whole line is rotated once
    and shifted vertically by a small jitter.
    """
    background = rng.choice(BACKGROUNDS)
    rotation = round(rng.uniform(-MAX_ROTATION, MAX_ROTATION), 1)
    offset_y = round(rng.uniform(-MAX_JITTER, MAX_JITTER), 1)

    parts = []
    for _ in range(NOISE_LINES):
        parts.append(
            '<line x1="{:.1f}" y1="{:.1f}" x2="{:.1f}" y2="{:.1f}" stroke="{}" '
            'stroke-width="1" opacity="0.3"/>'.format(
                rng.uniform(0, WIDTH), rng.uniform(0, HEIGHT),
                rng.uniform(0, WIDTH), rng.uniform(0, HEIGHT),
                rng.choice(PALETTE),
            )
        )
    for _ in range(NOISE_DOTS):
        parts.append(
            '<circle cx="{:.1f}" cy="{:.1f}" r="{:.2f}" fill="{}" opacity="0.25"/>'.format(
                rng.uniform(0, WIDTH), rng.uniform(0, HEIGHT),
                rng.uniform(0.5, 2.5), rng.choice(PALETTE),
            )
        )

    glyphs = []
    for ch in f"{text} = ?":
        if ch == " ":
            glyphs.append(" ")
        else:
            glyphs.append(f'<tspan fill="{rng.choice(PALETTE)}">{ch}</tspan>')

    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{WIDTH}" height="{HEIGHT}" '
        f'viewBox="0 0 {WIDTH} {HEIGHT}">'
        f'<rect width="{WIDTH}" height="{HEIGHT}" fill="{background}" rx="8"/>'
        + "".join(parts)
        + f'<text x="{WIDTH // 2}" y="{45 + offset_y:.1f}" text-anchor="middle" font-size="32" '
        f'font-weight="bold" font-family="monospace" letter-spacing="4" '
        f'transform="rotate({rotation}, {WIDTH // 2}, {HEIGHT // 2})">'
        + "".join(glyphs)
        + "</text></svg>"
    )


def to_data_uri(svg: str) -> str:
    return "data:image/svg+xml;base64," + base64.b64encode(svg.encode("utf-8")).decode("ascii")


class MathCap:
    """Arithmetic captcha provider.

    - issue() returns a fresh puzzle and its rendered image as a data URI
    - the answer lives only on the returned Puzzle; callers keep it server-side
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.SystemRandom()

    def issue(self) -> Tuple[Puzzle, str]:
        puzzle = make_puzzle(self._rng)
        return puzzle, to_data_uri(render_svg(puzzle.text, self._rng))
