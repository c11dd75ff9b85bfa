"""Output sizes accepted by the diffusion engine and nearest-ratio lookup."""

from __future__ import annotations

from typing import Tuple

Dimensions = Tuple[int, int]

# Order matters: ties go to the earliest entry.
DIMENSION_CANDIDATES: Tuple[Dimensions, ...] = (
    (1024, 1024),
    (1152, 896),
    (1216, 832),
    (1344, 768),
    (1536, 640),
    (640, 1536),
    (768, 1344),
    (832, 1216),
    (896, 1152),
)


def match_dimensions(width: int, height: int) -> Dimensions:
    """Return the candidate whose width/height ratio is closest to ``width / height``."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Dimensions must be positive, got {width}x{height}")

    ratio = width / height
    best = DIMENSION_CANDIDATES[0]
    best_diff = abs(ratio - best[0] / best[1])
    for candidate in DIMENSION_CANDIDATES[1:]:
        diff = abs(ratio - candidate[0] / candidate[1])
        if diff < best_diff:
            best, best_diff = candidate, diff
    return best
