# backend/formadb/apps/training/palette.py
"""
Deterministic color / pattern assignment for formations.

The calendar UI needs every formation to keep the same color and a
distinct fill pattern (for color-blind users). Both are derived from the
formation identifier, so reassigning is reproducible without storing a seed.
"""

from __future__ import annotations

FORMATION_PATTERNS = (
    "dots",
    "hatching",
    "triangles",
    "diamonds",
    "stripes-h",
    "stripes-v",
    "circles",
    "grid",
    "chevrons",
    "waves",
    "zigzag",
    "cross",
    "bricks",
    "hexagons",
)

# Perceptually distinct colors (avoids similar greens/blues clustering).
FORMATION_COLOR_PALETTE = (
    "#ef4444", "#f97316", "#eab308", "#84cc16", "#22c55e", "#14b8a6", "#06b6d4",
    "#0ea5e9", "#3b82f6", "#6366f1", "#8b5cf6", "#a855f7", "#d946ef", "#ec4899",
    "#f43f5e", "#64748b", "#0d9488", "#2563eb", "#7c3aed", "#be185d",
)


def hash_seed(seed: str) -> int:
    """
    31-multiplier polynomial string hash, wrapped to a signed 32-bit integer
    and returned as its absolute value.

    Matches the values already stored for formations created by the
    previous platform.
    """
    h = 0
    for ch in str(seed):
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def palette_index(seed: str, size: int) -> int:
    if size <= 0:
        raise ValueError("palette size must be positive")
    return hash_seed(seed) % size


def formation_color(seed: str) -> str:
    return FORMATION_COLOR_PALETTE[palette_index(seed, len(FORMATION_COLOR_PALETTE))]


def formation_pattern(seed: str) -> str:
    return FORMATION_PATTERNS[palette_index(seed, len(FORMATION_PATTERNS))]
