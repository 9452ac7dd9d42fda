from __future__ import annotations

from typing import Dict, List, Tuple

Point = Tuple[float, float]

# Vertex lists are in body-local units, nose pointing along +x. Every entry of a
# catalog has the same vertex count so parents can be blended point by point.
BODY_SHAPES: Dict[str, List[Point]] = {
    "sparrow": [(10.0, 0.0), (4.0, -4.0), (-4.0, -4.5), (-8.0, 0.0), (-4.0, 4.5), (4.0, 4.0)],
    "swift": [(12.0, 0.0), (5.0, -2.5), (-5.0, -3.0), (-10.0, 0.0), (-5.0, 3.0), (5.0, 2.5)],
    "robin": [(9.0, 0.0), (4.0, -5.5), (-3.0, -6.0), (-7.0, 0.0), (-3.0, 6.0), (4.0, 5.5)],
    "finch": [(8.0, 0.0), (3.0, -4.5), (-3.5, -5.0), (-7.5, 0.0), (-3.5, 5.0), (3.0, 4.5)],
}

BEAK_SHAPES: Dict[str, List[Point]] = {
    "short": [(10.0, -1.0), (13.0, 0.0), (10.0, 1.0)],
    "long": [(10.0, -0.8), (17.0, 0.0), (10.0, 0.8)],
    "hooked": [(10.0, -1.2), (14.0, 0.8), (10.0, 1.2)],
    "stout": [(10.0, -2.0), (13.5, 0.0), (10.0, 2.0)],
}

TAIL_SHAPES: Dict[str, List[Point]] = {
    "fan": [(-8.0, 0.0), (-14.0, -4.0), (-13.0, 0.0), (-14.0, 4.0)],
    "fork": [(-8.0, 0.0), (-16.0, -4.5), (-11.0, 0.0), (-16.0, 4.5)],
    "pointed": [(-8.0, 0.0), (-15.0, -1.5), (-17.0, 0.0), (-15.0, 1.5)],
    "stub": [(-8.0, 0.0), (-11.0, -2.5), (-11.5, 0.0), (-11.0, 2.5)],
}

OUTLINE_COLOR = "#1e1e1e"
BEAK_COLOR = "#2b2b2b"

PALETTES: Dict[str, Dict[str, str]] = {
    "robin": {"body": "#8c5a3c", "wing": "#5e3b28", "breast": "#d9653b"},
    "bluebird": {"body": "#3f6fb5", "wing": "#2b4f86", "breast": "#d98c4a"},
    "finch": {"body": "#c9b23a", "wing": "#6b6030", "breast": "#e8d66a"},
    "starling": {"body": "#3b3541", "wing": "#2a2530", "breast": "#5c5566"},
}
