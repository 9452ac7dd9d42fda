"""Heritable traits for bees and birds.

Numeric DNA is blended per trait, occasionally inherited whole from one parent
(dominance) and then mutated within the trait's declared range. Bird genes add
a visual layer: body, beak and tail vertex sets blended with one shared weight,
discrete shape swaps drawn from the catalog, and averaged colors.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Tuple, TypeVar

from pygame import Color

from ...config import SCALED_SETTINGS, BoidSettings, GeneticsConfig, TraitRanges
from ...rng import DeterministicRng
from ..core.agent import Genes
from ..core import shapes
from ..utils.math2d import _clamp_value

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
S = TypeVar("S", bound=BoidSettings)


def default_dna(settings: BoidSettings, ranges: TraitRanges) -> Dict[str, float]:
    dna: Dict[str, float] = {}
    for trait, (low, high) in ranges.items():
        value = getattr(settings, trait, None)
        if value is None:
            logger.warning("trait %r has no base setting; using the middle of its range", trait)
            value = (low + high) * 0.5
        dna[trait] = _clamp_value(float(value), low, high)
    return dna


def express_settings(base: S, dna: Dict[str, float], world_scale: float) -> S:
    """Resolve a spawn's settings: species defaults, overridden by DNA, then world-scaled."""
    overrides = {trait: value for trait, value in dna.items() if hasattr(base, trait)}
    settings = replace(base, **overrides)
    for name in SCALED_SETTINGS:
        if hasattr(settings, name):
            setattr(settings, name, getattr(settings, name) * world_scale)
    return settings


def mutate_value(
    value: float, low: float, high: float, rng: DeterministicRng, config: GeneticsConfig
) -> float:
    if rng.chance(config.mutation_rate):
        span = high - low
        value += rng.next_range(-1.0, 1.0) * config.mutation_amount * span
    return _clamp_value(value, low, high)


def inherit_dna(
    dna_a: Dict[str, float],
    dna_b: Dict[str, float],
    ranges: TraitRanges,
    rng: DeterministicRng,
    config: GeneticsConfig,
) -> Dict[str, float]:
    child: Dict[str, float] = {}
    random_blend = config.blend_mode == "random"
    for trait, (low, high) in ranges.items():
        value_a = dna_a.get(trait)
        value_b = dna_b.get(trait)
        if value_a is None or value_b is None:
            logger.warning("parent DNA is missing trait %r", trait)
            fallback = (low + high) * 0.5
            value_a = fallback if value_a is None else value_a
            value_b = fallback if value_b is None else value_b
        if rng.chance(config.dominance_chance):
            value = value_a if rng.next_float() < 0.5 else value_b
        else:
            weight = rng.next_float() if random_blend else 0.5
            value = value_a + (value_b - value_a) * weight
        child[trait] = mutate_value(value, low, high, rng, config)
    return child


def _parse_color(color: str) -> Optional[Color]:
    try:
        return Color(color)
    except (TypeError, ValueError):
        return None


def _to_hex(color: Color) -> str:
    return "#{:02x}{:02x}{:02x}".format(color.r, color.g, color.b)


def blend_colors(color_a: str, color_b: str) -> str:
    parsed_a = _parse_color(color_a)
    parsed_b = _parse_color(color_b)
    if parsed_a is None or parsed_b is None:
        logger.warning("cannot blend colors %r and %r", color_a, color_b)
        return color_a if parsed_a is not None else color_b
    return _to_hex(parsed_a.lerp(parsed_b, 0.5))


def jitter_color(color: str, rng: DeterministicRng, amount: int) -> str:
    parsed = _parse_color(color)
    if parsed is None:
        logger.warning("cannot jitter color %r", color)
        return color
    deltas = [int(round(rng.next_range(-amount, amount))) for _ in range(3)]
    # Color arithmetic saturates at 0 and 255.
    raised = Color(*(max(0, d) for d in deltas), 0)
    lowered = Color(*(max(0, -d) for d in deltas), 0)
    return _to_hex(parsed + raised - lowered)


def _blend_points(points_a: List[Point], points_b: List[Point], weight: float) -> List[Point]:
    if len(points_a) != len(points_b):
        return list(points_a if weight < 0.5 else points_b)
    return [
        (ax + (bx - ax) * weight, ay + (by - ay) * weight)
        for (ax, ay), (bx, by) in zip(points_a, points_b)
    ]


def _saltation(
    catalog: Dict[str, List[Point]], current: str, rng: DeterministicRng
) -> Optional[Tuple[str, List[Point]]]:
    options = sorted(name for name in catalog if name != current)
    choice = rng.sample_choice(options)
    if choice is None:
        return None
    return choice, list(catalog[choice])


def random_genes(rng: DeterministicRng, palette: str) -> Optional[Genes]:
    colors = shapes.PALETTES.get(palette)
    if colors is None:
        logger.warning("unknown bird palette %r", palette)
        return None
    body_shape = rng.sample_choice(sorted(shapes.BODY_SHAPES))
    beak_shape = rng.sample_choice(sorted(shapes.BEAK_SHAPES))
    tail_shape = rng.sample_choice(sorted(shapes.TAIL_SHAPES))
    return Genes(
        body_shape=body_shape,
        beak_shape=beak_shape,
        tail_shape=tail_shape,
        body=list(shapes.BODY_SHAPES[body_shape]),
        beak=list(shapes.BEAK_SHAPES[beak_shape]),
        tail=list(shapes.TAIL_SHAPES[tail_shape]),
        colors={**colors, "outline": shapes.OUTLINE_COLOR, "beak": shapes.BEAK_COLOR},
    )


def inherit_genes(genes_a: Genes, genes_b: Genes, rng: DeterministicRng, config: GeneticsConfig) -> Genes:
    weight = rng.next_float()
    dominant = genes_a if weight < 0.5 else genes_b
    child = Genes(
        body_shape=dominant.body_shape,
        beak_shape=dominant.beak_shape,
        tail_shape=dominant.tail_shape,
        body=_blend_points(genes_a.body, genes_b.body, weight),
        beak=_blend_points(genes_a.beak, genes_b.beak, weight),
        tail=_blend_points(genes_a.tail, genes_b.tail, weight),
        colors={},
    )

    if rng.chance(config.shape_mutation_chance):
        swapped = _saltation(shapes.BEAK_SHAPES, child.beak_shape, rng)
        if swapped is not None:
            child.beak_shape, child.beak = swapped
    if rng.chance(config.shape_mutation_chance):
        swapped = _saltation(shapes.TAIL_SHAPES, child.tail_shape, rng)
        if swapped is not None:
            child.tail_shape, child.tail = swapped

    for key in sorted(set(genes_a.colors) | set(genes_b.colors)):
        if key in ("outline", "beak"):
            continue
        color_a = genes_a.colors.get(key)
        color_b = genes_b.colors.get(key)
        if color_a is None or color_b is None:
            child.colors[key] = color_a or color_b
            continue
        child.colors[key] = blend_colors(color_a, color_b)
    if rng.chance(config.color_jitter_chance):
        for key in list(child.colors):
            child.colors[key] = jitter_color(child.colors[key], rng, config.color_jitter_amount)
    # Outline and beak stay dark.
    child.colors["outline"] = shapes.OUTLINE_COLOR
    child.colors["beak"] = shapes.BEAK_COLOR
    return child
