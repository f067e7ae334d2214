"""
Figure synthesis — small deterministic charts summarizing one tool's results.

Dispatch is by tool family. Each family extracts a closed variant carrying
only the data its chart needs, then the variant is binned and drawn as an
inline SVG with matplotlib's object API (no pyplot, no global state).

  temporal     → YearSeries        publications per year
  weight       → WeightHistogram   molecular weight in 7 fixed ranges
  length       → LengthHistogram   sequence length in 8 equal-width bins
  score        → RankedScores      top-N items by score, horizontal bars
  categorical  → CategoryCounts    group counts by phase/route/category/entity

Too little qualifying data yields None ("no figure"), never an error.
"""
from __future__ import annotations

import io
import math
import re
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import matplotlib
from matplotlib.figure import Figure as MplFigure

from sciencecollab.models.schemas import Figure

Items = Sequence[Dict[str, Any]]

YEAR_RE = re.compile(r"^[12]\d{3}$")

WEIGHT_EDGES = (0, 150, 250, 350, 450, 600, 800, 1500)
WEIGHT_LABELS = ("<150", "150", "250", "350", "450", "600", "800+")
LENGTH_BINS = 8

SVG_RC = {
    "svg.hashsalt": "sciencecollab",
    "svg.fonttype": "none",
    "font.family": "monospace",
    "font.size": 7,
}

BACKGROUND = "#18181b"
AXIS_COLOR = "#444444"
TEXT_COLOR = "#aaaaaa"

TOOL_COLORS = {
    "pubmed": "#6366f1",
    "arxiv": "#8b5cf6",
    "europepmc": "#3b82f6",
    "crossref": "#06b6d4",
    "semanticscholar": "#10b981",
    "chembl": "#06b6d4",
    "pubchem": "#06b6d4",
    "uniprot": "#22c55e",
    "pdb": "#a78bfa",
    "string": "#f97316",
    "reactome": "#22c55e",
    "openfda": "#22d3ee",
}
CATEGORY_PALETTE = ("#f59e0b", "#6366f1", "#22c55e", "#ef4444", "#8b5cf6", "#06b6d4")


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


# ──────────────────────────────────────────────
# Variants
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class YearSeries:
    kind = "year_histogram"
    tool: str
    years: Tuple[str, ...]

    def bins(self) -> Tuple[List[str], List[float]]:
        counts = Counter(self.years)
        labels = sorted(counts)
        return labels, [float(counts[y]) for y in labels]

    def title(self) -> str:
        return f"Publications by year · {self.tool} (n={len(self.years)})"


@dataclass(frozen=True)
class WeightHistogram:
    kind = "weight_histogram"
    tool: str
    weights: Tuple[float, ...]

    def bins(self) -> Tuple[List[str], List[float]]:
        counts = [
            float(sum(1 for w in self.weights if lo <= w < hi))
            for lo, hi in zip(WEIGHT_EDGES, WEIGHT_EDGES[1:])
        ]
        return list(WEIGHT_LABELS), counts

    def title(self) -> str:
        return f"Mol. weight distribution (Da) · {self.tool} (n={len(self.weights)})"


@dataclass(frozen=True)
class LengthHistogram:
    kind = "length_histogram"
    tool: str
    lengths: Tuple[float, ...]

    def bins(self) -> Tuple[List[str], List[float]]:
        bin_size = max(math.ceil(max(self.lengths) / LENGTH_BINS), 1)
        counts = [0.0] * LENGTH_BINS
        for length in self.lengths:
            counts[min(int(length // bin_size), LENGTH_BINS - 1)] += 1
        labels = [f"{i * bin_size}-{(i + 1) * bin_size}" for i in range(LENGTH_BINS)]
        return labels, counts

    def title(self) -> str:
        return f"Protein length (aa) · {self.tool} (n={len(self.lengths)})"


@dataclass(frozen=True)
class RankedScores:
    kind = "ranked_bars"
    tool: str
    heading: str
    entries: Tuple[Tuple[str, float], ...]

    def bins(self) -> Tuple[List[str], List[float]]:
        return [name for name, _ in self.entries], [score for _, score in self.entries]

    def title(self) -> str:
        return f"{self.heading} (top {len(self.entries)})"


@dataclass(frozen=True)
class CategoryCounts:
    kind = "category_counts"
    tool: str
    heading: str
    counts: Tuple[Tuple[str, int], ...]
    total: int

    def bins(self) -> Tuple[List[str], List[float]]:
        return [label for label, _ in self.counts], [float(c) for _, c in self.counts]

    def title(self) -> str:
        return f"{self.heading} (n={self.total})"


Variant = Union[YearSeries, WeightHistogram, LengthHistogram, RankedScores, CategoryCounts]


# ──────────────────────────────────────────────
# Extractors (one per family)
# ──────────────────────────────────────────────

def _year_of(item: Dict[str, Any]) -> Optional[str]:
    for key in ("year", "pubYear", "published"):
        if item.get(key) is not None:
            raw = str(item[key])[:4]
            return raw if YEAR_RE.match(raw) else None
    return None


def extract_years(tool: str, items: Items) -> Optional[YearSeries]:
    years = tuple(y for y in (_year_of(it) for it in items) if y)
    if len(set(years)) < 2:
        return None
    return YearSeries(tool, years)


def extract_weights(tool: str, items: Items) -> Optional[WeightHistogram]:
    weights = tuple(w for w in (_number(it.get("mw")) for it in items) if w is not None and 50 < w < 1500)
    if len(weights) < 2:
        return None
    return WeightHistogram(tool, weights)


def extract_lengths(tool: str, items: Items) -> Optional[LengthHistogram]:
    lengths = tuple(v for v in (_number(it.get("length")) for it in items) if v is not None and v > 0)
    if len(lengths) < 2:
        return None
    return LengthHistogram(tool, lengths)


def _ranked(tool: str, heading: str, pairs: List[Tuple[str, float]], top: int) -> Optional[RankedScores]:
    ranked = sorted(pairs, key=lambda p: p[1], reverse=True)[:top]
    if not ranked:
        return None
    return RankedScores(tool, heading, tuple(ranked))


def extract_pdb_scores(tool: str, items: Items) -> Optional[RankedScores]:
    pairs = []
    for it in items:
        score = _number(it.get("score"))
        if it.get("pdb_id") and score is not None and score > 0:
            pairs.append((str(it["pdb_id"]), score))
    return _ranked(tool, "PDB relevance scores", pairs, top=8)


def extract_string_scores(tool: str, items: Items) -> Optional[RankedScores]:
    pairs = []
    for it in items:
        score = _number(it.get("score"))
        if it.get("kind") == "interaction_partner" and score is not None:
            pairs.append((str(it.get("name") or ""), score))
    return _ranked(tool, "STRING interaction scores", pairs, top=7)


def extract_reactome_ranks(tool: str, items: Items) -> Optional[RankedScores]:
    named = [it for it in items if it.get("name")][:6]
    pairs = [(str(it["name"]), float(len(items) - i)) for i, it in enumerate(named)]
    return _ranked(tool, "Reactome pathways", pairs, top=6)


def _category_counts(
    tool: str,
    heading: str,
    items: Items,
    key: Callable[[Dict[str, Any]], str],
    order: str,
    top: Optional[int] = None,
) -> Optional[CategoryCounts]:
    counts = Counter(key(it) for it in items)
    if order == "label":
        entries = sorted(counts.items())
    elif order == "count":
        entries = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    else:
        entries = list(counts.items())
    if top is not None:
        entries = entries[:top]
    if not entries:
        return None
    return CategoryCounts(tool, heading, tuple(entries), len(items))


def _phase(item: Dict[str, Any]) -> str:
    phase = str(item.get("phase") or "N/A")
    return phase.replace("PHASE", "Ph").replace("_", "").replace(", ", "/")


def extract_phases(tool: str, items: Items) -> Optional[CategoryCounts]:
    return _category_counts(tool, "Clinical trials by phase", items, _phase, order="label")


def extract_routes(tool: str, items: Items) -> Optional[CategoryCounts]:
    return _category_counts(
        tool, "FDA drugs by route", items,
        lambda it: str(it.get("route") or "unknown").lower(), order="count", top=7,
    )


def extract_kegg_categories(tool: str, items: Items) -> Optional[CategoryCounts]:
    return _category_counts(
        tool, "KEGG entries by category", items,
        lambda it: str(it.get("category") or "other"), order="insertion",
    )


def extract_entities(tool: str, items: Items) -> Optional[CategoryCounts]:
    return _category_counts(
        tool, "Open Targets hits by entity", items,
        lambda it: str(it.get("entity") or "unknown"), order="count",
    )


EXTRACTORS: Dict[str, Callable[[str, Items], Optional[Variant]]] = {
    "pubmed": extract_years,
    "arxiv": extract_years,
    "europepmc": extract_years,
    "crossref": extract_years,
    "semanticscholar": extract_years,
    "chembl": extract_weights,
    "pubchem": extract_weights,
    "uniprot": extract_lengths,
    "pdb": extract_pdb_scores,
    "string": extract_string_scores,
    "reactome": extract_reactome_ranks,
    "clinicaltrials": extract_phases,
    "openfda": extract_routes,
    "kegg": extract_kegg_categories,
    "opentargets": extract_entities,
}


# ──────────────────────────────────────────────
# Rendering
# ──────────────────────────────────────────────

def _style_axes(ax) -> None:
    ax.set_facecolor(BACKGROUND)
    for side in ("top", "right"):
        ax.spines[side].set_visible(False)
    for side in ("left", "bottom"):
        ax.spines[side].set_color(AXIS_COLOR)
    ax.tick_params(colors="#666666", labelsize=6, length=2)


def draw_svg(variant: Variant, labels: List[str], counts: List[float]) -> str:
    color = TOOL_COLORS.get(variant.tool, "#6366f1")
    with matplotlib.rc_context(SVG_RC):
        fig = MplFigure(figsize=(3.4, 1.7), dpi=100, facecolor=BACKGROUND)
        ax = fig.add_subplot()
        _style_axes(ax)
        ax.set_title(variant.title(), color=TEXT_COLOR, fontsize=7)

        if isinstance(variant, RankedScores):
            positions = list(range(len(labels)))
            ax.barh(positions, counts, color=color, alpha=0.85)
            ax.set_yticks(positions, [label[:16] for label in labels])
            ax.invert_yaxis()
        else:
            if isinstance(variant, CategoryCounts):
                colors = [CATEGORY_PALETTE[i % len(CATEGORY_PALETTE)] for i in range(len(labels))]
            else:
                colors = [color] * len(labels)
            positions = list(range(len(labels)))
            ax.bar(positions, counts, color=colors, alpha=0.85)
            ax.set_xticks(positions, [label[:8] for label in labels])

        fig.tight_layout(pad=0.4)
        buf = io.StringIO()
        fig.savefig(buf, format="svg", facecolor=BACKGROUND, metadata={"Date": None})
    return buf.getvalue()


class FigureSynthesizer:
    """
    Stateless renderer: ``render(tool, items)`` always returns the same
    Figure (or the same None) for the same input.
    """

    def extract(self, tool: str, items: Items) -> Optional[Variant]:
        extractor = EXTRACTORS.get(tool)
        if extractor is None or not items:
            return None
        return extractor(tool, items)

    def render(self, tool: str, items: Items) -> Optional[Figure]:
        variant = self.extract(tool, items)
        if variant is None:
            return None
        labels, counts = variant.bins()
        return Figure(
            tool=tool,
            kind=variant.kind,
            title=variant.title(),
            labels=labels,
            counts=counts,
            svg=draw_svg(variant, labels, counts),
        )
