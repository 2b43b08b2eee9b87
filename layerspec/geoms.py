"""Registry of geometry kinds a layer may draw.

Each :class:`GeomDef` records which channels a geometry needs, which fixed
parameters it accepts, the statistic that turns rows into marks, and the
visual defaults used when a channel is neither mapped nor fixed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

# Fixed parameters named after a channel; setting one suppresses that channel's mapping.
CHANNEL_PARAMS = frozenset({"color", "fill", "alpha", "size", "shape", "linetype"})

_POINT_PARAMS = frozenset({"color", "fill", "alpha", "size", "shape"})
_LINE_PARAMS = frozenset({"color", "alpha", "size", "linetype"})
_AREA_PARAMS = frozenset({"color", "fill", "alpha", "size", "linetype"})


@dataclass(frozen=True)
class GeomDef:
    """Static description of one geometry kind.

    Attributes:
        kind: Geometry name used in ``PlotSpec.add_layer``.
        stat: Statistic applied before drawing (``identity``, ``smooth``,
            ``bin``, ``freqpoly``, ``density``, ``boxplot``, ``count``).
        required: Channels that must be mapped (or fixed) for the layer.
        params: Fixed parameters the geometry accepts.
        defaults: Visual values for unmapped, unfixed channels.
        accepts_stat: Whether ``stat=`` may select a statistical transform.
        stacks: Whether bars are stacked within one x position.
    """

    kind: str
    stat: str
    required: tuple[str, ...]
    params: frozenset
    defaults: Mapping[str, Any] = field(default_factory=dict)
    accepts_stat: bool = False
    stacks: bool = False


def _defaults(**values) -> Mapping[str, Any]:
    return MappingProxyType(dict(values))


GEOMS: Mapping[str, GeomDef] = MappingProxyType(
    {
        "point": GeomDef(
            kind="point",
            stat="identity",
            required=("x", "y"),
            params=_POINT_PARAMS,
            defaults=_defaults(color="#000000", fill="none", alpha=1.0, size=6.0, shape="o"),
        ),
        "jitter": GeomDef(
            kind="jitter",
            stat="identity",
            required=("x", "y"),
            params=_POINT_PARAMS | {"width", "height", "seed"},
            defaults=_defaults(color="#000000", fill="none", alpha=1.0, size=6.0, shape="o"),
        ),
        "line": GeomDef(
            kind="line",
            stat="identity",
            required=("x", "y"),
            params=_LINE_PARAMS,
            defaults=_defaults(color="#000000", alpha=1.0, size=1.2, linetype="-"),
        ),
        "smooth": GeomDef(
            kind="smooth",
            stat="smooth",
            required=("x", "y"),
            params=_AREA_PARAMS,
            defaults=_defaults(
                color="#3366FF", fill="#999999", alpha=0.4, size=2.0, linetype="-"
            ),
            accepts_stat=True,
        ),
        "histogram": GeomDef(
            kind="histogram",
            stat="bin",
            required=("x",),
            params=_AREA_PARAMS | {"binwidth", "bins"},
            defaults=_defaults(
                color="none", fill="#595959", alpha=1.0, size=0.5, linetype="-"
            ),
            stacks=True,
        ),
        "freqpoly": GeomDef(
            kind="freqpoly",
            stat="freqpoly",
            required=("x",),
            params=_LINE_PARAMS | {"binwidth", "bins"},
            defaults=_defaults(color="#000000", alpha=1.0, size=1.2, linetype="-"),
        ),
        "density": GeomDef(
            kind="density",
            stat="density",
            required=("x",),
            params=_AREA_PARAMS | {"adjust"},
            defaults=_defaults(
                color="#000000", fill="none", alpha=1.0, size=1.2, linetype="-"
            ),
        ),
        "boxplot": GeomDef(
            kind="boxplot",
            stat="boxplot",
            required=("y",),
            params=_AREA_PARAMS | {"width"},
            defaults=_defaults(
                color="#333333", fill="#FFFFFF", alpha=1.0, size=1.0, linetype="-"
            ),
        ),
        "bar": GeomDef(
            kind="bar",
            stat="count",
            required=("x",),
            params=_AREA_PARAMS | {"width"},
            defaults=_defaults(
                color="none", fill="#595959", alpha=1.0, size=0.5, linetype="-"
            ),
            stacks=True,
        ),
        "col": GeomDef(
            kind="col",
            stat="identity",
            required=("x", "y"),
            params=_AREA_PARAMS | {"width"},
            defaults=_defaults(
                color="none", fill="#595959", alpha=1.0, size=0.5, linetype="-"
            ),
            stacks=True,
        ),
    }
)

GEOM_KINDS: tuple[str, ...] = tuple(GEOMS)


def get_geom(kind: str) -> GeomDef:
    """Return the :class:`GeomDef` for ``kind`` or raise ``ValueError``."""
    try:
        return GEOMS[kind]
    except KeyError:
        raise ValueError(
            f"Unsupported geometry kind '{kind}'. Expected one of {GEOM_KINDS}."
        ) from None
