"""Resolution of caller options into a TracingConfig.

AIDEV-NOTE: Order matters - the preset (or the global defaults) is applied
first, then every explicitly supplied option overrides it. Only enum-valued
strings are validated here; numeric values are passed through untouched and
it is up to the engines to cope with out-of-range input.
"""

import dataclasses
import logging

from vectortrace.errors import ConfigError
from vectortrace.models import (
    ColorMode,
    Hierarchical,
    PathSimplifyMode,
    TraceOptions,
    TracingConfig,
)

logger = logging.getLogger(__name__)

PRESETS: "dict[str, TracingConfig]" = {
    "bw": TracingConfig(
        color_mode=ColorMode.BINARY,
        filter_speckle=4,
        color_precision=6,
        layer_difference=16,
        corner_threshold=60,
        path_precision=8,
    ),
    "poster": TracingConfig(
        color_mode=ColorMode.COLOR,
        filter_speckle=4,
        color_precision=8,
        layer_difference=16,
        corner_threshold=60,
        path_precision=8,
    ),
    "photo": TracingConfig(
        color_mode=ColorMode.COLOR,
        filter_speckle=10,
        color_precision=8,
        layer_difference=48,
        corner_threshold=180,
        path_precision=8,
    ),
}

COLOR_MODES = {
    "color": ColorMode.COLOR,
    "bw": ColorMode.BINARY,
    "binary": ColorMode.BINARY,
}

SIMPLIFY_MODES = {
    "pixel": PathSimplifyMode.NONE,
    "none": PathSimplifyMode.NONE,
    "polygon": PathSimplifyMode.POLYGON,
    "spline": PathSimplifyMode.SPLINE,
}

HIERARCHICAL_MODES = {
    "stacked": Hierarchical.STACKED,
    "cutout": Hierarchical.CUTOUT,
}


def _choices(*names: str) -> str:
    quoted = [f"'{name}'" for name in names]
    if len(quoted) == 2:
        return f"{quoted[0]} or {quoted[1]}"
    return ", ".join(quoted[:-1]) + f", or {quoted[-1]}"


def _lookup(table: dict, value: str, label: str, shown: "tuple[str, ...]"):
    try:
        return table[value]
    except KeyError:
        raise ConfigError(
            f"Unknown {label}: '{value}'. Use {_choices(*shown)}."
        ) from None


def base_config(preset: str | None = None) -> TracingConfig:
    """Return the starting configuration for a preset name (or defaults)."""
    if preset is None:
        return TracingConfig()
    return _lookup(PRESETS, preset, "preset", ("bw", "poster", "photo"))


def resolve_config(options: TraceOptions | None = None) -> TracingConfig:
    """Build the immutable TracingConfig for one conversion call.

    Args:
        options: Caller overrides, ``None`` for all defaults

    Returns:
        Resolved TracingConfig

    Raises:
        ConfigError: If the preset or an enum-valued option is unknown
    """
    options = options or TraceOptions()
    config = base_config(options.preset)

    overrides = {}
    if options.colormode is not None:
        overrides["color_mode"] = _lookup(
            COLOR_MODES, options.colormode, "colormode", ("color", "bw")
        )
    if options.filter_speckle is not None:
        overrides["filter_speckle"] = options.filter_speckle
    if options.color_precision is not None:
        overrides["color_precision"] = options.color_precision
    if options.gradient_step is not None:
        overrides["layer_difference"] = options.gradient_step
    if options.corner_threshold is not None:
        overrides["corner_threshold"] = options.corner_threshold
    if options.segment_length is not None:
        overrides["length_threshold"] = options.segment_length
    if options.splice_threshold is not None:
        overrides["splice_threshold"] = options.splice_threshold
    if options.mode is not None:
        overrides["mode"] = _lookup(
            SIMPLIFY_MODES, options.mode, "mode", ("pixel", "polygon", "spline")
        )
    if options.hierarchical is not None:
        overrides["hierarchical"] = _lookup(
            HIERARCHICAL_MODES,
            options.hierarchical,
            "hierarchical",
            ("stacked", "cutout"),
        )
    if options.path_precision is not None:
        overrides["path_precision"] = options.path_precision

    if overrides:
        logger.debug(f"Applying option overrides: {sorted(overrides)}")
        config = dataclasses.replace(config, **overrides)
    return config
