"""
Data types shared by the rendering pipeline and its callers.

Each type can be built from the camelCase/kebab-case dictionaries used by
front ends and JSON settings (from_dict) and converted back (to_dict).
Amplitude scaling is a tagged union of four dataclasses keyed by 'type'.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from models.errors import SegyValidationError

RGB = Tuple[int, int, int]


def _enum_from_name(enum_cls, name: str, what: str):
    try:
        return enum_cls(str(name).strip().lower())
    except ValueError:
        valid = ', '.join(m.value for m in enum_cls)
        raise SegyValidationError(f"Unknown {what} '{name}'. Expected one of: {valid}") from None


class ColormapType(Enum):
    """Colormaps for variable density rendering."""
    SEISMIC = 'seismic'                        # red (negative), white (zero), blue (positive)
    GRAYSCALE = 'grayscale'                    # black to white
    GRAYSCALE_INVERTED = 'grayscale-inverted'  # white to black
    VIRIDIS = 'viridis'                        # perceptually uniform

    @classmethod
    def from_name(cls, name: str) -> 'ColormapType':
        return _enum_from_name(cls, name, 'colormap')


class RenderMode(Enum):
    """Rasterization modes."""
    VARIABLE_DENSITY = 'variable-density'
    WIGGLE = 'wiggle'
    WIGGLE_VARIABLE_DENSITY = 'wiggle-variable-density'

    @classmethod
    def from_name(cls, name: str) -> 'RenderMode':
        return _enum_from_name(cls, name, 'render mode')


class ImageFormat(Enum):
    PNG = 'png'


# =============================================================================
# Amplitude scaling
# =============================================================================

@dataclass(frozen=True)
class GlobalScaling:
    """Divide every sample by a fixed maximum amplitude."""
    max_amplitude: float
    TYPE = 'global'

    def __post_init__(self):
        if self.max_amplitude == 0:
            raise SegyValidationError("Global scaling requires a non-zero max amplitude")

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.TYPE, 'maxAmplitude': self.max_amplitude}


@dataclass(frozen=True)
class PerTraceScaling:
    """
    Per-trace AGC.

    Without a window each trace is divided by its own peak; with a window
    every sample is divided by the RMS of the window centred on it.
    """
    window_size: Optional[int] = None
    TYPE = 'per-trace'

    def __post_init__(self):
        if self.window_size is not None and self.window_size < 0:
            raise SegyValidationError(f"AGC window size must be >= 0, got {self.window_size}")

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.TYPE, 'windowSize': self.window_size}


@dataclass(frozen=True)
class PercentileScaling:
    """Clip at a percentile of |amplitude| pooled over all traces."""
    percentile: float = 0.98
    TYPE = 'percentile'

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.TYPE, 'percentile': self.percentile}


@dataclass(frozen=True)
class ManualScaling:
    """Multiply every sample by a fixed factor."""
    scale: float = 1.0
    TYPE = 'manual'

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.TYPE, 'scale': self.scale}


AmplitudeScaling = Union[GlobalScaling, PerTraceScaling, PercentileScaling, ManualScaling]


def _number(data: Dict[str, Any], key: str, what: str, cast=float):
    if key not in data:
        raise SegyValidationError(f"{what} scaling requires '{key}'")
    try:
        return cast(data[key])
    except (TypeError, ValueError):
        raise SegyValidationError(f"Invalid '{key}' for {what} scaling: {data[key]!r}") from None


def scaling_from_dict(data: Dict[str, Any]) -> AmplitudeScaling:
    """
    Parse a scaling dict tagged by 'type'.

    Examples:
        {'type': 'global', 'maxAmplitude': 1000.0}
        {'type': 'per-trace', 'windowSize': 51}
        {'type': 'percentile', 'percentile': 0.98}
        {'type': 'manual', 'scale': 0.5}
    """
    if not isinstance(data, dict):
        raise SegyValidationError(f"Amplitude scaling must be an object, got {data!r}")
    kind = str(data.get('type', '')).strip().lower()

    if kind == GlobalScaling.TYPE:
        return GlobalScaling(max_amplitude=_number(data, 'maxAmplitude', 'global'))
    if kind == PerTraceScaling.TYPE:
        window = data.get('windowSize')
        if window is not None:
            window = _number(data, 'windowSize', 'per-trace', int)
        return PerTraceScaling(window_size=window)
    if kind == PercentileScaling.TYPE:
        return PercentileScaling(percentile=_number(data, 'percentile', 'percentile'))
    if kind == ManualScaling.TYPE:
        return ManualScaling(scale=_number(data, 'scale', 'manual'))

    raise SegyValidationError(
        f"Unknown amplitude scaling type '{data.get('type')}'. "
        f"Expected one of: global, per-trace, percentile, manual"
    )


# =============================================================================
# Viewport, wiggle style, render request
# =============================================================================

@dataclass(frozen=True)
class ViewportConfig:
    """
    Trace range and output size of a render.

    Attributes:
        start_trace: First trace index (0-based)
        trace_count: Number of traces
        width: Output image width in pixels
        height: Output image height in pixels
    """
    start_trace: int
    trace_count: int
    width: int
    height: int

    def __post_init__(self):
        if self.start_trace < 0 or self.trace_count < 0:
            raise SegyValidationError(
                f"Invalid viewport trace range: start={self.start_trace}, count={self.trace_count}"
            )
        if self.width <= 0 or self.height <= 0:
            raise SegyValidationError(
                f"Viewport size must be positive, got {self.width}x{self.height}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ViewportConfig':
        try:
            return cls(
                start_trace=int(data['startTrace']),
                trace_count=int(data['traceCount']),
                width=int(data['width']),
                height=int(data['height']),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SegyValidationError(f"Invalid viewport {data!r}: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            'startTrace': self.start_trace,
            'traceCount': self.trace_count,
            'width': self.width,
            'height': self.height,
        }


def _rgb(value: Any, what: str) -> RGB:
    try:
        r, g, b = (int(c) for c in value)
    except (TypeError, ValueError):
        raise SegyValidationError(f"{what} must be three integers, got {value!r}") from None
    if not all(0 <= c <= 255 for c in (r, g, b)):
        raise SegyValidationError(f"{what} components must be in 0..255, got {value!r}")
    return (r, g, b)


@dataclass(frozen=True)
class WiggleConfig:
    """Line and fill style for wiggle traces."""
    line_width: float = 1.0
    line_color: RGB = (0, 0, 0)
    fill_positive: bool = False
    fill_negative: bool = False
    positive_fill_color: RGB = (0, 0, 0)
    negative_fill_color: RGB = (255, 0, 0)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WiggleConfig':
        defaults = cls()
        try:
            line_width = float(data.get('lineWidth', defaults.line_width))
        except (TypeError, ValueError):
            raise SegyValidationError(f"Invalid lineWidth: {data.get('lineWidth')!r}") from None
        return cls(
            line_width=line_width,
            line_color=_rgb(data.get('lineColor', defaults.line_color), 'lineColor'),
            fill_positive=bool(data.get('fillPositive', defaults.fill_positive)),
            fill_negative=bool(data.get('fillNegative', defaults.fill_negative)),
            positive_fill_color=_rgb(
                data.get('positiveFillColor', defaults.positive_fill_color), 'positiveFillColor'
            ),
            negative_fill_color=_rgb(
                data.get('negativeFillColor', defaults.negative_fill_color), 'negativeFillColor'
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lineWidth': self.line_width,
            'lineColor': list(self.line_color),
            'fillPositive': self.fill_positive,
            'fillNegative': self.fill_negative,
            'positiveFillColor': list(self.positive_fill_color),
            'negativeFillColor': list(self.negative_fill_color),
        }


@dataclass(frozen=True)
class RenderConfig:
    """Complete render request."""
    viewport: ViewportConfig
    colormap_type: ColormapType = ColormapType.SEISMIC
    scaling: AmplitudeScaling = field(default_factory=PercentileScaling)
    render_mode: RenderMode = RenderMode.VARIABLE_DENSITY
    wiggle_config: Optional[WiggleConfig] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderConfig':
        if 'viewport' not in data:
            raise SegyValidationError("Render config requires 'viewport'")
        wiggle = data.get('wiggleConfig')
        return cls(
            viewport=ViewportConfig.from_dict(data['viewport']),
            colormap_type=ColormapType.from_name(data.get('colormapType', 'seismic')),
            scaling=scaling_from_dict(data.get('scaling', {'type': 'percentile', 'percentile': 0.98})),
            render_mode=RenderMode.from_name(data.get('renderMode', 'variable-density')),
            wiggle_config=WiggleConfig.from_dict(wiggle) if wiggle is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'viewport': self.viewport.to_dict(),
            'colormapType': self.colormap_type.value,
            'scaling': self.scaling.to_dict(),
            'renderMode': self.render_mode.value,
            'wiggleConfig': self.wiggle_config.to_dict() if self.wiggle_config else None,
        }


@dataclass
class RenderedImage:
    """Encoded render result."""
    width: int
    height: int
    data: bytes
    format: ImageFormat = ImageFormat.PNG

    def save(self, path) -> None:
        """Write the encoded bytes to a file."""
        with open(path, 'wb') as f:
            f.write(self.data)
