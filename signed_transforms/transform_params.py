"""
Transform Parameters Module

Maps abstract image transforms onto the parameters understood by the
Cloudflare image worker.
"""

import logging
from typing import Optional, Tuple, Union

from .errors import InvalidPositionError, UnsupportedAssetError
from .models import AssetRef, CanonicalParams, TransformMode, TransformParam, TransformSpec
from .settings import DEFAULT_IMAGE_QUALITY

logger = logging.getLogger(__name__)

# Formats the worker can produce
SUPPORTED_IMAGE_FORMATS = ('jpg', 'jpeg', 'gif', 'png', 'avif', 'webp')

DEFAULT_BACKGROUND = '#FFFFFF'
DEFAULT_FIT = 'scale-down'

FIT_VALUES = {
    TransformMode.STRETCH.value: 'squeeze',
    TransformMode.CROP.value: 'cover',
    TransformMode.LETTERBOX.value: 'pad',
}

X_POSITIONS = {'left': 0, 'center': 0.5, 'right': 1}
Y_POSITIONS = {'top': 0, 'center': 0.5, 'bottom': 1}

Number = Union[int, float]


def is_supported_format(extension: str) -> bool:
    """Check whether the worker can output the given file extension."""
    return extension.lower().lstrip('.') in SUPPORTED_IMAGE_FORMATS


def format_number(value: Number) -> str:
    """
    Render a coordinate the way the worker expects it.

    Whole numbers never carry a decimal part: 0.0 -> '0', 1.0 -> '1',
    0.25 -> '0.25'.
    """
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    return str(value)


class TransformParameterMapper:
    """Derives worker parameters from a transform and the asset it applies to."""

    def __init__(
        self,
        transform_gifs: bool = True,
        transform_svgs: bool = True,
        default_quality: int = DEFAULT_IMAGE_QUALITY
    ):
        """
        Initialize the mapper.

        Args:
            transform_gifs: Whether GIF assets may be transformed
            transform_svgs: Whether SVG assets may be transformed
            default_quality: Quality used when a transform does not set one
        """
        self.transform_gifs = transform_gifs
        self.transform_svgs = transform_svgs
        self.default_quality = default_quality

    @classmethod
    def from_settings(cls, settings) -> "TransformParameterMapper":
        return cls(
            transform_gifs=settings.transform_gifs,
            transform_svgs=settings.transform_svgs,
            default_quality=settings.default_image_quality,
        )

    def assert_transformable(self, asset: AssetRef) -> None:
        """
        Reject assets whose mime type may not be transformed.

        Raises:
            UnsupportedAssetError: For GIF or SVG assets when their flag is off
        """
        mime_type = asset.mime_type

        # PDFs are supported by the worker
        if mime_type == 'application/pdf':
            return

        if mime_type == 'image/gif' and not self.transform_gifs:
            raise UnsupportedAssetError("GIF files shouldn't be transformed.")

        if mime_type == 'image/svg+xml' and not self.transform_svgs:
            raise UnsupportedAssetError("SVG files shouldn't be transformed.")

    def map(self, spec: TransformSpec, asset: AssetRef) -> CanonicalParams:
        """
        Build the canonical worker parameters for a transform.

        Args:
            spec: The requested transform
            asset: The asset being transformed

        Returns:
            CanonicalParams with absent values omitted

        Raises:
            UnsupportedAssetError: If the asset's mime type is disallowed
            InvalidPositionError: If spec.position cannot be parsed
        """
        self.assert_transformable(asset)

        params = CanonicalParams()
        params.set(TransformParam.WIDTH, spec.width or None)
        params.set(TransformParam.HEIGHT, spec.height or None)
        params.set(TransformParam.QUALITY, self.get_quality(spec))
        params.set(TransformParam.FORMAT, get_format_value(spec))
        params.set(TransformParam.FIT, get_fit_value(spec))
        params.set(TransformParam.BACKGROUND, get_background_value(spec))
        params.set(TransformParam.GRAVITY, get_gravity_value(spec, asset))

        logger.debug(f"Mapped {spec} to {params}")
        return params

    def get_quality(self, spec: TransformSpec) -> int:
        if spec.quality and spec.quality > 0:
            return spec.quality
        return self.default_quality


def get_format_value(spec: TransformSpec) -> str:
    """Worker output format, 'auto' when the transform leaves it open."""
    if spec.format == 'jpg' and spec.interlace == 'none':
        return 'baseline-jpeg'

    if spec.format == 'jpg':
        return 'jpeg'

    return spec.format if spec.format is not None else 'auto'


def get_fit_value(spec: TransformSpec) -> str:
    mode = spec.mode.value if isinstance(spec.mode, TransformMode) else spec.mode

    if mode == TransformMode.FIT.value:
        return 'contain' if spec.upscale else DEFAULT_FIT

    return FIT_VALUES.get(mode, DEFAULT_FIT)


def get_background_value(spec: TransformSpec) -> Optional[str]:
    mode = spec.mode.value if isinstance(spec.mode, TransformMode) else spec.mode
    if mode != TransformMode.LETTERBOX.value:
        return None
    return spec.fill if spec.fill is not None else DEFAULT_BACKGROUND


def get_gravity_value(spec: TransformSpec, asset: AssetRef) -> Optional[str]:
    """
    Gravity as '{x}x{y}', or None when the image should stay centred.

    An asset focal point always wins over the transform's position.
    """
    gravity = get_gravity(spec, asset)
    if gravity is None:
        return None

    x, y = gravity
    return f"{format_number(x)}x{format_number(y)}"


def get_gravity(spec: TransformSpec, asset: AssetRef) -> Optional[Tuple[Number, Number]]:
    if asset.focal_point is not None:
        return asset.focal_point.x, asset.focal_point.y

    if spec.position == 'center-center':
        return None

    return parse_position(spec.position)


def parse_position(position: str) -> Tuple[Number, Number]:
    """
    Parse a '{y}-{x}' position such as 'top-left' into (x, y) coordinates.

    Raises:
        InvalidPositionError: If either token is unknown
    """
    parts = (position or '').split('-')
    y_position = parts[0]
    x_position = parts[1] if len(parts) > 1 else None

    if x_position not in X_POSITIONS or y_position not in Y_POSITIONS:
        raise InvalidPositionError(f"Invalid `position` value: {position!r}")

    return X_POSITIONS[x_position], Y_POSITIONS[y_position]
