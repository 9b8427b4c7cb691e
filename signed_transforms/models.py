"""
Models Module

Data structures shared by the signing pipeline and the cache purge flow.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .errors import ProviderRejectionError

# Cloudflare accepts at most 30 URLs per purge_cache request
MAX_PURGE_BATCH_SIZE = 30


class TransformMode(str, Enum):
    """Resize modes a transform may request."""

    FIT = "fit"
    STRETCH = "stretch"
    CROP = "crop"
    LETTERBOX = "letterbox"


class TransformParam(str, Enum):
    """Parameter names understood by the worker, in storage order."""

    WIDTH = "width"
    HEIGHT = "height"
    QUALITY = "quality"
    FORMAT = "format"
    FIT = "fit"
    BACKGROUND = "background"
    GRAVITY = "gravity"


@dataclass(frozen=True)
class TransformSpec:
    """An abstract image transform as requested by the caller."""

    width: Optional[int] = None
    height: Optional[int] = None
    quality: Optional[int] = None
    mode: str = TransformMode.CROP.value
    upscale: bool = True
    format: Optional[str] = None
    interlace: Optional[str] = None
    position: str = "center-center"
    fill: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TransformSpec":
        """Build a spec from a loose mapping, ignoring unknown keys."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__ and v is not None}
        mode = known.get('mode')
        if isinstance(mode, TransformMode):
            known['mode'] = mode.value
        return cls(**known)


@dataclass(frozen=True)
class FocalPoint:
    """Normalized (0..1, 0..1) point of interest on an image."""

    x: float
    y: float

    def __post_init__(self):
        for name, value in (('x', self.x), ('y', self.y)):
            if not 0 <= value <= 1:
                raise ValueError(f"Focal point {name} must be between 0 and 1, got {value}")


@dataclass(frozen=True)
class AssetRef:
    """
    The parts of a stored asset the signing pipeline needs.

    The asset's public URL is the only supported way of locating the source
    image; callers that store assets elsewhere must resolve a URL first.
    """

    mime_type: str
    public_url: Optional[str] = None
    focal_point: Optional[FocalPoint] = None

    @classmethod
    def from_asset(cls, asset: Any) -> "AssetRef":
        """
        Adapt a host asset object exposing get_mime_type(), get_focal_point()
        and get_public_url().

        The focal point may be returned as a FocalPoint, a mapping with x/y
        keys or an (x, y) pair.
        """
        focal = asset.get_focal_point()
        if focal is not None and not isinstance(focal, FocalPoint):
            if isinstance(focal, Mapping):
                focal = FocalPoint(float(focal['x']), float(focal['y']))
            else:
                x, y = focal
                focal = FocalPoint(float(x), float(y))

        return cls(
            mime_type=asset.get_mime_type(),
            public_url=asset.get_public_url(),
            focal_point=focal,
        )


class CanonicalParams:
    """
    Ordered transform parameters keyed by TransformParam.

    None values are never stored. Everything stored is a string, and
    iteration follows TransformParam declaration order regardless of the
    order values were set in.
    """

    def __init__(self, values: Optional[Mapping[Any, Any]] = None):
        self._values: Dict[TransformParam, str] = {}
        if values:
            for key, value in values.items():
                self.set(key, value)

    def set(self, key: Any, value: Any) -> None:
        param = TransformParam(key)
        if value is None:
            self._values.pop(param, None)
            return
        self._values[param] = str(value)

    def get(self, key: Any) -> Optional[str]:
        return self._values.get(TransformParam(key))

    def items(self) -> List[Tuple[str, str]]:
        """Stored (name, value) pairs in vocabulary order."""
        return [(param.value, self._values[param]) for param in TransformParam if param in self._values]

    def sorted_items(self) -> List[Tuple[str, str]]:
        """Stored (name, value) pairs sorted by name."""
        return sorted(self.items(), key=lambda item: item[0].encode('utf-8'))

    def to_dict(self) -> Dict[str, str]:
        return dict(self.items())

    def __contains__(self, key: Any) -> bool:
        try:
            return TransformParam(key) in self._values
        except ValueError:
            return False

    def __iter__(self) -> Iterator[str]:
        return iter(name for name, _ in self.items())

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CanonicalParams):
            return NotImplemented
        return self.items() == other.items()

    def __repr__(self) -> str:
        return f"CanonicalParams({self.to_dict()!r})"


@dataclass(frozen=True)
class SigningContext:
    """Inputs to a single signature computation."""

    source_url: str
    expires_at: Optional[int] = None
    canonical_transforms: str = ""


@dataclass(frozen=True)
class SignedRequest:
    """A fully signed worker request. Params are the signed (name, value) pairs."""

    worker_url: str
    source_url: str
    signature: str
    params: Tuple[Tuple[str, str], ...]
    expires_at: Optional[int] = None

    def query_params(self) -> List[Tuple[str, str]]:
        """Query parameters in the order the worker expects them."""
        query = [('url', self.source_url), ('signature', self.signature)]
        if self.expires_at is not None:
            query.append(('expires', str(self.expires_at)))
        query.extend(self.params)
        return query


@dataclass(frozen=True)
class PurgeBatch:
    """Up to MAX_PURGE_BATCH_SIZE URLs purged in one API request."""

    urls: Tuple[str, ...]
    prefix: Optional[str] = None

    def __post_init__(self):
        if not self.urls:
            raise ValueError("A purge batch needs at least one URL")
        if len(self.urls) > MAX_PURGE_BATCH_SIZE:
            raise ValueError(
                f"A purge batch holds at most {MAX_PURGE_BATCH_SIZE} URLs, got {len(self.urls)}"
            )


@dataclass
class PurgeOutcome:
    """Result of one purge request as reported by Cloudflare."""

    success: bool
    status_code: int
    errors: List[str] = field(default_factory=list)

    @classmethod
    def combine(cls, outcomes: List["PurgeOutcome"]) -> "PurgeOutcome":
        """Merge the outcomes of several requests; any failure fails the whole."""
        failed = [outcome for outcome in outcomes if not outcome.success]
        if not failed:
            return cls(success=True, status_code=outcomes[-1].status_code if outcomes else 200)

        errors = [error for outcome in failed for error in outcome.errors]
        return cls(success=False, status_code=failed[0].status_code, errors=errors)

    def raise_for_status(self) -> None:
        """Raise ProviderRejectionError if Cloudflare did not accept the purge."""
        if not self.success:
            raise ProviderRejectionError(self.status_code, self.errors)
