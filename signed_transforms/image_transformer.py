"""
Image Transformer Module

Entry point for turning an asset and a transform into a signed worker URL.
"""

import logging
import time
from typing import Any, Callable, Mapping, Union

from .models import AssetRef, TransformSpec
from .settings import Settings
from .transform_params import TransformParameterMapper
from .url_signer import SignedURLBuilder

logger = logging.getLogger(__name__)


class ImageTransformer:
    """Produces signed transform URLs for assets."""

    def __init__(self, settings: Settings, clock: Callable[[], float] = time.time):
        self.settings = settings
        self.mapper = TransformParameterMapper.from_settings(settings)
        self.builder = SignedURLBuilder(settings, clock=clock)

    def get_transform_url(
        self,
        asset: Union[AssetRef, Any],
        transform: Union[TransformSpec, Mapping[str, Any]]
    ) -> str:
        """
        Get the signed worker URL for a transformed asset.

        Args:
            asset: An AssetRef, or a host asset exposing get_mime_type(),
                get_focal_point() and get_public_url()
            transform: A TransformSpec or a mapping of its fields

        Returns:
            The signed URL

        Raises:
            UnsupportedAssetError: If the asset type may not be transformed
            InvalidPositionError: If the transform position is malformed
            ConfigurationError: If worker URL or secret are not configured
            MissingSourceUrlError: If the asset has no public URL
        """
        if not isinstance(asset, AssetRef):
            asset = AssetRef.from_asset(asset)
        if not isinstance(transform, TransformSpec):
            transform = TransformSpec.from_dict(transform)

        params = self.mapper.map(transform, asset)
        url = self.builder.build(asset.public_url, params)

        logger.debug(f"Signed transform for {asset.public_url}")
        return url
