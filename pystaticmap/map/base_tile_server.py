"""Base tile server utilities and base class.

This module provides a small base class that centralizes the logic shared
by tile server clients in this package:
- provider registry handling and introspection
- API key resolution
- URL building for templated tile endpoints (``{z}``, ``{x}``, ``{y}``,
  ``{s}``, ``{quadkey}``, ``{api_key}``)

Subclasses should define a `_PROVIDERS` class attribute describing
available providers and may extend behavior as needed.
"""
from typing import List, Optional, Dict, Any, Sequence
from datetime import datetime
import os
import random
import warnings

from pystaticmap.gis.projection import tile_xy_to_quad_key


class BaseTileServer:
    """Minimal base class for tile server clients.

    A server is configured either by a registered provider name or by a
    raw URL template. Subclasses should set a class-level `_PROVIDERS` dict
    mapping provider names to configuration dictionaries.
    """

    _PROVIDERS: Dict[str, Dict[str, Any]] = {}

    def __init__(
        self,
        provider: Optional[str] = None,
        url_template: Optional[str] = None,
        api_key: Optional[str] = None,
        tile_size: Optional[int] = None,
        subdomains: Optional[Sequence[str]] = None,
        reverse_y: bool = False,
    ) -> None:
        if provider is not None:
            if provider not in self._PROVIDERS:
                available = ', '.join(self._PROVIDERS.keys())
                raise ValueError(f"Unknown provider '{provider}'. Available providers: {available}")
            self._config = self._PROVIDERS[provider].copy()
        else:
            self._config = {'url_template': url_template, 'requires_api_key': False}

        if url_template is not None:
            self._config['url_template'] = url_template

        self.provider = provider
        self.tile_size = tile_size or self._config.get('tile_size') or 256
        self.subdomains = list(subdomains if subdomains is not None else self._config.get('subdomains', []))
        self.reverse_y = reverse_y or self._config.get('reverse_y', False)

        self.api_key = api_key or self._key_from_env()

    def _key_from_env(self) -> Optional[str]:
        if not self._config.get('requires_api_key'):
            return None
        env_name = self._config.get('api_env')
        key = os.environ.get(env_name) if env_name else None
        if not key:
            source = f"the {env_name} environment variable" if env_name else 'the api_key argument'
            warnings.warn(
                f"Tile provider '{self.provider}' requires an API key; set it with api_key= or {source}.",
                UserWarning,
            )
        return key

    # Instance methods

    def get_url_template(self) -> Optional[str]:
        """Get the URL template for this server.

        Returns:
            URL template string with placeholders for {z}, {x}, {y} or
            {quadkey}, and optionally {s} and {api_key}. ``None`` when the
            map is drawn without a base layer.
        """
        return self._config.get('url_template')

    def build_tile_url(self, z: int, x: int, y: int) -> str:
        """Format the configured URL template for a tile.

        ``x`` and ``y`` must already be wrapped into the tile pyramid.
        A ``{quadkey}`` placeholder takes precedence over ``{z}/{x}/{y}``.
        """
        url = self.get_url_template()
        if '{quadkey}' in url:
            url = url.replace('{quadkey}', tile_xy_to_quad_key(x, y, z))
        else:
            url = url.replace('{z}', str(z)).replace('{x}', str(x)).replace('{y}', str(y))

        if self.subdomains:
            url = url.replace('{s}', random.choice(self.subdomains))
        return url.replace('{api_key}', self.api_key or '')

    def get_license_info(self, year: Optional[str] = None, include_url: bool = False) -> str:
        """
        Get the attribution text for the tile provider.

        Args:
            year: Optional year to include in attribution (default: current year)
            include_url: If True, includes the license URL in the attribution string

        Returns:
            Formatted attribution string

        Example:
            >>> server = RasterTileServer('OSM.Standard')
            >>> server.get_license_info(year='2026')
            '© OpenStreetMap contributors (2026)'
        """
        if year is None:
            year = str(datetime.now().year)

        attribution = self._config.get('attribution', 'Map tiles')
        license_url = self._config.get('license_url', '')

        license_info = f"{attribution} ({year})"
        if include_url and license_url:
            license_info += f". License: {license_url}"
        return license_info

    def __repr__(self) -> str:
        name = self.provider or self.get_url_template()
        return f"{self.__class__.__name__}(provider='{name}', tile_size={self.tile_size})"

    # Class methods

    @classmethod
    def get_available_providers(cls) -> List[str]:
        """Return a list of provider keys supported by this server class."""
        return list(cls._PROVIDERS.keys())

    @classmethod
    def get_provider_info(cls, provider: Optional[str] = None) -> Dict[str, Any]:
        """Return info for a single provider or for all providers.

        Raises ValueError if a requested provider is unknown.
        """
        if provider:
            if provider not in cls._PROVIDERS:
                raise ValueError(f"Unknown provider '{provider}'")
            return cls._PROVIDERS[provider].copy()
        return {k: v.copy() for k, v in cls._PROVIDERS.items()}
