"""
Image storage resolver.

Turns an arbitrary incoming image reference into the URL stored on the
product. The default resolver only normalizes and classifies URLs; a
deployment that copies images into its own bucket plugs in a resolver that
uploads and returns the managed URL.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from catalog_shared.config.logging import get_logger
from catalog_shared.config.settings import settings
from catalog_shared.utils.validators import is_managed_image_url, normalize_product_image_url

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedImage:
    """Outcome of resolving one image reference. url is None when unusable."""

    url: Optional[str]
    managed: bool = False


ImageCache = dict[str, ResolvedImage]


class ProductImageResolver(Protocol):
    def resolve(
        self,
        value: Optional[str],
        organization_id: str,
        product_id: Optional[str],
        cache: ImageCache,
    ) -> ResolvedImage:
        ...


class ManagedPrefixImageResolver:
    """
    Default resolver: normalizes URLs and keeps them as references.

    URLs under one of ``managed_prefixes`` are reported as managed (already in
    our storage). Results are memoized in the caller-supplied cache so a value
    repeated within one request or import is resolved once.
    """

    def __init__(self, managed_prefixes: list[str] | None = None):
        if managed_prefixes is None:
            managed_prefixes = settings.managed_prefixes()
        self._managed_prefixes = managed_prefixes

    def resolve(
        self,
        value: Optional[str],
        organization_id: str,
        product_id: Optional[str],
        cache: ImageCache,
    ) -> ResolvedImage:
        if value is None or not value.strip():
            return ResolvedImage(url=None)

        key = value.strip()
        cached = cache.get(key)
        if cached is not None:
            return cached

        url = normalize_product_image_url(key, self._managed_prefixes)
        if url is None:
            logger.debug(
                "Image reference dropped",
                organization_id=organization_id,
                product_id=product_id,
            )
            result = ResolvedImage(url=None)
        else:
            result = ResolvedImage(
                url=url,
                managed=url.startswith("data:image/")
                or is_managed_image_url(url, self._managed_prefixes),
            )

        cache[key] = result
        return result


def get_image_resolver() -> ProductImageResolver:
    """Resolver used when a service is not given one explicitly."""
    return ManagedPrefixImageResolver()
