"""
Derived URL component - deterministic CDN transform URLs.

Pure string functions; no network I/O. A URL that is not under the
configured endpoint is returned unchanged for every variant.

Transform syntax: {endpoint}/tr:w-150,h-150,c-fill,q-80,f-webp/{path}
"""

from __future__ import annotations

from .models import DerivedUrls, Transformation

# slot -> variant name -> (width, height); all variants use crop "fill"
SLOT_VARIANTS: dict[str, dict[str, tuple[int, int]]] = {
    "profile": {
        "thumbnail": (150, 150),
        "medium": (300, 300),
        "large": (500, 500),
    },
    "banner": {
        "small": (600, 150),
        "medium": (1200, 300),
        "large": (1800, 450),
    },
}


def transform_tokens(transformation: Transformation) -> list[str]:
    tokens: list[str] = []
    if transformation.width and transformation.height:
        tokens.append(f"w-{transformation.width},h-{transformation.height}")
    if transformation.crop:
        tokens.append(f"c-{transformation.crop}")
    if transformation.quality:
        tokens.append(f"q-{transformation.quality}")
    if transformation.output_format:
        tokens.append(f"f-{transformation.output_format}")
    if transformation.blur:
        tokens.append(f"bl-{transformation.blur}")
    if transformation.overlay:
        overlay = transformation.overlay
        tokens.append(
            f"l-text,i-{overlay.text},fs-{overlay.font_size},co-{overlay.color},l-end"
        )
    return tokens


def split_asset_path(url: str, url_endpoint: str | None) -> str | None:
    """Path of url below the endpoint, or None if url is not an asset-store URL."""
    if not url or not url_endpoint:
        return None
    prefix = url_endpoint.rstrip("/") + "/"
    if not url.startswith(prefix):
        return None
    path = url[len(prefix) :]
    return path or None


def generate_transformed_url(
    original_url: str,
    transformation: Transformation,
    *,
    url_endpoint: str | None,
) -> str:
    """Build one transformed URL; returns original_url when it cannot be transformed."""
    path = split_asset_path(original_url, url_endpoint)
    if path is None:
        return original_url
    assert url_endpoint is not None

    endpoint = url_endpoint.rstrip("/")
    tokens = transform_tokens(transformation)
    if not tokens:
        return f"{endpoint}/{path}"
    return f"{endpoint}/tr:{','.join(tokens)}/{path}"


def derive_urls(
    base_url: str,
    slot: str,
    *,
    url_endpoint: str | None,
    quality: str = "80",
    output_format: str = "webp",
) -> DerivedUrls:
    """
    Map a stored original to its presentation variants.

    profile: thumbnail 150x150, medium 300x300, large 500x500
    banner:  small 600x150, medium 1200x300, large 1800x450
    Unknown slots get only original and optimized.
    """
    variants = SLOT_VARIANTS.get(slot, {})
    if split_asset_path(base_url, url_endpoint) is None:
        return DerivedUrls(
            original=base_url,
            optimized=base_url,
            **{name: base_url for name in variants},
        )

    def build(transformation: Transformation) -> str:
        return generate_transformed_url(base_url, transformation, url_endpoint=url_endpoint)

    sized = {
        name: build(
            Transformation(
                width=width,
                height=height,
                crop="fill",
                quality=quality,
                output_format=output_format,
            )
        )
        for name, (width, height) in variants.items()
    }
    return DerivedUrls(
        original=base_url,
        optimized=build(Transformation(quality=quality, output_format=output_format)),
        **sized,
    )
