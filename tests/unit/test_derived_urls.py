"""
Unit tests for derived CDN URLs.
"""

import pytest

from src.components.derived_urls import (
    TextOverlay,
    Transformation,
    derive_urls,
    generate_transformed_url,
    split_asset_path,
)

ENDPOINT = "https://ik.imagekit.io/demo"
URL = f"{ENDPOINT}/profiles/u1/photo.jpg"


def test_profile_variants():
    urls = derive_urls(URL, "profile", url_endpoint=ENDPOINT)

    assert urls.original == URL
    assert urls.optimized == f"{ENDPOINT}/tr:q-80,f-webp/profiles/u1/photo.jpg"
    assert urls.thumbnail == f"{ENDPOINT}/tr:w-150,h-150,c-fill,q-80,f-webp/profiles/u1/photo.jpg"
    assert "w-300,h-300,c-fill" in urls.medium
    assert "w-500,h-500,c-fill" in urls.large
    assert urls.small is None


def test_banner_variants():
    url = f"{ENDPOINT}/banners/u1/b.png"
    urls = derive_urls(url, "banner", url_endpoint=ENDPOINT)

    assert "w-600,h-150,c-fill" in urls.small
    assert "w-1200,h-300,c-fill" in urls.medium
    assert urls.large == f"{ENDPOINT}/tr:w-1800,h-450,c-fill,q-80,f-webp/banners/u1/b.png"
    assert urls.thumbnail is None


def test_quality_and_format_are_configurable():
    urls = derive_urls(URL, "profile", url_endpoint=ENDPOINT, quality="60", output_format="avif")
    assert urls.thumbnail.endswith("w-150,h-150,c-fill,q-60,f-avif/profiles/u1/photo.jpg")


def test_derive_is_idempotent():
    assert derive_urls(URL, "banner", url_endpoint=ENDPOINT) == derive_urls(
        URL, "banner", url_endpoint=ENDPOINT
    )


@pytest.mark.parametrize(
    "url",
    ["", "not a url", "https://example.com/photo.jpg", f"{ENDPOINT}/", f"{ENDPOINT}evil/x.jpg"],
)
def test_foreign_urls_pass_through(url):
    urls = derive_urls(url, "profile", url_endpoint=ENDPOINT)
    assert urls.original == urls.optimized == urls.thumbnail == urls.medium == urls.large == url


def test_no_endpoint_configured_passes_through():
    urls = derive_urls(URL, "profile", url_endpoint=None)
    assert urls.thumbnail == URL


def test_endpoint_trailing_slash_is_ignored():
    urls = derive_urls(URL, "profile", url_endpoint=ENDPOINT + "/")
    assert urls.thumbnail.startswith(f"{ENDPOINT}/tr:w-150")


def test_split_asset_path():
    assert split_asset_path(URL, ENDPOINT) == "profiles/u1/photo.jpg"
    assert split_asset_path("https://other/x", ENDPOINT) is None


def test_blur_and_overlay_tokens():
    url = generate_transformed_url(
        URL,
        Transformation(width=100, height=50, blur=10, overlay=TextOverlay("Hi", font_size=12, color="red")),
        url_endpoint=ENDPOINT,
    )
    assert url == f"{ENDPOINT}/tr:w-100,h-50,bl-10,l-text,i-Hi,fs-12,co-red,l-end/profiles/u1/photo.jpg"


def test_empty_transformation_keeps_single_slash():
    assert generate_transformed_url(URL, Transformation(), url_endpoint=ENDPOINT) == URL
