# -*- coding: utf-8 -*-
"""
Unit tests for the slide data model and the URL helpers.
"""

import pytest

from present.slide_urls import image_extension_from_url, image_html, is_image_url
from present.slides import CacheState, PresentationStatus, Slide, SourceState, is_blank_url


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://example.com/a.png", True),
        ("https://example.com/a.JPG", True),
        ("https://example.com/photo.jpeg?w=1200#top", True),
        ("https://example.com/anim.gif", True),
        ("https://example.com/logo.svg", True),
        ("https://example.com/pic.webp", True),
        ("https://example.com/page", False),
        ("https://example.com/index.html", False),
        ("https://example.com/a.png/view", False),
        ("https://example.com/?file=a.png", False),
        ("", False),
        (None, False),
    ],
)
def test_is_image_url(url, expected):
    """Only the path extension decides whether a URL is an image."""
    assert is_image_url(url) is expected


def test_image_extension_is_lowercased():
    assert image_extension_from_url("https://example.com/A.PNG") == '.png'
    assert image_extension_from_url("https://example.com/a.txt") is None


def test_image_extension_of_unparsable_url_uses_raw_suffix():
    """A URL urlsplit rejects still gets a best-effort suffix check."""
    assert image_extension_from_url("http://[broken/a.png?x=1") == '.png'
    assert image_extension_from_url("http://[broken/page") is None


def test_image_html_escapes_the_source():
    html = image_html('https://example.com/a.png?x=1&y="2"')
    assert '<img src="https://example.com/a.png?x=1&amp;y=&quot;2&quot;"' in html
    assert 'background: #000' in html
    assert 'object-fit: contain' in html


@pytest.mark.parametrize("url", ["", "   ", "https://", " https:// ", None])
def test_is_blank_url(url):
    assert is_blank_url(url)


def test_real_url_is_not_blank():
    assert not is_blank_url("https://example.com")


def test_new_slide_starts_unknown():
    slide = Slide("https://example.com/a.png", 1)
    assert slide.cache_state is CacheState.UNKNOWN
    assert slide.source_state is SourceState.UNKNOWN
    assert slide.display_url is None
    assert slide.summary == ''


def test_changing_url_resets_cache_state():
    """Assigning a different URL invalidates the cache state; the same URL keeps it."""
    slide = Slide("https://example.com/a.png", 1)
    slide.cache_state = CacheState.CACHED
    slide.display_url = "file:///tmp/a.png"

    slide.url = "https://example.com/a.png"
    assert slide.cache_state is CacheState.CACHED

    slide.url = "https://example.com/b.png"
    assert slide.cache_state is CacheState.UNKNOWN
    assert slide.display_url is None


def test_slide_ids_are_unique():
    assert Slide("a").slide_id != Slide("a").slide_id


@pytest.mark.parametrize(
    "cache_state, source_state, label",
    [
        (CacheState.FAILED, SourceState.UNKNOWN, 'Failed'),
        (CacheState.CACHED, SourceState.FAILED, 'Failed'),
        (CacheState.CACHING, SourceState.UNKNOWN, 'Caching'),
        (CacheState.UNKNOWN, SourceState.NETWORK, 'Live'),
        (CacheState.CACHED, SourceState.CACHE, 'Cached'),
        (CacheState.CACHED, SourceState.UNKNOWN, 'Cached'),
        (CacheState.UNKNOWN, SourceState.UNKNOWN, ''),
    ],
)
def test_summary_label(cache_state, source_state, label):
    slide = Slide("https://example.com/a.png")
    slide.cache_state = cache_state
    slide.source_state = source_state
    assert slide.summary == label


def test_snapshot_copies_current_state():
    slide = Slide("https://example.com/a.png", 3)
    slide.cache_state = CacheState.CACHED
    change = slide.snapshot()
    slide.cache_state = CacheState.FAILED

    assert change.position == 3
    assert change.url == "https://example.com/a.png"
    assert change.cache_state is CacheState.CACHED
    assert change.slide_id == slide.slide_id


def test_status_serializes_with_wire_names():
    status = PresentationStatus(current_index=2, slide_count=5, is_playing=True,
                                current_url="https://example.com", zoom_factor=1.1)
    assert status.to_dict() == {
        'currentIndex': 2,
        'slideCount': 5,
        'isPlaying': True,
        'currentUrl': "https://example.com",
        'zoomFactor': 1.1,
    }


def test_default_status_describes_an_empty_presentation():
    assert PresentationStatus().to_dict() == {
        'currentIndex': 0,
        'slideCount': 0,
        'isPlaying': False,
        'currentUrl': None,
        'zoomFactor': 1.0,
    }
