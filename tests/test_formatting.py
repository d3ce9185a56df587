"""Tests for display formatting helpers"""

from yurushiri.utils.address_utils import generate_google_maps_url
from yurushiri.utils.formatting import format_date_ja, format_timestamp


def test_format_date_ja():
    assert format_date_ja("2025-03-15") == "2025年3月15日"
    assert format_date_ja("2025-03-15", with_weekday=True) == "2025年3月15日（土）"
    assert format_date_ja(None) == "未設定"
    assert format_date_ja("", empty="-") == "-"
    assert format_date_ja("近日公開") == "近日公開"


def test_format_timestamp():
    assert format_timestamp("2025-03-15T14:30:00+00:00") == "2025/03/15 14:30"
    assert format_timestamp("2025-03-15T14:30:00Z") == "2025/03/15 14:30"
    assert format_timestamp(None) == "-"


def test_google_maps_url():
    url = generate_google_maps_url("東京都渋谷区 1-2-3")

    assert url.startswith("https://www.google.com/maps/search/?api=1&query=")
    assert "+" in url
    assert generate_google_maps_url("オンライン（Zoom）") == ""
    assert generate_google_maps_url("Online") == ""
    assert generate_google_maps_url("  ") == ""
