"""Address utility functions"""

import urllib.parse


def generate_google_maps_url(location: str) -> str:
    """
    Build a Google Maps search link for an event location.

    Online venues ("オンライン", "Zoom", ...) and blank values get no link.
    """
    if not location or not location.strip():
        return ""

    lowered = location.strip().lower()
    if any(word in lowered for word in ("オンライン", "online", "zoom")):
        return ""

    query = urllib.parse.quote_plus(location.strip())
    return f"https://www.google.com/maps/search/?api=1&query={query}"
