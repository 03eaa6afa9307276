# cmus_presence/artwork.py
"""Album art lookup through the iTunes Search API."""
import re
import urllib.parse
from functools import lru_cache
from typing import Optional

import requests
import structlog

log = structlog.get_logger()

ITUNES_SEARCH_URL = "https://itunes.apple.com/search?term={term}&entity=song&limit=8"
_HTTP = requests.Session()


def _normalize(value: str) -> str:
    value = value.lower()
    value = value.replace("&", "and")
    value = re.sub(r"\b(feat|featuring|ft)\b\.?", "", value)
    value = re.sub(r"[^a-z0-9]+", " ", value)
    return " ".join(value.split()).strip()


def _score(item: dict, title_norm: str, artist_norm: str) -> int:
    score = 0
    track_name = _normalize(item.get("trackName", "") or "")
    artist_name = _normalize(item.get("artistName", "") or "")

    title_tokens = set(title_norm.split())
    track_tokens = set(track_name.split())
    if not title_tokens & track_tokens:
        # no title overlap at all is almost always a different song
        return -1

    if track_name == title_norm:
        score += 6
    elif title_norm in track_name or track_name in title_norm:
        score += 3

    if artist_name and artist_norm:
        if artist_name == artist_norm:
            score += 4
        elif artist_norm in artist_name or artist_name in artist_norm:
            score += 2
        elif not set(artist_norm.split()) & set(artist_name.split()):
            score -= 5

    if item.get("artworkUrl100"):
        score += 1
    return score


def pick_artwork(results: list, title: str, artist: str) -> Optional[str]:
    """Best-matching artwork URL from iTunes search results, resized to 512x512."""
    title_norm = _normalize(title)
    artist_norm = _normalize(artist)
    if not results or not title_norm:
        return None

    scored = [(item, _score(item, title_norm, artist_norm)) for item in results]
    scored.sort(key=lambda x: x[1], reverse=True)
    item, best_score = scored[0]
    min_score = 4 if artist_norm else 3
    if best_score < min_score:
        return None

    artwork = item.get("artworkUrl600") or item.get("artworkUrl100")
    if not artwork:
        return None
    return re.sub(r"/\d+x\d+", "/512x512", artwork)


@lru_cache(maxsize=512)
def lookup_artwork(title: str, artist: str) -> Optional[str]:
    title = (title or "").strip()
    artist = (artist or "").strip()
    if not title:
        return None

    term = urllib.parse.quote(f"{title} {artist}".strip())
    try:
        r = _HTTP.get(ITUNES_SEARCH_URL.format(term=term), timeout=4)
        r.raise_for_status()
        results = r.json().get("results", [])
    except (requests.RequestException, ValueError) as e:
        log.debug("artwork_lookup_failed", title=title, artist=artist, error=str(e))
        return None

    artwork = pick_artwork(results, title, artist)
    log.debug("artwork_lookup", title=title, artist=artist, found=artwork is not None)
    return artwork
