"""Aggregation engine: folds resolved artist origins over a track list.

All functions here are pure.  Only the *first* credited artist of a track
counts.  Every lookup into ``resolved_map`` uses the lower-cased artist name,
and the map distinguishes two cases:

- key present with ``None``  -> resolved, origin unknown;
- key absent                 -> still pending.

Pending artists appear neither in country counts nor in the unknowns
report.  Callers must therefore only aggregate a fully resolved map.
"""

from __future__ import annotations

from collections import Counter

from originmap.models.resolution import (
    ArtistDetail,
    CountryDetails,
    UnknownArtist,
    UnknownsReport,
    UnknownTrack,
)
from originmap.models.track import Track
from originmap.utils.text_normalizer import normalize_query_key


def first_artist_name(track: Track) -> str | None:
    """Return the first credited artist's display name, or ``None``."""
    if not track.artists:
        return None
    name = track.artists[0].name
    return name or None


def unique_first_artists(tracks: list[Track]) -> list[str]:
    """First-artist display names, de-duplicated case-insensitively.

    The first spelling seen is kept and input order is preserved.
    """
    seen: dict[str, str] = {}
    for track in tracks:
        name = first_artist_name(track)
        if name is None:
            continue
        seen.setdefault(normalize_query_key(name), name)
    return list(seen.values())


def aggregate(tracks: list[Track], resolved_map: dict[str, str | None]) -> dict[str, int]:
    """Count songs per country code; unknown and pending artists are skipped."""
    counts: Counter[str] = Counter()
    for track in tracks:
        name = first_artist_name(track)
        if name is None:
            continue
        country = resolved_map.get(normalize_query_key(name))
        if country:
            counts[country] += 1
    return dict(counts)


def build_unknowns_report(tracks: list[Track], resolved_map: dict[str, str | None]) -> UnknownsReport:
    """Tracks whose first artist resolved to no country.

    ``artists`` groups them per artist (first display spelling) with a
    track count; ``tracks`` lists them flat, sorted by artist then track
    name.
    """
    display_names: dict[str, str] = {}
    counts: Counter[str] = Counter()
    unknown_tracks: list[UnknownTrack] = []

    for track in tracks:
        name = first_artist_name(track)
        if name is None:
            continue
        key = normalize_query_key(name)
        if key not in resolved_map or resolved_map[key] is not None:
            continue
        display_names.setdefault(key, name)
        counts[key] += 1
        unknown_tracks.append(UnknownTrack(artist_name=name, track_name=track.name, uri=track.uri))

    unknown_tracks.sort(key=lambda t: (t.artist_name.lower(), t.track_name.lower()))
    artists = [
        UnknownArtist(artist_name=display_names[key], track_count=count)
        for key, count in sorted(counts.items(), key=lambda kv: display_names[kv[0]].lower())
    ]
    return UnknownsReport(artists=artists, tracks=unknown_tracks)


def country_details(
    tracks: list[Track],
    resolved_map: dict[str, str | None],
    iso_codes: list[str],
) -> CountryDetails:
    """Drill-down for the selected countries.

    Artists are sorted by name and each artist's songs by title.
    ``track_uris`` covers every counted track, in artist/song order.
    """
    selected = {code.upper() for code in iso_codes}
    by_artist: dict[str, tuple[str, list[Track]]] = {}

    for track in tracks:
        name = first_artist_name(track)
        if name is None:
            continue
        key = normalize_query_key(name)
        country = resolved_map.get(key)
        if not country or country.upper() not in selected:
            continue
        by_artist.setdefault(key, (name, []))[1].append(track)

    artists: list[ArtistDetail] = []
    track_uris: list[str] = []
    song_count = 0
    for display_name, artist_tracks in sorted(by_artist.values(), key=lambda v: v[0].lower()):
        artist_tracks.sort(key=lambda t: t.name.lower())
        song_count += len(artist_tracks)
        artists.append(ArtistDetail(artist_name=display_name, songs=[t.name for t in artist_tracks]))
        track_uris.extend(_track_uri(t) for t in artist_tracks if _track_uri(t))

    return CountryDetails(
        iso_codes=sorted(selected),
        song_count=song_count,
        artists=artists,
        track_uris=track_uris,
    )


def _track_uri(track: Track) -> str | None:
    if track.uri:
        return track.uri
    if track.id:
        return f"spotify:track:{track.id}"
    return None
