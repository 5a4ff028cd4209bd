from autoradio.engine.candidate_pool import (
    EXCLUDE_CAPACITY,
    EXCLUDE_CURRENT,
    EXCLUDE_GENRE,
    EXCLUDE_NO_KEY,
    EXCLUDE_PLAYED,
    EXCLUDE_QUEUED,
    EXCLUDE_RECENT_ARTIST,
    EXCLUDE_SAME_TITLE,
    build_candidate_pool,
    build_candidates,
    should_replace,
)
from autoradio.engine.features import identity_key
from autoradio.engine.tracks import Track


def _ids(tracks):
    return [t.id for t in tracks]


def test_empty_sources_yield_empty_pool(current_track):
    assert build_candidates([], current_track) == []
    assert build_candidates(None, current_track) == []
    assert build_candidates([None, [], {"id": 3}], current_track) == []


def test_absent_source_does_not_block_others(track):
    pool = build_candidates([None, [track(2, "Two")], []])
    assert _ids(pool) == [2]


def test_excludes_current_track_by_id_and_identity(track, current_track):
    sources = [[
        track(1, "Other Title", genre="trap"),
        dict(current_track, id=99),
        track(3, "Fresh", genre="trap"),
    ]]
    result = build_candidate_pool(sources=sources, current_track=current_track)
    assert _ids(result.tracks) == [3]
    assert result.stats["excluded"][EXCLUDE_CURRENT] == 2


def test_never_contains_current_identity(track, current_track):
    sources = [[track(i, "Midnight", artist="X", genre="trap") for i in range(5, 9)]]
    pool = build_candidates(sources, current_track)
    current_key = identity_key(Track(id=1, title="Midnight", artists=("X",)))
    assert all(identity_key(t) != current_key for t in pool)


def test_queue_and_played_filters(track):
    queue = [track(10, "Queued Song")]
    sources = [[
        track(10, "Renamed"),
        track(11, "queued song"),
        track(12, "Played Id"),
        track(13, "Played Title"),
        track(14, "Keeper"),
    ]]
    result = build_candidate_pool(
        sources=sources,
        queue=queue,
        played_ids={12},
        played_title_keys={"played title"},
    )
    assert _ids(result.tracks) == [14]
    assert result.stats["excluded"][EXCLUDE_QUEUED] == 2
    assert result.stats["excluded"][EXCLUDE_PLAYED] == 2


def test_same_title_as_current_is_excluded(track):
    current = track(1, "Midnight", artist="X")
    result = build_candidate_pool(sources=[[track(2, "Midnight (Live)", artist="Y")]], current_track=current)
    assert result.tracks == []
    assert result.stats["excluded"][EXCLUDE_SAME_TITLE] == 1


def test_recent_artist_cooldown(track):
    sources = [[track(2, "A", artist="The Weeknd"), track(3, "B", artist="Drake")]]
    pool = build_candidates(sources, recent_artists=["THE WEEKND!"])
    assert _ids(pool) == [3]


def test_genre_coherence_excludes_other_bucket(track):
    current = track(1, "Montagem Coral", artist="MC Foo")
    sources = [[track(2, "Dynamite", artist="Blackpink", genre="K-Pop")]]
    result = build_candidate_pool(sources=sources, current_track=current)
    assert result.tracks == []
    assert result.stats["excluded"][EXCLUDE_GENRE] == 1
    assert result.stats["current_genre"] == "phonk_funk"


def test_genre_coherence_same_artist_passes(track):
    current = track(1, "Montagem Coral", artist="MC Foo")
    sources = [[track(2, "Love Song", artist="MC Foo", genre="Pop"), track(3, "Funk Baile", artist="DJ Z")]]
    assert _ids(build_candidates(sources, current)) == [2, 3]


def test_no_genre_filter_when_current_genre_unknown(track):
    current = track(1, "Interlude", artist="X")
    sources = [[track(2, "Dynamite", artist="Y", genre="K-Pop"), track(3, "Blue", artist="Z")]]
    assert _ids(build_candidates(sources, current)) == [2, 3]


def test_dedup_keeps_first_position_and_best_record(track):
    sources = [
        [track(2, "Alpha", artist="Q", plays=1), track(3, "Beta", artist="Q")],
        [track(4, "alpha", artist="q", plays=5)],
    ]
    result = build_candidate_pool(sources=sources)
    assert _ids(result.tracks) == [4, 3]
    assert result.stats["replaced"] == 1


def test_replacement_bypasses_filters(track):
    sources = [[track(10, "Alpha", artist="Q", plays=1), track(11, "Alpha", artist="Q", plays=5)]]
    pool = build_candidates(sources, played_ids={11})
    assert _ids(pool) == [11]


def test_should_replace_tie_breaks():
    base = Track(id=1, title="t", plays=3)
    assert should_replace(Track(id=2, title="t", plays=4), base)
    assert not should_replace(Track(id=2, title="t", plays=2), base)
    assert should_replace(Track(id=2, title="t", plays=3, duration=180), base)
    assert should_replace(Track(id=2, title="t", plays=3, has_artwork=True), base)
    assert not should_replace(Track(id=2, title="t", plays=3), base)
    assert should_replace(Track(id=2, title="t", plays=1), Track(id=1, title="t"))


def test_capacity_limit(track):
    sources = [[track(i, f"Song {i}", artist=f"A{i}") for i in range(10)]]
    result = build_candidate_pool(sources=sources, limit=4)
    assert _ids(result.tracks) == [0, 1, 2, 3]
    assert result.stats["excluded"][EXCLUDE_CAPACITY] == 6


def test_tracks_without_identity_are_dropped():
    result = build_candidate_pool(sources=[[{}, {"duration": 100}, {"id": 5}]])
    assert _ids(result.tracks) == [5]
    assert result.stats["excluded"][EXCLUDE_NO_KEY] == 2


def test_output_has_unique_identity_keys(track):
    sources = [[track(i % 3, f"Song {i % 3}") for i in range(9)], [track(7, "song 1")]]
    pool = build_candidates(sources)
    keys = [identity_key(t) for t in pool]
    assert len(keys) == len(set(keys)) == 3


def test_pool_logs_summary(track, caplog):
    import logging

    caplog.set_level(logging.INFO, logger="autoradio.engine.candidate_pool")
    build_candidate_pool(sources=[[track(2, "Two")]])
    assert "Candidate pool: sources=1 raw=1 admitted=1" in caplog.text
