from autoradio.engine.tracks import Track, track_from_raw, tracks_from_raw, tracks_from_source


def test_flat_shape():
    track = track_from_raw({"id": 7, "title": "Song", "artist": "X", "duration": "201.5", "plays": 10})
    assert track.id == 7
    assert track.title == "Song"
    assert track.artists == ("X",)
    assert track.duration == 201.5
    assert track.plays == 10


def test_nested_shapes():
    track = track_from_raw({
        "track_id": "abc",
        "name": "Song",
        "artists": [{"name": "A"}, {"name": "B"}, {}],
        "album": {"title": "LP", "genres": [{"name": "Trap"}], "cover": "http://img"},
        "playcount": "42",
    })
    assert track.id == "abc"
    assert track.title == "Song"
    assert track.artists == ("A", "B")
    assert track.album == "LP"
    assert track.genre == "Trap"
    assert track.plays == 42
    assert track.has_artwork is True


def test_genre_precedence():
    raw = {"id": 1, "title": "t", "genre": {"name": "Drill"}, "album": {"genre": "Jazz"}}
    assert track_from_raw(raw).genre == "Drill"
    raw = {"id": 1, "title": "t", "genres": ["Reggaeton"]}
    assert track_from_raw(raw).genre == "Reggaeton"


def test_garbage_values_degrade():
    track = track_from_raw({"id": 1, "title": None, "artists": "not-a-list", "duration": float("nan"), "plays": -3})
    assert track.title == ""
    assert track.artists == ()
    assert track.duration == 0.0
    assert track.plays == 0.0


def test_unsupported_inputs():
    assert track_from_raw(None) is None
    assert track_from_raw("song") is None
    assert track_from_raw(42) is None
    existing = Track(id=1, title="t")
    assert track_from_raw(existing) is existing


def test_sources_and_collections():
    assert tracks_from_source(None) == []
    assert tracks_from_source({"id": 1}) == []
    assert [t.id for t in tracks_from_source([{"id": 1}, None, "x", {"id": 2}])] == [1, 2]
    assert tracks_from_raw(None) == ()
    assert tracks_from_raw("abc") == ()
    assert isinstance(tracks_from_raw([{"id": 1}]), tuple)
