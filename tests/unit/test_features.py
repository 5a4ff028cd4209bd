from autoradio.engine.features import UNKNOWN_ARTIST, artist_key, extract_features, identity_key
from autoradio.engine.tracks import Track, track_from_raw


def test_identity_key_prefers_title_and_artist():
    a = track_from_raw({"id": 1, "title": "Song (Remastered)", "artists": ["X"]})
    b = track_from_raw({"id": 2, "title": "song", "artists": ["x"]})
    assert identity_key(a) == identity_key(b) == "t:song|a:x"


def test_identity_key_falls_back_to_id():
    assert identity_key(Track(id=9)) == "id:9"
    assert identity_key(Track(id=None)) == ""
    assert identity_key(Track(id="")) == ""
    assert identity_key(None) == ""


def test_identity_key_artist_only():
    key = identity_key(Track(id=None, artists=("Solo",)))
    assert key == "t:|a:solo"


def test_unknown_artist_fallback():
    track = Track(id=1, title="Song")
    assert artist_key(track) == UNKNOWN_ARTIST.lower()
    assert identity_key(track) == "t:song|a:unknown artist"


def test_extract_features():
    track = track_from_raw({
        "id": 1, "title": "Montagem Coral", "artists": ["DJ A", "MC B"], "album": "Baile Tape", "duration": -5,
    })
    feat = extract_features(track)
    assert feat.title_tokens == frozenset({"montagem", "coral"})
    assert feat.artist_key == "dj a mc b"
    assert feat.album_key == "baile tape"
    assert feat.genre_bucket == "phonk_funk"
    assert feat.duration == 0.0


def test_unknown_artist_does_not_drive_genre():
    feat = extract_features(Track(id=1, title="Interlude"))
    assert feat.genre_bucket == ""
