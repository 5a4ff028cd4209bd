import io
import json

import main_app


def _snapshot(current_track, trap_pool):
    return {
        "current_track": current_track,
        "sources": [trap_pool],
        "limit": 4,
        "session_seed": "cli",
    }


def test_cli_reads_file_and_writes_json(tmp_path, capsys, current_track, trap_pool):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(_snapshot(current_track, trap_pool)), encoding="utf-8")

    assert main_app.main([str(path), "--quiet"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert len(data["track_ids"]) == 4
    assert data["stats"]["rerank"]["seeded"] is True


def test_cli_reads_stdin_with_overrides(monkeypatch, capsys, current_track, trap_pool):
    monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps(_snapshot(current_track, trap_pool))))
    assert main_app.main(["--limit", "2", "--seed", "other", "--quiet"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert len(data["track_ids"]) == 2


def test_cli_is_deterministic(tmp_path, capsys, current_track, trap_pool):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(_snapshot(current_track, trap_pool)), encoding="utf-8")
    main_app.main([str(path), "--quiet"])
    first = json.loads(capsys.readouterr().out)
    main_app.main([str(path), "--quiet"])
    second = json.loads(capsys.readouterr().out)
    assert first["track_ids"] == second["track_ids"]


def test_cli_rejects_bad_input(tmp_path, capsys):
    bad = tmp_path / "bad.json"
    bad.write_text("[1, 2]", encoding="utf-8")
    assert main_app.main([str(bad), "--quiet"]) == 1
    assert main_app.main([str(tmp_path / "missing.json"), "--quiet"]) == 1
    assert capsys.readouterr().out == ""


def test_cli_uses_config_file(tmp_path, capsys, current_track, trap_pool):
    config = tmp_path / "config.yaml"
    config.write_text("autoplay:\n  default_limit: 3\n", encoding="utf-8")
    snapshot = _snapshot(current_track, trap_pool)
    del snapshot["limit"]
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(snapshot), encoding="utf-8")
    assert main_app.main([str(path), "--config", str(config), "--quiet"]) == 0
    assert len(json.loads(capsys.readouterr().out)["track_ids"]) == 3
