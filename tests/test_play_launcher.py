from geomerge.cli.play import DEFAULT_SAVE_DIR, main


def test_play_launcher_passes_toggles_to_pygame_viewer(monkeypatch) -> None:
    captured = {}

    def fake_run(**kwargs):
        captured.update(kwargs)
        return 0

    monkeypatch.setattr("geomerge.cli.play.run_pygame_viewer", fake_run)

    result = main(["--movement", "geolocation", "--reset", "--headless", "--track", "walk.json"])

    assert result == 0
    assert captured == {
        "movement": "geolocation",
        "reset": True,
        "save_dir": DEFAULT_SAVE_DIR,
        "track_path": "walk.json",
        "headless": True,
    }


def test_play_launcher_defaults(monkeypatch) -> None:
    captured = {}
    monkeypatch.delenv("GEOMERGE_HEADLESS", raising=False)

    def fake_run(**kwargs):
        captured.update(kwargs)
        return 0

    monkeypatch.setattr("geomerge.cli.play.run_pygame_viewer", fake_run)

    assert main([]) == 0
    assert captured["movement"] == "buttons"
    assert captured["reset"] is False
    assert captured["track_path"] is None
    assert captured["headless"] is False


def test_play_launcher_honors_headless_env(monkeypatch) -> None:
    captured = {}

    def fake_run(**kwargs):
        captured.update(kwargs)
        return 0

    monkeypatch.setattr("geomerge.cli.play.run_pygame_viewer", fake_run)
    monkeypatch.setenv("GEOMERGE_HEADLESS", "1")

    assert main([]) == 0
    assert captured["headless"] is True


def test_play_launcher_terminal_mode_forwards_flags(monkeypatch) -> None:
    captured = []

    def fake_terminal(argv):
        captured.append(list(argv))
        return 0

    monkeypatch.setattr("geomerge.cli.play.run_terminal", fake_terminal)

    assert main(["--terminal", "--reset", "--save-dir", "here"]) == 0
    assert captured == [["--movement", "buttons", "--save-dir", "here", "--reset"]]
