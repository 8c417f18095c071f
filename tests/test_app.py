# -*- coding: utf-8 -*-
"""
Unit tests for the headless presenter host, PresenterApp.

Slides are plain pages here so warming the cache never reaches the network.
"""

import socket

import pytest

from present import persistence
from present.app import PresenterApp
from present.persistence import StoragePaths
from present.slides import SourceState

PAGES = ["https://example.com/one", "https://example.com/two"]


@pytest.fixture
def paths(tmp_path):
    return StoragePaths(tmp_path / "data")


@pytest.fixture
def make_app(paths):
    """Builds apps without the remote control unless asked, and cleans them up."""
    apps = []

    def _make(**kwargs):
        kwargs.setdefault('enable_remote', False)
        app = PresenterApp(paths, **kwargs)
        apps.append(app)
        return app

    yield _make
    for app in apps:
        if app.remote is not None:
            app.remote.stop()
            app.remote.join(timeout=5)
        app.executor.shutdown(wait=True)


def test_setup_loads_saved_slides_and_warms(make_app, paths):
    persistence.save_default(paths, PAGES)
    app = make_app()

    app.setup()
    app.executor.shutdown(wait=True)
    app.dispatcher.run_pending()

    assert app.controller.urls == PAGES
    assert not app.controller.dirty
    assert all(s.source_state is SourceState.NETWORK for s in app.controller.slides)
    assert app.controller.cache_status == 'Cache ready'


def test_setup_with_empty_list_warns(make_app, caplog):
    app = make_app()
    app.setup()
    assert app.controller.slides == []
    assert "slide list is empty" in caplog.text


def test_setup_with_missing_slides_file_raises(make_app, tmp_path):
    app = make_app(slides_file=str(tmp_path / "missing.txt"))
    with pytest.raises(FileNotFoundError):
        app.setup()


def test_setup_clear_cache_wipes_images(make_app, paths):
    stale = paths.cache_root / "images" / "stale.png"
    stale.parent.mkdir(parents=True)
    stale.write_bytes(b'old')
    app = make_app()

    app.setup(clear_cache=True)

    assert not stale.exists()
    assert (paths.cache_root / "images").is_dir()


def test_remote_starts_and_reports_its_url(make_app):
    app = make_app(enable_remote=True, host='127.0.0.1', port=0)

    app.start_remote()

    assert app.remote.is_running
    assert app.remote_url.endswith(f":{app.remote.bound_port}/")


def test_busy_port_disables_remote_instead_of_failing(make_app, caplog):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
        blocker.bind(('127.0.0.1', 0))
        blocker.listen(1)
        app = make_app(enable_remote=True, host='127.0.0.1', port=blocker.getsockname()[1])

        app.start_remote()

    assert app.remote_url is None
    assert not app.remote.is_running
    assert "Remote control unavailable" in caplog.text


def test_shutdown_saves_edits_to_default_list(make_app, paths):
    app = make_app()
    app.setup()
    app.controller.add_slide("https://example.com/new")

    app.shutdown()

    assert persistence.load_default(paths) == ["https://example.com/new"]
    assert not app.controller.dirty


def test_shutdown_saves_edits_to_opened_file(make_app, tmp_path):
    slides_file = tmp_path / "talk.txt"
    persistence.save_to(slides_file, PAGES)
    app = make_app(slides_file=str(slides_file))
    app.setup()
    app.controller.remove_slide(0)

    app.shutdown()

    assert persistence.load_from(slides_file) == PAGES[1:]


def test_shutdown_without_edits_writes_nothing(make_app, paths):
    app = make_app()
    app.setup()
    app.shutdown()
    assert not paths.slides_file.exists()


def test_run_returns_after_quit_and_shuts_down(make_app, mocker):
    app = make_app()
    shutdown = mocker.spy(app, 'shutdown')
    app.dispatcher.post(app.quit)

    app.run()

    shutdown.assert_called_once()


def test_presenting_opens_each_slide_once_in_browser(make_app, paths, mocker):
    persistence.save_default(paths, PAGES)
    mock_open = mocker.patch('present.app.webbrowser.open')
    app = make_app(open_browser=True)
    app.setup()

    transition = app.controller.play()
    transition.resolution.result(timeout=5)
    app.executor.shutdown(wait=True)
    app.dispatcher.run_pending()
    app.dispatcher.run_pending()

    mock_open.assert_called_once_with(PAGES[0])


def test_browsing_does_not_open_browser(make_app, paths, mocker):
    persistence.save_default(paths, PAGES)
    mock_open = mocker.patch('present.app.webbrowser.open')
    app = make_app(open_browser=True)
    app.setup()

    app.controller.next().resolution.result(timeout=5)
    app.executor.shutdown(wait=True)
    app.dispatcher.run_pending()

    mock_open.assert_not_called()


def test_transitions_are_logged(make_app, paths, caplog_info):
    persistence.save_default(paths, PAGES)
    app = make_app()
    app.setup()

    app.controller.play()
    app.controller.scroll(40)

    assert "[presenting] Slide 1/2: https://example.com/one" in caplog_info.text
    assert "Scroll by 40px requested." in caplog_info.text


def test_shutdown_cancels_background_downloads(make_app, mocker):
    app = make_app()
    app.setup()
    close = mocker.spy(app.controller, 'close')

    app.shutdown()

    close.assert_called_once()
    assert app.controller.warm_all() is False
