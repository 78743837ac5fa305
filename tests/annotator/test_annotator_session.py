"""Tests for the annotation session wiring."""

import base64
import io
import threading
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from arrowmark.annotator.annotator_session import AnnotatorSession
from arrowmark.annotator.arrow import Arrow
from arrowmark.annotator.geometry import ViewportMargins
from arrowmark.annotator.image_source import ImageState
from arrowmark.annotator.interaction import ControllerState, HandleKind
from arrowmark.annotator.session_config import SessionConfig
from arrowmark.annotator.session_params import SessionParams
from arrowmark.annotator.uploader import ATTEMPTED_NOTICE, UploadStatus

URL = "https://script.example.com/exec"


@pytest.fixture
def notify():
    return MagicMock()


@pytest.fixture
def session(notify):
    """Ready session at scale 0.5 over a 1520x1120 image."""
    config = SessionConfig(upload_url=URL, margins=ViewportMargins(horizontal=40, vertical=40))
    params = SessionParams(original_file_name="shot.png", row_id="7", table="T1", job_id="J9")
    session = AnnotatorSession(params, config=config, notify=notify)
    session.use_image(Image.new("RGB", (1520, 1120), (90, 90, 90)))
    session.viewport_changed((800, 600))
    return session


def draw(session, start, end):
    session.pointer_down(start)
    session.pointer_move(end)
    session.pointer_up(end)


def test_fit_scale(session):
    assert session.is_ready
    assert session.scale == 0.5


def test_display_gesture_stored_in_image_space(session):
    draw(session, (50, 50), (100, 75))

    assert session.store.snapshot() == [[100, 100, 200, 150]]
    assert session.state == ControllerState.IDLE


def test_handles_follow_scale(session):
    draw(session, (50, 50), (100, 75))
    assert session.handles[0].head == (100, 75)

    session.toggle_fit_to_screen()

    assert session.scale == 1.0
    assert session.handles[0].head == (200, 150)


def test_tap_selects_and_next_press_deselects(session):
    draw(session, (50, 50), (100, 75))

    session.tap((75, 62.5))
    assert session.store.selection == 0
    assert session.state == ControllerState.SELECTED

    draw(session, (300, 300), (350, 350))
    assert session.store.selection is None
    assert len(session.store) == 1


def test_transform_selected(session):
    draw(session, (50, 50), (100, 75))
    session.tap((75, 62.5))

    assert session.drag_selected((10, 0))
    assert session.store.arrows[0] == Arrow(120, 100, 220, 150)

    assert session.move_endpoint(HandleKind.HEAD, (150, 150))
    assert session.store.arrows[0] == Arrow(120, 100, 300, 300)


def test_transform_without_selection(session):
    draw(session, (50, 50), (100, 75))
    assert not session.drag_selected((10, 0))


def test_commands(session):
    draw(session, (10, 10), (20, 20))
    draw(session, (30, 30), (40, 40))
    session.tap((15, 15))

    session.undo()
    assert len(session.store) == 1
    assert session.store.selection is None

    session.tap((15, 15))
    session.delete_selected()
    assert len(session.store) == 0

    draw(session, (10, 10), (20, 20))
    session.clear()
    assert len(session.store) == 0
    assert session.handles == {}


def test_render(session):
    draw(session, (50, 50), (100, 75))
    session.tap((75, 62.5))

    result = session.render()

    assert result.surface.size == (1520, 1120)
    assert result.display.size == (760, 560)
    assert result.scale == 0.5
    assert set(result.handles) == {0}
    # Selected arrow drawn blue
    assert result.surface.getpixel((150, 125)) == (0, 0, 255)


def test_export_has_no_selection_highlight(session):
    draw(session, (50, 50), (100, 75))
    session.tap((75, 62.5))

    exported = Image.open(io.BytesIO(session.export_bytes())).convert("RGB")

    assert exported.size == (1520, 1120)
    red, green, blue = exported.getpixel((150, 125))
    assert red > 200 and blue < 60


def test_download(session, tmp_path):
    draw(session, (50, 50), (100, 75))

    path = session.download(tmp_path)

    assert path == tmp_path / "annotated.jpg"
    assert Image.open(path).size == (1520, 1120)


@patch("arrowmark.annotator.uploader.requests.post")
def test_save_posts_attempted_notice(mock_post, session, notify):
    draw(session, (50, 50), (100, 75))

    outcome = session.save()

    assert outcome.status is UploadStatus.ATTEMPTED
    notify.assert_called_once_with(ATTEMPTED_NOTICE)
    assert session.notices == [ATTEMPTED_NOTICE]
    kwargs = mock_post.call_args[1]
    assert kwargs["params"] == {"row": "7", "table": "T1", "job": "J9"}
    assert kwargs["json"]["originalFileName"] == "shot.png"


@patch("arrowmark.annotator.uploader.requests.post")
def test_save_async_rejects_while_in_flight(mock_post, session):
    release = threading.Event()
    finished = threading.Event()
    mock_post.side_effect = lambda *a, **kw: release.wait(timeout=5)

    assert session.save_async(lambda outcome: finished.set())
    assert session.upload_in_flight
    assert not session.save_async()
    assert session.save().status is UploadStatus.REJECTED

    release.set()
    assert finished.wait(timeout=5)
    assert mock_post.call_count == 1


def make_data_url(size):
    buf = io.BytesIO()
    Image.new("RGB", size, (90, 90, 90)).save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def test_async_load_waits_for_apply_before_gestures(notify):
    config = SessionConfig(margins=ViewportMargins(horizontal=40, vertical=40))
    session = AnnotatorSession(
        SessionParams(image=make_data_url((1520, 1120))), config=config, notify=notify
    )
    session.viewport_changed((800, 600))
    finished = threading.Event()
    states = []

    def on_loaded(state):
        states.append(state)
        finished.set()

    assert session.load_async(on_loaded)
    assert finished.wait(timeout=5)
    assert states == [ImageState.READY]

    # Resolved on the worker, but nothing applied to the session yet
    assert session.image_state is ImageState.READY
    assert not session.is_ready
    assert session.scale == 1.0
    draw(session, (300, 300), (350, 350))
    assert len(session.store) == 0

    assert session.apply_loaded() is ImageState.READY

    assert session.is_ready
    assert session.scale == 0.5
    draw(session, (300, 300), (350, 350))
    assert session.store.snapshot() == [[600, 600, 700, 700]]


def test_async_failed_load_notifies_once_on_apply(notify):
    session = AnnotatorSession(SessionParams(), notify=notify)
    finished = threading.Event()

    assert session.load_async(lambda state: finished.set())
    assert finished.wait(timeout=5)
    notify.assert_not_called()

    session.apply_loaded()
    session.apply_loaded()

    notify.assert_called_once_with("Image failed to load. Check the URL.")
    assert not session.is_ready


def test_failed_load_blocks_gestures(notify):
    session = AnnotatorSession(SessionParams(), notify=notify)

    assert session.load() is ImageState.FAILED
    notify.assert_called_once_with("Image failed to load. Check the URL.")

    draw(session, (10, 10), (50, 50))
    assert len(session.store) == 0
    with pytest.raises(RuntimeError):
        session.render()


def test_gestures_ignored_before_load():
    session = AnnotatorSession(SessionParams(image="https://example.com/a"))

    draw(session, (10, 10), (50, 50))

    assert session.image_state is ImageState.UNRESOLVED
    assert len(session.store) == 0


def test_save_without_image_fails_with_notice(notify):
    session = AnnotatorSession(
        SessionParams(original_file_name="a.png"),
        config=SessionConfig(upload_url=URL),
        notify=notify,
    )

    outcome = session.save()

    assert outcome.status is UploadStatus.FAILED
    notify.assert_called_once()


def test_close_stops_gestures(session):
    session.close()

    draw(session, (10, 10), (50, 50))

    assert not session.is_ready
    assert len(session.store) == 0


def test_failing_notify_is_logged(session):
    session._notify = MagicMock(side_effect=RuntimeError("ui gone"))

    session._post_notice("hello")

    assert session.notices == ["hello"]
