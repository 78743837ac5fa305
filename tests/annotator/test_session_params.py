"""Tests for session parameters and configuration."""

import os
from unittest.mock import patch

from arrowmark.annotator.geometry import ViewportMargins
from arrowmark.annotator.session_config import SessionConfig
from arrowmark.annotator.session_params import SessionParams


def test_from_query_string_reads_all_parameters():
    params = SessionParams.from_query_string(
        "?image=https%3A%2F%2Fexample.com%2Fa.txt&originalFileName=shot.png&row=7&table=T1&job=J9"
    )

    assert params.image == "https://example.com/a.txt"
    assert params.original_file_name == "shot.png"
    assert params.row_id == "7"
    assert params.table == "T1"
    assert params.job_id == "J9"


def test_missing_parameters_are_empty():
    params = SessionParams.from_query_string("image=a.txt&row=")

    assert params.row_id == ""
    assert params.table == ""
    assert params.original_file_name == ""


def test_from_url():
    params = SessionParams.from_url("https://host/annotate?originalFileName=x.jpg&job=5")

    assert params.original_file_name == "x.jpg"
    assert params.job_id == "5"


def test_upload_metadata():
    metadata = SessionParams(
        image="i", original_file_name="f.png", row_id="1", table="t", job_id="j"
    ).upload_metadata()

    assert metadata.original_file_name == "f.png"
    assert metadata.query_params() == {"row": "1", "table": "t", "job": "j"}


def test_config_defaults():
    with patch.dict(os.environ, {}, clear=True):
        config = SessionConfig.from_env()

    assert config.upload_url == ""
    assert config.request_timeout_s == 30.0
    assert config.export_format == "JPEG"
    assert config.jpeg_quality == 0.92
    assert config.download_base_name == "annotated"
    assert config.fit_to_screen is True
    assert config.margins == ViewportMargins(horizontal=20, vertical=220)


def test_config_from_env():
    env = {
        "ARROWMARK_UPLOAD_URL": "https://script.example.com/exec",
        "ARROWMARK_REQUEST_TIMEOUT": "5",
        "ARROWMARK_EXPORT_FORMAT": "png",
        "ARROWMARK_JPEG_QUALITY": "0.8",
        "ARROWMARK_DOWNLOAD_NAME": "marked",
        "ARROWMARK_FIT_TO_SCREEN": "false",
        "ARROWMARK_MARGIN_X": "0",
        "ARROWMARK_MARGIN_Y": "40",
    }
    with patch.dict(os.environ, env, clear=True):
        config = SessionConfig.from_env()

    assert config.upload_url == "https://script.example.com/exec"
    assert config.request_timeout_s == 5.0
    assert config.export_format == "PNG"
    assert config.jpeg_quality == 0.8
    assert config.download_base_name == "marked"
    assert config.fit_to_screen is False
    assert config.margins == ViewportMargins(horizontal=0, vertical=40)
