"""Fixtures for apphost tool tests."""

import pathlib

import pytest

APP_DEFINITION = """\
name: chat
resources:
  - name: signalr
    type: azure.signalr
"""


@pytest.fixture(name="app_file")
def app_file_fixture(tmp_path: pathlib.Path) -> pathlib.Path:
    """Write an application definition with a single SignalR resource."""
    path = tmp_path / "apphost.yaml"
    path.write_text(APP_DEFINITION)
    return path
