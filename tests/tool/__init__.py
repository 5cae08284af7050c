"""Test helpers for apphost tools."""

import pytest

from apphost.tool.apphost import main


def run_main(args: list[str], capsys: pytest.CaptureFixture[str]) -> str:
    """Run the command line tool and return what it printed."""
    main(args)
    return capsys.readouterr().out
