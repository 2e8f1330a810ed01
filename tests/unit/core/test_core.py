"""Tests for shared validation and subprocess helpers."""

import sys

import pytest

from autoreel.core.subprocess_utils import run_command, tail_lines
from autoreel.core.validation import is_valid_uuid


@pytest.mark.parametrize(
    "value,valid",
    [
        ("1a2b3c4d-0000-4000-8000-000000000001", True),
        ("1A2B3C4D-0000-4000-8000-000000000001", True),
        ("1a2b3c4d", False),
        ("../etc/passwd", False),
    ],
)
def test_is_valid_uuid(value, valid):
    assert is_valid_uuid(value) is valid


def test_tail_lines_skips_blanks():
    assert tail_lines("a\n\nb\nc\n\n", count=2) == "b\nc"


def test_run_command_captures_output():
    stdout, stderr, code = run_command(
        [sys.executable, "-c", "import sys; print('out'); sys.exit(3)"]
    )

    assert stdout.strip() == "out"
    assert code == 3
