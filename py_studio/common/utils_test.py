"""Tests for the utils module."""

import datetime

import pytest
from common import utils


def test_clean_result_removes_newlines_slashes_and_asterisks():
  """clean_result strips formatting characters."""
  assert utils.clean_result("**Bad**\nrequest/s") == "Badrequests"


def test_generate_unique_folder_id_has_13_digits():
  """Folder ids always have 13 digits."""
  for _ in range(50):
    folder_id = utils.generate_unique_folder_id()
    assert len(str(folder_id)) == 13


def test_formatted_date():
  """Dates are written out in full."""
  assert utils.formatted_date(datetime.date(2026, 10, 8)) == "October 8, 2026"


@pytest.mark.parametrize(
  "value, expected",
  [
    ("data:image/png;base64,QUJD", "QUJD"),
    ("QUJD", "QUJD"),
    ("", ""),
    (None, None),
  ],
)
def test_strip_data_url_prefix(value, expected):
  """Data URL prefixes are removed."""
  assert utils.strip_data_url_prefix(value) == expected


@pytest.mark.parametrize(
  "value, expected",
  [
    ("42", 42),
    (" 7 steps", 7),
    (12, 12),
    ("abc", None),
    (None, None),
  ],
)
def test_parse_int(value, expected):
  """Leading integers are parsed."""
  assert utils.parse_int(value) == expected


@pytest.mark.parametrize(
  "value, expected",
  [
    ("0.03", 0.03),
    (".5", 0.5),
    ("1e-2", 0.01),
    (2, 2.0),
    ("none", None),
  ],
)
def test_parse_float(value, expected):
  """Leading floats are parsed."""
  assert utils.parse_float(value) == expected


def test_is_emulator(monkeypatch):
  """The emulator is detected from the environment."""
  monkeypatch.delenv("FUNCTIONS_EMULATOR", raising=False)
  assert utils.is_emulator() is False

  monkeypatch.setenv("FUNCTIONS_EMULATOR", "true")
  assert utils.is_emulator() is True
