"""Utility functions"""

import datetime
import os
import random
import re

_DATA_URL_PREFIX_RE = re.compile(r'^data:[^,]*,')
_LEADING_INT_RE = re.compile(r'^\s*[-+]?\d+')
_LEADING_FLOAT_RE = re.compile(r'^\s*[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?')


def clean_result(s: str) -> str:
  """Strip newlines, slashes and asterisks from a vendor message."""
  return str(s).replace('\n', '').replace('/', '').replace('*', '')


def generate_unique_folder_id() -> int:
  """Returns a random 13 digit number, never starting with 0."""
  number = random.randint(1, 9)
  for _ in range(12):
    number = number * 10 + random.randint(0, 9)
  return number


def formatted_date(today: datetime.date | None = None) -> str:
  """Returns a date like 'October 18, 2026'."""
  today = today or datetime.date.today()
  return f"{today.strftime('%B')} {today.day}, {today.year}"


def strip_data_url_prefix(value: str | None) -> str | None:
  """Return the base64 payload of a data URL, or the value unchanged."""
  if value and value.startswith('data:'):
    return _DATA_URL_PREFIX_RE.sub('', value, count=1)
  return value


def is_emulator() -> bool:
  """Returns True if the code is running in an emulator."""
  return bool(os.environ.get('FUNCTIONS_EMULATOR'))


def parse_int(value: str | int | None) -> int | None:
  """Parse the leading integer of a form value, or None if there is none."""
  if isinstance(value, int):
    return value
  match = _LEADING_INT_RE.match(str(value or ''))
  return int(match.group(0)) if match else None


def parse_float(value: str | float | None) -> float | None:
  """Parse the leading number of a form value, or None if there is none."""
  if isinstance(value, (int, float)):
    return float(value)
  match = _LEADING_FLOAT_RE.match(str(value or ''))
  return float(match.group(0)) if match else None
