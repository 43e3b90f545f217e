"""Minimal .env support so local runs can configure Firebase without exporting variables."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path


def default_env_path() -> Path:
  """Return the .env path next to the project root."""

  return Path(__file__).resolve().parents[2] / ".env"


def parse_env_lines(lines: Iterable[str]) -> dict[str, str]:
  """Parse `KEY=value` lines, ignoring blanks, comments and `export` prefixes."""
  parsed: dict[str, str] = {}
  for raw_line in lines:
    line = raw_line.strip()
    if not line or line.startswith("#"):
      continue
    line = line.removeprefix("export ").lstrip()
    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key:
      continue
    value = value.strip()
    # Quoted values keep their inner whitespace verbatim.
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
      value = value[1:-1]
    parsed[key] = value

  return parsed


def load_env_file(path: Path, *, override: bool = False) -> None:
  """Copy values from `path` into `os.environ`; existing variables win unless `override`."""

  if not path.is_file():
    return

  values = parse_env_lines(path.read_text(encoding="utf-8").splitlines())
  for key, value in values.items():
    if override or key not in os.environ:
      os.environ[key] = value
