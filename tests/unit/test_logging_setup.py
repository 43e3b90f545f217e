from __future__ import annotations

import dataclasses
import logging
import sys

from shopnotify.config import get_settings
from shopnotify.core.logging import TruncatedFormatter, _rotated_name, setup_logging


def test_rotated_name_uses_dash_suffix():
  assert _rotated_name("/var/log/shopnotify.log.3") == "/var/log/shopnotify.log-3"
  assert _rotated_name("/var/log/shopnotify.log") == "/var/log/shopnotify.log"


def test_truncated_formatter_keeps_head_and_tail():
  def _deep(level: int) -> None:
    if level == 0:
      raise ValueError("boom")
    _deep(level - 1)

  try:
    _deep(10)
  except ValueError:
    formatted = TruncatedFormatter().formatException(sys.exc_info())

  assert formatted.startswith("Traceback")
  assert "    ...\n" in formatted
  assert formatted.rstrip().endswith("ValueError: boom")


def test_setup_logging_writes_to_rotating_file(tmp_path):
  root = logging.getLogger()
  previous_handlers, previous_level = list(root.handlers), root.level
  settings = dataclasses.replace(get_settings(), log_dir=str(tmp_path), debug=True)
  try:
    log_path = setup_logging(settings)
    logging.getLogger("shopnotify.test").debug("hello from test")
    for handler in root.handlers:
      handler.flush()

    assert log_path == tmp_path / "shopnotify.log"
    assert "hello from test" in log_path.read_text(encoding="utf-8")
    assert logging.getLogger("google").level == logging.WARNING
  finally:
    for handler in root.handlers:
      handler.close()
    root.handlers = previous_handlers
    root.setLevel(previous_level)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi"):
      logging.getLogger(name).handlers = []
      logging.getLogger(name).propagate = True
