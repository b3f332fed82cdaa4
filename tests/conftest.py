"""Pytest configuration shared by the test suite.

Statement exports are Shift_JIS encoded, so tests build their fixtures from
Python strings and encode them the same way the vendor tooling does. The
environment knobs read by the package are cleared per test to keep runs
hermetic regardless of the developer's shell or a local ``.env``.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

ENCODING = "cp932"


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "EXPENSE_IMPORT_MODEL",
        "EXPENSE_IMPORT_MAX_WORKERS",
        "EXPENSE_IMPORT_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_statement(tmp_path: Path) -> Callable[..., Path]:
    """Return a factory writing ``lines`` as a cp932 CSV under ``tmp_path``."""

    def _write(lines: list[str], name: str = "statement.csv", newline: str = "\r\n") -> Path:
        path = tmp_path / name
        path.write_bytes(newline.join(lines).encode(ENCODING) + newline.encode(ENCODING))
        return path

    return _write
