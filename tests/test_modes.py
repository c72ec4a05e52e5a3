"""Tests for runtime modes and backend selection."""

import pytest

from pipeshell import (
    BackendKind,
    ConfigurationError,
    DaskEngine,
    RuntimeMode,
    SeqEngine,
    select_backend,
)
from pipeshell.modes import default_engine_for


@pytest.mark.parametrize(
    "mode,expected",
    [
        (RuntimeMode.LOCAL, BackendKind.MEMORY),
        (RuntimeMode.TEST, BackendKind.MEMORY),
        (RuntimeMode.DISTRIBUTED, BackendKind.TRANSIENT_FILE),
    ],
)
def test_select_backend(mode, expected):
    assert select_backend(mode) is expected


def test_select_backend_rejects_non_modes():
    with pytest.raises(ValueError):
        select_backend("local")


def test_parse_mode():
    assert RuntimeMode.parse("Distributed ") is RuntimeMode.DISTRIBUTED
    assert RuntimeMode.parse(RuntimeMode.TEST) is RuntimeMode.TEST
    with pytest.raises(ConfigurationError, match="Unknown runtime mode"):
        RuntimeMode.parse("hadoop")


def test_default_engine_for_mode():
    assert isinstance(default_engine_for(RuntimeMode.LOCAL), SeqEngine)
    assert isinstance(default_engine_for(RuntimeMode.TEST), SeqEngine)
    assert isinstance(default_engine_for(RuntimeMode.DISTRIBUTED), DaskEngine)
