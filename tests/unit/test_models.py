from __future__ import annotations

import pytest
from pydantic import ValidationError

from pagewait.config import WaitDefaults
from pagewait.constants import DEFAULT_POLLING, DEFAULT_TIMEOUT_MS
from pagewait.models import WaitTaskOptions


def on_ready() -> None:
    return None


def on_change() -> None:
    return None


def test_defaults() -> None:
    options = WaitTaskOptions()
    assert options.polling == "raf"
    assert options.timeout == 0
    assert options.root is None
    assert options.bindings == ()


@pytest.mark.parametrize("polling", ["raf", "mutation", 1, 250])
def test_accepts_valid_polling(polling) -> None:
    assert WaitTaskOptions(polling=polling).polling == polling


def test_rejects_unknown_polling_string() -> None:
    with pytest.raises(ValidationError, match="Unknown polling: sometimes"):
        WaitTaskOptions(polling="sometimes")


@pytest.mark.parametrize("polling", [0, -5])
def test_rejects_non_positive_interval(polling: int) -> None:
    with pytest.raises(ValidationError, match="Cannot poll with non-positive interval"):
        WaitTaskOptions(polling=polling)


def test_rejects_bool_polling() -> None:
    with pytest.raises(ValidationError):
        WaitTaskOptions(polling=True)


def test_rejects_negative_timeout() -> None:
    with pytest.raises(ValidationError):
        WaitTaskOptions(timeout=-1)


def test_bindings_are_deduplicated_in_order() -> None:
    options = WaitTaskOptions(bindings=[on_ready, on_change, on_ready])
    assert options.bindings == (on_ready, on_change)
    assert options.binding_names == ["on_ready", "on_change"]


def test_bindings_must_be_named() -> None:
    with pytest.raises(ValidationError, match="named callable"):
        WaitTaskOptions(bindings=[lambda: None])
    with pytest.raises(ValidationError):
        WaitTaskOptions(bindings=on_ready)


def test_options_are_frozen() -> None:
    options = WaitTaskOptions(polling=100)
    with pytest.raises(ValidationError):
        options.polling = "raf"  # type: ignore[misc]


def test_wait_defaults_without_env() -> None:
    defaults = WaitDefaults.from_env({})
    assert defaults.polling == DEFAULT_POLLING
    assert defaults.timeout_ms == DEFAULT_TIMEOUT_MS


def test_wait_defaults_from_env() -> None:
    defaults = WaitDefaults.from_env({"PAGEWAIT_POLLING": "mutation", "PAGEWAIT_TIMEOUT_MS": "0"})
    assert defaults.polling == "mutation"
    assert defaults.timeout_ms == 0

    defaults = WaitDefaults.from_env({"PAGEWAIT_POLLING": " 40 "})
    assert defaults.polling == 40


@pytest.mark.parametrize(
    "environ,name",
    [
        ({"PAGEWAIT_POLLING": "often"}, "PAGEWAIT_POLLING"),
        ({"PAGEWAIT_POLLING": "0"}, "PAGEWAIT_POLLING"),
        ({"PAGEWAIT_TIMEOUT_MS": "soon"}, "PAGEWAIT_TIMEOUT_MS"),
        ({"PAGEWAIT_TIMEOUT_MS": "-1"}, "PAGEWAIT_TIMEOUT_MS"),
    ],
)
def test_wait_defaults_reject_bad_env(environ: dict, name: str) -> None:
    with pytest.raises(ValueError, match=name):
        WaitDefaults.from_env(environ)
