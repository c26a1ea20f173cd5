from __future__ import annotations

import pytest

from optiswarm.foundation.exceptions import UnknownComponentError
from optiswarm.foundation.registry import Registry


def test_register_and_get_normalizes_names():
    reg: Registry[int] = Registry("widget")
    reg.register("Fast_Widget", 1)
    assert reg.get("fast-widget") == 1
    assert "FAST_WIDGET" in reg
    assert reg.list() == ["fast-widget"]
    assert len(reg) == 1


def test_register_as_decorator():
    reg: Registry[type] = Registry("widget")

    @reg.register("thing")
    class Thing:
        pass

    assert reg["thing"] is Thing


def test_duplicate_registration_rejected_unless_override():
    reg: Registry[int] = Registry("widget")
    reg.register("a", 1)
    with pytest.raises(ValueError):
        reg.register("a", 2)
    reg.register("a", 2, override=True)
    assert reg.get("a") == 2


def test_unknown_name_lists_close_matches():
    reg: Registry[int] = Registry("extension")
    reg.register("gcpso", 1)
    reg.register("dpso", 2)
    with pytest.raises(UnknownComponentError) as excinfo:
        reg.get("gcpos")
    assert "gcpso" in str(excinfo.value)
    assert excinfo.value.details["available"] == ["dpso", "gcpso"]


def test_default_returned_for_unknown_name():
    reg: Registry[int] = Registry()
    assert reg.get("missing", None) is None
