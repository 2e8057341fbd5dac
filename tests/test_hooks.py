"""Tests for hook dispatch and guarded callbacks."""

import pytest

from cmsindex.errors import ConfigurationError
from cmsindex.hooks import (
    HookEvent,
    HookRegistry,
    IndexItemContext,
    load_callable,
    load_optional_callable,
    safe_call,
)


def test_handlers_run_in_registration_order() -> None:
    hooks = HookRegistry()
    calls = []
    hooks.register(HookEvent.AFTER_INDEX_ITEM, lambda context: calls.append("first"))
    hooks.register("after_index_item", lambda context: calls.append("second"))

    context = hooks.run(HookEvent.AFTER_INDEX_ITEM, IndexItemContext())

    assert calls == ["first", "second"]
    assert isinstance(context, IndexItemContext)
    assert hooks.has_handlers(HookEvent.AFTER_INDEX_ITEM)
    assert not hooks.has_handlers(HookEvent.BEFORE_INDEX_ITEM)


def test_failing_handler_is_logged_and_later_handlers_run(caplog) -> None:
    hooks = HookRegistry()
    calls = []

    @hooks.on(HookEvent.BEFORE_INDEX_ITEM)
    def explode(context) -> None:
        raise RuntimeError("bad extension")

    @hooks.on(HookEvent.BEFORE_INDEX_ITEM)
    def record(context) -> None:
        calls.append(context.index_name)

    hooks.run(HookEvent.BEFORE_INDEX_ITEM, IndexItemContext(index_name="cms-elements_1"))

    assert calls == ["cms-elements_1"]
    assert "bad extension" in caplog.text


def test_handlers_share_the_mutable_context() -> None:
    hooks = HookRegistry()
    hooks.register(HookEvent.BEFORE_INDEX_ITEM, lambda context: context.document.update(a=1))
    hooks.register(
        HookEvent.BEFORE_INDEX_ITEM, lambda context: setattr(context, "skip_default", True)
    )

    context = hooks.run(HookEvent.BEFORE_INDEX_ITEM, IndexItemContext())

    assert context.document == {"a": 1}
    assert context.skip_default


def test_safe_call_returns_default_on_failure(caplog) -> None:
    def broken(value):
        raise ValueError(value)

    assert safe_call(broken, "boom", context="test callback", default="fallback") == "fallback"
    assert safe_call(None, default=3) == 3
    assert safe_call(len, "abc") == 3
    assert "Callback execution failed in test callback" in caplog.text


def test_safe_call_rejects_non_callables(caplog) -> None:
    assert safe_call("not callable", context="odd") is None
    assert "Invalid callback in context: odd" in caplog.text


@pytest.mark.parametrize("path", ["json:dumps", "json.dumps"])
def test_load_callable_accepts_both_separators(path: str) -> None:
    import json

    assert load_callable(path) is json.dumps


@pytest.mark.parametrize(
    "path",
    ["", "dumps", "missing_module_for_tests:thing", "json:not_there", "json:decoder"],
)
def test_load_callable_rejects_bad_paths(path: str) -> None:
    with pytest.raises(ConfigurationError):
        load_callable(path)


def test_load_optional_callable_logs_and_returns_none(caplog) -> None:
    assert load_optional_callable(None, context="content callback") is None
    assert load_optional_callable("json:not_there", context="content callback") is None
    assert "Ignoring content callback" in caplog.text
