"""Tests for pick(): dependency inference, memoization, shape preservation."""

import pytest

from pickwatch import (
    Binding,
    DependencyTraceError,
    InvalidArgumentError,
    ReadOnlyError,
    UnknownKeyError,
    View,
    create_model,
)
from pickwatch._tracking import RecordingView


def _abc():
    return create_model({"a": 1, "b": 2, "c": 3})


def _listeners(handle, key):
    return handle.model.cell(key).listeners


class TestInference:
    def test_writes_to_read_keys_notify(self):
        m = _abc()
        log = []
        b = Binding(lambda: log.append(1))
        with b.render():
            assert m.pick(lambda v: v.a + v.b) == 3
        m.get().a = 10
        assert log == [1]
        m.get().b = 20
        assert log == [1, 1]

    def test_writes_to_other_keys_do_not(self):
        m = _abc()
        log = []
        b = Binding(lambda: log.append(1))
        with b.render():
            m.pick(lambda v: v.a + v.b)
        m.get().c = 30
        assert log == []

    def test_result_uses_live_view(self):
        m = _abc()
        seen = []
        m.pick(lambda v: seen.append(type(v)) or v.a)
        assert seen[-1] is View

    def test_selector_may_call_methods(self):
        m = create_model({"name": "ada", "greet": lambda self: f"hi {self.name}"})
        log = []
        b = Binding(lambda: log.append(1))
        with b.render():
            assert m.pick(lambda v: v.greet()) == "hi ada"
        # The method's reads are not seen by the trial run.
        m.get().name = "bob"
        assert log == []


class TestMemoization:
    def test_second_pick_does_not_retrace(self):
        m = _abc()
        views = []

        def make():
            return lambda v: views.append(type(v).__name__) or v.a * 2

        log = []
        b = Binding(lambda: log.append(1))
        with b.render():
            assert m.pick(make()) == 2
        assert views == ["RecordingView", "View"]

        m.get().a = 5
        with b.render():
            assert m.pick(make()) == 10
        assert views == ["RecordingView", "View", "View"]
        assert m.memo.traces == 1
        assert b.subscription_count == 1

        m.get().a = 6
        assert log == [1, 1]

    def test_second_pick_reads_nothing_through_recorder(self, monkeypatch):
        m = _abc()
        reads = []
        original = RecordingView._read

        def counting_read(self, key):
            reads.append(key)
            return original(self, key)

        monkeypatch.setattr(RecordingView, "_read", counting_read)

        def make():
            return lambda v: v.a + v.b

        log = []
        b = Binding(lambda: log.append(1))
        with b.render():
            assert m.pick(make()) == 3
        assert reads == ["a", "b"]

        m.get().a = 10
        with b.render():
            assert m.pick(make()) == 12
        assert reads == ["a", "b"]
        assert b.subscription_count == 2

        m.get().b = 20
        assert log == [1, 1]

    def test_factory_closures_over_different_keys(self):
        m = _abc()

        def make(key):
            return lambda v: getattr(v, key)

        log = []
        b = Binding(lambda: log.append(1))
        with b.render():
            assert m.pick([make("a"), make("b")]) == [1, 2]
        assert m.memo.traces == 2
        assert b.subscription_count == 2

        with b.render():
            assert m.pick(make("b")) == 2
        m.get().a = 10
        assert log == []
        m.get().b = 20
        assert log == [1]

    def test_distinct_selectors_traced_separately(self):
        m = _abc()
        m.pick(lambda v: v.a)
        m.pick(lambda v: v.b)
        assert m.memo.traces == 2
        assert len(m.memo) == 2


class TestShape:
    def test_string(self):
        assert _abc().pick("b") == 2

    def test_list(self):
        m = _abc()
        f = lambda v: v.a + v.c  # noqa: E731
        assert m.pick(["a", f]) == [1, 4]

    def test_tuple(self):
        assert _abc().pick(("c", "a")) == (3, 1)

    def test_mapping(self):
        m = _abc()
        assert m.pick({"x": "a", "y": lambda v: v.b * 10}) == {"x": 1, "y": 20}

    def test_nested(self):
        m = _abc()
        result = m.pick({"pair": ["a", "b"], "sum": lambda v: v.a + v.b + v.c})
        assert result == {"pair": [1, 2], "sum": 6}

    def test_empty(self):
        m = _abc()
        b = Binding(lambda: None)
        with b.render():
            assert m.pick([]) == []
            assert m.pick({}) == {}
        assert b.subscription_count == 0

    def test_each_key_subscribed_once_per_call(self):
        m = _abc()
        b = Binding(lambda: None)
        with b.render():
            m.pick(["a", lambda v: v.a + v.b, {"again": "a"}])
        assert b.subscription_count == 2


class TestUnknownKeys:
    def test_string(self):
        with pytest.raises(UnknownKeyError):
            _abc().pick("doesNotExist")

    def test_watch(self):
        with pytest.raises(UnknownKeyError):
            _abc().watch(["doesNotExist"])

    def test_selector(self):
        with pytest.raises(UnknownKeyError):
            _abc().pick(lambda v: v.doesNotExist)

    def test_no_partial_subscription(self):
        m = _abc()
        b = Binding(lambda: None)
        with b.render():
            with pytest.raises(UnknownKeyError):
                m.pick(["a", lambda v: v.b, "doesNotExist"])
        assert b.subscription_count == 0
        assert _listeners(m, "a") == ()
        assert _listeners(m, "b") == ()


class TestFunctionsAreReadOnly:
    def _model(self):
        return create_model({"greet": lambda self: f"hi {self.name}", "name": "a"})

    def test_set_rejected(self):
        m = self._model()
        with pytest.raises(ReadOnlyError):
            m.model.set("greet", None)
        with pytest.raises(ReadOnlyError):
            m.get().greet = None

    def test_pick_returns_bound_function_untracked(self):
        m = self._model()
        log = []
        b = Binding(lambda: log.append(1))
        with b.render():
            greet = m.pick("greet")
        assert greet() == "hi a"
        assert b.subscription_count == 0
        m.get().name = "b"
        assert log == []


class TestNoDependency:
    def test_constant_selector(self):
        m = _abc()
        log = []
        b = Binding(lambda: log.append(1))
        with b.render():
            assert m.pick(lambda v: 42) == 42
        assert b.subscription_count == 0
        for key in ("a", "b", "c"):
            m.model.set(key, 0)
        assert log == []


class TestFailures:
    def test_broken_selector(self):
        m = _abc()
        b = Binding(lambda: None)
        with b.render():
            with pytest.raises(DependencyTraceError):
                m.pick(lambda v: v.a / 0)
        assert b.subscription_count == 0

    @pytest.mark.parametrize("selection", [3, None, 1.5, b"a", {"x": 3}, ["a", None]])
    def test_invalid_shapes(self, selection):
        with pytest.raises(InvalidArgumentError):
            _abc().pick(selection)


class TestBooleans:
    def test_true_watches_everything(self):
        m = create_model({"a": 1, "b": 2, "f": lambda self: None})
        b = Binding(lambda: None)
        with b.render():
            assert m.pick(True) is m.get()
        assert b.subscription_count == 2

    def test_false_is_untracked_view(self):
        m = _abc()
        b = Binding(lambda: None)
        with b.render():
            assert m.pick(False) is m.get()
        assert b.subscription_count == 0


class TestOutsideBinding:
    def test_values_returned_without_subscribing(self):
        m = _abc()
        assert m.pick(["a", lambda v: v.b]) == [1, 2]
        assert _listeners(m, "a") == ()
        assert _listeners(m, "b") == ()
