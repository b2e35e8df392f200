# tests/core/iterators/test_flow_iterators.py
"""
Testes dos iterators do protocolo de pull.

Os testes asseguram que:
- a fonte de um ProducingIterator é consumida apenas sob demanda
- `NO_VALUE` nunca chega ao step e um iterator finalizado não tem efeitos
- ramificações entregam cada registro aos consumidores que o aceitam,
  sem avançar o upstream enquanto houver consumidor aguardando
- o merge alterna entre os upstreams ativos
"""
from typing import Any, Callable, List, Optional

import pytest

try:
    from dagflow.core.iterators import (
        NO_VALUE,
        CaseIterator,
        FilterIterator,
        MapIterator,
        MergeIterator,
        ProducingIterator,
        SwitchIterator,
    )
except Exception as e:
    ProducingIterator = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if ProducingIterator is None:
        pytest.fail(f"Missing dagflow.core.iterators. Import error: {_IMPORT_ERR}")


class FakeStep:
    """Step mínimo: aplica `fn` em `process` e registra chamadas."""

    def __init__(self, alias: str, fn: Optional[Callable[[Any], Any]] = None):
        self.alias = alias
        self.fn = fn
        self.processed: List[Any] = []
        self.finished = 0
        self.logs: List[tuple] = []

    def process(self, record):
        self.processed.append(record)
        return self.fn(record) if self.fn else record

    def on_iterator_finished(self):
        self.finished += 1

    def log(self, message, level="INFO", **extra):
        self.logs.append((level, message))


def _source(items, stats):
    for item in items:
        stats["pulled"] += 1
        yield item


def _producer(items, alias="read"):
    stats = {"pulled": 0}
    return ProducingIterator(FakeStep(alias), _source(items, stats)), stats


def test_producing_iterator_is_lazy():
    _require_imports()
    iterator, stats = _producer([1, 2, 3])
    assert stats["pulled"] == 0
    assert iterator.is_empty() is True

    assert iterator.next("cap") == 1
    assert stats["pulled"] == 1
    assert iterator.current() == 1
    assert iterator.next("cap") == 2
    assert stats["pulled"] == 2


def test_finished_iterator_has_no_effects():
    _require_imports()
    iterator, stats = _producer([1])
    assert iterator.next("cap") == 1
    assert iterator.next("cap") is NO_VALUE
    assert iterator.is_finished() is True
    assert iterator.step.finished == 1

    assert iterator.next("cap") is NO_VALUE
    assert iterator.step.finished == 1
    assert iterator.step.processed == [1]
    assert iterator.is_ready() is False


def test_abort_closes_the_source():
    _require_imports()
    closed = []

    def source():
        try:
            yield from range(10)
        finally:
            closed.append(True)

    iterator = ProducingIterator(FakeStep("read"), source())
    assert iterator.next("cap") == 0
    iterator.abort()

    assert closed == [True]
    assert iterator.next("cap") is NO_VALUE


def test_map_iterator_applies_the_step():
    _require_imports()
    upstream, _ = _producer([1, 2])
    step = FakeStep("double", lambda record: record * 10)
    iterator = MapIterator(step, upstream)

    assert [iterator.next("cap"), iterator.next("cap")] == [10, 20]
    assert iterator.next("cap") is NO_VALUE
    assert iterator.is_finished() is True
    assert step.finished == 1


def test_step_returning_none_yields_no_value():
    _require_imports()
    upstream, _ = _producer([1, 2])
    iterator = MapIterator(FakeStep("drop", lambda record: None), upstream)

    assert iterator.next("cap") is NO_VALUE
    assert iterator.is_finished() is False


def test_filter_serves_every_caller_before_pulling_again():
    _require_imports()
    upstream, stats = _producer([1, 2, 3, 4])
    iterator = FilterIterator(FakeStep("even"), upstream, ["a", "b"], lambda record: record % 2 == 0)

    assert iterator.next("a") == 2
    assert stats["pulled"] == 2
    # "b" ainda não consumiu o 2: o upstream não avança
    assert iterator.next("a") is NO_VALUE
    assert stats["pulled"] == 2

    assert iterator.next("b") == 2
    assert iterator.next("b") == 4
    assert iterator.next("a") == 4
    assert iterator.next("a") is NO_VALUE
    assert iterator.is_finished() is True


def test_switch_first_matching_case_wins():
    _require_imports()
    upstream, _ = _producer([{"age": 20}, {"age": 10}, {"age": 30}])
    step = FakeStep("route")
    iterator = SwitchIterator(
        step,
        upstream,
        {"adults": 1, "everyone": 2},
        [lambda record: record["age"] >= 18, lambda record: True],
    )

    assert iterator.next("adults") == {"age": 20}
    assert iterator.next("everyone") == {"age": 10}
    assert iterator.next("adults") == {"age": 30}
    assert iterator.next("everyone") is NO_VALUE
    assert iterator.is_finished() is True


def test_switch_drops_unmatched_records_with_a_debug_log():
    _require_imports()
    upstream, _ = _producer([{"age": 5}, {"age": 40}])
    step = FakeStep("route")
    iterator = SwitchIterator(step, upstream, {"adults": 1}, [lambda record: record["age"] >= 18])

    assert iterator.next("adults") == {"age": 40}
    assert step.logs == [("DEBUG", "Skipping record: no matching case")]


def test_case_sends_record_to_every_matching_branch():
    _require_imports()
    upstream, _ = _producer([{"n": 6}])
    iterator = CaseIterator(
        FakeStep("case"),
        upstream,
        {"even": 1, "big": 2},
        [lambda record: record["n"] % 2 == 0, lambda record: record["n"] > 5],
    )

    assert iterator.next("even") == {"n": 6}
    assert iterator.next("big") == {"n": 6}
    assert iterator.next("even") is NO_VALUE


def test_merge_alternates_between_upstreams():
    _require_imports()
    left, _ = _producer([1, 2], alias="left")
    right, _ = _producer(["a"], alias="right")
    step = FakeStep("join")
    iterator = MergeIterator(step, [left, right])

    assert [iterator.next("cap") for _ in range(3)] == [1, "a", 2]
    assert iterator.next("cap") is NO_VALUE
    assert iterator.is_finished() is True
    assert step.finished == 1
