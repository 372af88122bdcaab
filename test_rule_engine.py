#!/usr/bin/env python3
"""
Test suite for the rule engine, rule registry and finding aggregation.
"""
import pytest

from perfrules import (
    Finding,
    MalformedPayload,
    Rule,
    RuleEngine,
    RuleKind,
    RuleRegistry,
    RuleSet,
    RunNotFound,
    RunStore,
    Status,
    UnknownDataType,
    aggregate,
    all_run_rule,
    default_registry,
    single_run_rule,
    summary_counts,
)


@all_run_rule("first")
def first_rule(ctx):
    yield Finding("first-1", Status.GOOD)
    yield Finding("first-2", Status.NOT_GOOD)


@all_run_rule("second")
def second_rule(ctx):
    yield Finding(f"second base={ctx.base_run} others={','.join(ctx.other_runs)}", Status.NEUTRAL)


@single_run_rule("per run")
def per_run_rule(ctx):
    yield Finding(f"checked {ctx.this_run}", Status.GOOD)


@all_run_rule("broken")
def broken_rule(ctx):
    yield Finding("before failure", Status.GOOD)
    raise MalformedPayload("collect[3] is missing time_taken")


@all_run_rule("not applicable")
def missing_run_rule(ctx):
    ctx.store.get_metadata("ghost")
    yield Finding("never", Status.GOOD)


def make_engine(*rules, data_type="test_type"):
    store = RunStore()
    for name in ("A", "B", "C"):
        store.add_run(name)
    registry = RuleRegistry([RuleSet(data_type, "Test", rules)])
    return RuleEngine(registry, store)


class TestEvaluate:
    """Test RuleEngine.evaluate ordering and dispatch."""

    def test_registration_order(self):
        """Findings follow rule registration order, then each rule's own order."""
        engine = make_engine(first_rule, second_rule)

        findings = engine.evaluate("test_type", "A", ["A", "B"])

        assert [f.message for f in findings] == [
            "first-1",
            "first-2",
            "second base=A others=B",
        ]
        assert [f.rule for f in findings] == ["first", "first", "second"]

    def test_deterministic(self):
        """Repeated calls with identical inputs give identical output."""
        engine = make_engine(first_rule, per_run_rule, second_rule)

        first = engine.evaluate("test_type", "A", ["A", "B", "C"])
        second = engine.evaluate("test_type", "A", ["A", "B", "C"])

        assert first == second

    def test_single_run_rule_called_per_run(self):
        """single_run rules run once per run, in run list order."""
        engine = make_engine(per_run_rule)

        findings = engine.evaluate("test_type", "B", ["C", "B", "A"])

        assert [f.message for f in findings] == ["checked C", "checked B", "checked A"]

    def test_unknown_data_type(self):
        """A data type without a rule set fails loudly."""
        engine = make_engine(first_rule)

        with pytest.raises(UnknownDataType) as exc:
            engine.evaluate("nope", "A", ["A"])

        assert exc.value.data_type == "nope"
        assert isinstance(exc.value, KeyError)

    def test_empty_run_list_rejected(self):
        """run_list must be non-empty."""
        engine = make_engine(first_rule)

        with pytest.raises(ValueError, match="at least one run"):
            engine.evaluate("test_type", "A", [])

    def test_base_run_must_be_in_run_list(self):
        """base_run must be one of the compared runs."""
        engine = make_engine(first_rule)

        with pytest.raises(ValueError, match="not in run_list"):
            engine.evaluate("test_type", "A", ["B", "C"])

    def test_empty_rule_set(self):
        """A registered but empty rule set gives an empty result."""
        engine = make_engine()

        assert engine.evaluate("test_type", "A", ["A"]) == []


class TestErrorContainment:
    """Test per-rule failure handling."""

    def test_broken_rule_becomes_not_good_finding(self):
        """A failing rule yields one NotGood finding and later rules still run."""
        engine = make_engine(broken_rule, second_rule)

        findings = engine.evaluate("test_type", "A", ["A", "B"])

        assert [f.rule for f in findings] == ["broken", "broken", "second"]
        assert findings[0].message == "before failure"
        failure = findings[1]
        assert failure.status is Status.NOT_GOOD
        assert "broken" in failure.message
        assert "missing time_taken" in failure.message

    def test_run_not_found_means_not_applicable(self):
        """RunNotFound escaping a rule contributes no findings."""
        engine = make_engine(missing_run_rule, second_rule)

        findings = engine.evaluate("test_type", "A", ["A", "B"])

        assert [f.rule for f in findings] == ["second"]

    def test_non_finding_output_is_an_error(self):
        """Yielding something that is not a Finding is reported as a rule failure."""
        bad = Rule("bad", RuleKind.ALL_RUN, lambda ctx: iter(["oops"]))
        engine = make_engine(bad)

        findings = engine.evaluate("test_type", "A", ["A"])

        assert len(findings) == 1
        assert findings[0].status is Status.NOT_GOOD
        assert "expected Finding" in findings[0].message

    def test_single_run_failure_names_the_run(self):
        """A single_run failure mentions which run it was evaluating."""
        def explode(ctx):
            if ctx.this_run == "B":
                raise ValueError("bad payload")
            yield Finding(f"ok {ctx.this_run}", Status.GOOD)

        engine = make_engine(Rule("explode", RuleKind.SINGLE_RUN, explode))

        findings = engine.evaluate("test_type", "A", ["A", "B", "C"])

        assert [f.status for f in findings] == [Status.GOOD, Status.NOT_GOOD, Status.GOOD]
        assert "for run B" in findings[1].message


class TestLazyEvaluation:
    """Test iter_findings pull semantics."""

    def test_early_stop_does_not_run_later_rules(self):
        """Stopping after the first finding leaves later producers untouched."""
        calls = []

        def tracked(ctx):
            calls.append("tracked")
            yield Finding("late", Status.GOOD)

        engine = make_engine(first_rule, Rule("tracked", RuleKind.ALL_RUN, tracked))

        it = engine.iter_findings("test_type", "A", ["A"])
        assert next(it).message == "first-1"
        it.close()

        assert calls == []

    def test_arguments_validated_eagerly(self):
        """Unknown data types fail before any finding is pulled."""
        engine = make_engine(first_rule)

        with pytest.raises(UnknownDataType):
            engine.iter_findings("nope", "A", ["A"])


class TestRegistry:
    """Test rule sets and the registry."""

    def test_duplicate_rule_names_rejected(self):
        """Rule names are unique within a rule set."""
        with pytest.raises(ValueError, match="Duplicate rule name"):
            RuleSet("t", "T", (first_rule, first_rule))

    def test_duplicate_data_type_rejected(self):
        """Each data type has exactly one rule set."""
        registry = RuleRegistry([RuleSet("t", "T", (first_rule,))])

        with pytest.raises(ValueError, match="already registered"):
            registry.register(RuleSet("t", "T again", (second_rule,)))

    def test_rule_set_is_immutable(self):
        """Lists passed as rules are stored as tuples."""
        rule_set = RuleSet("t", "T", [first_rule, second_rule])

        assert rule_set.rules == (first_rule, second_rule)
        assert rule_set.rule_names() == ["first", "second"]

    def test_decorators_set_kind(self):
        """Decorators produce rules of the right shape."""
        assert first_rule.kind is RuleKind.ALL_RUN
        assert per_run_rule.kind is RuleKind.SINGLE_RUN

    def test_default_registry(self):
        """The bundled registry knows aperf_run_stats and is fresh per call."""
        registry = default_registry()

        assert registry.data_types() == ["aperf_run_stats"]
        assert registry.get("aperf_run_stats").pretty_name == "Aperf Stats"
        assert default_registry() is not registry


class TestAggregate:
    """Test grouping findings by status."""

    def test_buckets_preserve_order(self):
        """Order inside each bucket matches input order."""
        findings = [
            Finding("g1", Status.GOOD),
            Finding("n1", Status.NOT_GOOD),
            Finding("g2", Status.GOOD),
            Finding("n2", Status.NOT_GOOD),
        ]

        buckets = aggregate(findings)

        assert [f.message for f in buckets[Status.GOOD]] == ["g1", "g2"]
        assert [f.message for f in buckets[Status.NOT_GOOD]] == ["n1", "n2"]
        assert buckets[Status.NEUTRAL] == []

    def test_all_statuses_present(self):
        """Every status has a bucket even with no findings."""
        assert list(aggregate([])) == list(Status)

    def test_summary_counts(self):
        """Counts per status plus total."""
        findings = [Finding("a", Status.GOOD), Finding("b", Status.NEUTRAL), Finding("c", Status.GOOD)]

        assert summary_counts(findings) == {"total": 3, "good": 2, "not_good": 0, "neutral": 1}


def test_run_not_found_is_a_key_error():
    """RunNotFound can be handled as a plain KeyError."""
    store = RunStore()

    with pytest.raises(KeyError):
        store.get_metadata("missing")

    with pytest.raises(RunNotFound):
        store.get_metadata("missing")
