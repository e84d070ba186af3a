from __future__ import annotations

import pytest

from gatekeeper.engine import ConditionEvaluator
from gatekeeper.engine.evaluator import values_equal
from gatekeeper.models import UNKNOWN, Resource
from gatekeeper.rules.model import ConditionError, Operator, Predicate, all_of, any_of, negate


def _resource(**attributes: object) -> Resource:
    return Resource(
        address="aws_security_group.web",
        type="aws_security_group",
        name="web",
        attributes=attributes,
    )


SECURITY_GROUP = _resource(
    name="web",
    ingress=[
        {"from_port": 22, "cidr_blocks": ["10.0.0.0/8"], "description": "ssh"},
        {"from_port": 443, "cidr_blocks": ["0.0.0.0/0"], "description": ""},
    ],
    tags={"env": "prod"},
    port_count=2,
    enabled=True,
)


@pytest.mark.parametrize(
    ("path", "operator", "operand", "expected"),
    [
        ("name", "equals", "web", True),
        ("name", "not_equals", "web", False),
        ("name", "contains", "we", True),
        ("name", "not_contains", "xyz", True),
        ("name", "matches", "^w.b$", True),
        ("name", "one_of", ["api", "web"], True),
        ("name", "one_of", "web", True),
        ("port_count", "greater_than", 1, True),
        ("port_count", "less_than", 2, False),
        ("enabled", "equals", True, True),
        ("enabled", "equals", "true", True),
        ("enabled", "equals", 1, False),
        ("tags", "contains", "env", True),
        ("ingress[*].from_port", "equals", 443, True),
        ("ingress[*].from_port", "equals", 8080, False),
        ("ingress[*].cidr_blocks", "contains", "0.0.0.0/0", True),
    ],
)
def test_operators(path: str, operator: str, operand: object, expected: bool) -> None:
    evaluator = ConditionEvaluator()
    predicate = Predicate(path=path, operator=operator, operand=operand)

    assert evaluator.evaluate(SECURITY_GROUP, predicate) is expected


def test_absence_safety() -> None:
    evaluator = ConditionEvaluator()

    assert evaluator.evaluate(SECURITY_GROUP, Predicate("encryption", Operator.EXISTS)) is False
    assert evaluator.evaluate(SECURITY_GROUP, Predicate("encryption", Operator.NOT_EXISTS)) is True
    for operator, operand in [
        ("equals", "x"),
        ("not_equals", "x"),
        ("contains", "x"),
        ("not_contains", "x"),
        ("matches", ".*"),
        ("greater_than", 0),
        ("less_than", 0),
        ("one_of", ["x"]),
    ]:
        predicate = Predicate("encryption.enabled", operator, operand)
        assert evaluator.evaluate(SECURITY_GROUP, predicate) is False


def test_wildcard_is_existential() -> None:
    evaluator = ConditionEvaluator()
    predicate = Predicate("ingress[*].cidr_blocks[*]", Operator.ONE_OF, ["0.0.0.0/0"])

    assert evaluator.evaluate(SECURITY_GROUP, predicate) is True


def test_one_of_matches_elements_of_resolved_lists() -> None:
    evaluator = ConditionEvaluator()
    public = Predicate("ingress[*].cidr_blocks", Operator.ONE_OF, ["0.0.0.0/0"])
    private = _resource(ingress=[{"from_port": 22, "cidr_blocks": ["10.0.0.0/8"]}])

    assert evaluator.evaluate(SECURITY_GROUP, public) is True
    assert evaluator.evaluate(private, public) is False
    assert evaluator.evaluate(private, Predicate("ingress[0]", Operator.ONE_OF, ["10.0.0.0/8"])) is False


def test_combinators() -> None:
    evaluator = ConditionEvaluator()
    true = Predicate("name", Operator.EQUALS, "web")
    false = Predicate("name", Operator.EQUALS, "api")

    assert evaluator.evaluate(SECURITY_GROUP, all_of(true, true)) is True
    assert evaluator.evaluate(SECURITY_GROUP, all_of(true, false)) is False
    assert evaluator.evaluate(SECURITY_GROUP, any_of(false, true)) is True
    assert evaluator.evaluate(SECURITY_GROUP, any_of(false, false)) is False
    assert evaluator.evaluate(SECURITY_GROUP, negate(false)) is True
    assert evaluator.evaluate(SECURITY_GROUP, negate(all_of(true, negate(false)))) is False


def test_evaluation_does_not_mutate_resource() -> None:
    evaluator = ConditionEvaluator()
    before = SECURITY_GROUP.attributes["ingress"]

    evaluator.evaluate(SECURITY_GROUP, Predicate("ingress[*].description", Operator.EQUALS, ""))

    assert SECURITY_GROUP.attributes["ingress"] == before


def test_invalid_predicates_are_rejected_at_construction() -> None:
    with pytest.raises(ConditionError):
        Predicate("name", "starts_with", "w")
    with pytest.raises(ConditionError):
        Predicate("name", Operator.MATCHES, "([unclosed")
    with pytest.raises(ConditionError):
        Predicate("port_count", Operator.GREATER_THAN, "ten")
    with pytest.raises(ConditionError):
        Predicate("name", Operator.EQUALS)
    with pytest.raises(ConditionError):
        all_of()


def test_unknown_values_pass_outside_strict_mode() -> None:
    resource = _resource(arn=UNKNOWN)
    evaluator = ConditionEvaluator()

    evaluation = evaluator.explain(resource, Predicate("arn", Operator.MATCHES, "^arn:aws:"))
    assert evaluation.passed is True
    assert evaluation.unknown is True

    negated = evaluator.explain(resource, negate(Predicate("arn", Operator.EQUALS, "arn:aws:x")))
    assert negated.passed is True
    assert any("known only after apply" in message for message in negated.diagnostics)


def test_unknown_values_fail_in_strict_mode() -> None:
    resource = _resource(arn=UNKNOWN)
    predicate = Predicate("arn", Operator.MATCHES, "^arn:aws:")

    evaluation = ConditionEvaluator(strict_unknowns=True).explain(resource, predicate)

    assert evaluation.passed is False
    assert any("unknown until apply" in message for message in evaluation.diagnostics)


def test_known_match_wins_over_unknown_siblings() -> None:
    resource = _resource(ingress=[{"from_port": UNKNOWN}, {"from_port": 22}])
    predicate = Predicate("ingress[*].from_port", Operator.EQUALS, 22)

    evaluation = ConditionEvaluator(strict_unknowns=True).explain(resource, predicate)

    assert evaluation.passed is True
    assert evaluation.diagnostics == []


def test_strict_mode_forces_structural_misses_to_false() -> None:
    resource = _resource(ingress=[{"from_port": 22}])
    lenient = ConditionEvaluator()
    strict = ConditionEvaluator(strict_unknowns=True)
    predicate = Predicate("ingress[3].from_port", Operator.NOT_EXISTS)

    assert lenient.evaluate(resource, predicate) is True
    evaluation = strict.explain(resource, predicate)
    assert evaluation.passed is False
    assert "could not be resolved" in evaluation.diagnostics[0]


def test_strict_forced_false_combines_like_any_false_predicate() -> None:
    resource = _resource(name="web", ingress=[{"from_port": 22}])
    strict = ConditionEvaluator(strict_unknowns=True)
    ok = Predicate("name", Operator.EQUALS, "web")
    miss = Predicate("ingress[3].from_port", Operator.EQUALS, 22)

    assert strict.evaluate(resource, any_of(ok, miss)) is True
    assert strict.evaluate(resource, any_of(miss, ok)) is True
    assert strict.evaluate(resource, all_of(ok, miss)) is False
    assert strict.evaluate(resource, all_of(miss, ok)) is False

    negated = strict.explain(resource, negate(miss))
    assert negated.passed is True
    assert "could not be resolved" in negated.diagnostics[0]


def test_values_equal_is_type_aware() -> None:
    assert values_equal(22, 22.0)
    assert values_equal("22", 22)
    assert not values_equal(True, 1)
    assert values_equal(["a", "b"], ("a", "b"))
    assert not values_equal(["a"], ["a", "b"])
    assert values_equal({"k": 1}, {"k": 1})


def test_contains_with_a_mapping_matches_within_one_block() -> None:
    evaluator = ConditionEvaluator()
    public_https = Predicate("ingress[*]", Operator.CONTAINS, {"from_port": 443, "cidr_blocks": "0.0.0.0/0"})
    public_ssh = Predicate("ingress[*]", Operator.CONTAINS, {"from_port": 22, "cidr_blocks": "0.0.0.0/0"})
    nested = Predicate("tags", Operator.CONTAINS, {"env": "prod"})

    assert evaluator.evaluate(SECURITY_GROUP, public_https) is True
    assert evaluator.evaluate(SECURITY_GROUP, public_ssh) is False
    assert evaluator.evaluate(SECURITY_GROUP, nested) is True
    assert evaluator.evaluate(SECURITY_GROUP, Predicate("tags", Operator.CONTAINS, {"env": "dev"})) is False
