from __future__ import annotations

import threading
import time

import pytest

from gatekeeper.engine import ConditionEvaluator, EvaluationCancelled, ExecutionEngine
from gatekeeper.models import UNKNOWN, Resource, Severity, SourceLocation
from gatekeeper.rules import Ruleset, build_ruleset, merge_sources
from gatekeeper.rules.model import Operator, Predicate, Rule, all_of, negate


def _security_group(name: str, cidr: str) -> Resource:
    return Resource(
        address=f"aws_security_group.{name}",
        type="aws_security_group",
        name=name,
        attributes={"ingress": [{"from_port": 22, "cidr_blocks": [cidr]}]},
        location=SourceLocation("main.tf.json", 3),
    )


NO_PUBLIC_SSH = Rule(
    id="no-public-ssh",
    name="No public SSH",
    severity=Severity.ERROR,
    resource_types=frozenset({"aws_security_group"}),
    condition=negate(
        all_of(
            Predicate("ingress[*].from_port", Operator.EQUALS, 22),
            Predicate("ingress[*].cidr_blocks[*]", Operator.ONE_OF, ["0.0.0.0/0"]),
        )
    ),
    message="{{.resource_name}} allows SSH from anywhere ({{.file}}:{{.line}})",
)

REQUIRE_ENCRYPTION = Rule(
    id="require-encryption",
    name="Require encryption",
    severity=Severity.ERROR,
    resource_types=frozenset({"aws_s3_bucket"}),
    condition=Predicate("encryption", Operator.EXISTS),
    message="bucket {{.resource_name}} is not encrypted",
)


def test_public_ssh_fails() -> None:
    summary = ExecutionEngine().run([_security_group("bad", "0.0.0.0/0")], Ruleset([NO_PUBLIC_SSH]))

    assert summary.total == 1
    assert summary.failed == 1
    assert summary.exit_code == 1
    result = summary.results[0]
    assert result.passed is False
    assert result.message == "bad allows SSH from anywhere (main.tf.json:3)"


def test_private_ssh_passes() -> None:
    summary = ExecutionEngine().run([_security_group("bad", "10.0.0.0/8")], Ruleset([NO_PUBLIC_SSH]))

    assert summary.results[0].passed is True
    assert summary.exit_code == 0


def test_missing_encryption_fails() -> None:
    bucket = Resource(address="aws_s3_bucket.insecure", type="aws_s3_bucket", name="insecure")

    summary = ExecutionEngine().run([bucket], Ruleset([REQUIRE_ENCRYPTION]))

    assert [result.passed for result in summary.results] == [False]


def test_excluded_rule_produces_no_result() -> None:
    ruleset = build_ruleset([{NO_PUBLIC_SSH.id: NO_PUBLIC_SSH}], exclude=["no-public-ssh"])

    summary = ExecutionEngine().run([_security_group("bad", "0.0.0.0/0")], ruleset)

    assert summary.results == ()
    assert summary.exit_code == 0


def test_severity_threshold_drops_lower_rules() -> None:
    warning = Rule(
        id="tagged",
        name="Tagged",
        severity=Severity.WARNING,
        condition=Predicate("tags", Operator.EXISTS),
    )
    resource = _security_group("bad", "0.0.0.0/0")
    ruleset = Ruleset([NO_PUBLIC_SSH, warning])

    everything = ExecutionEngine().run([resource], ruleset, Severity.INFO)
    errors_only = ExecutionEngine().run([resource], ruleset, Severity.ERROR)

    assert everything.failed == 2
    assert [result.rule_id for result in errors_only.results] == ["no-public-ssh"]
    assert errors_only.failed == 1
    assert errors_only.skipped == 1
    assert {result.rule_id for result in errors_only.results} <= {
        result.rule_id for result in everything.results
    }


def test_higher_precedence_definition_is_evaluated_once() -> None:
    lenient = Rule(id="R1", name="R1", severity="error", condition=Predicate("ingress", "exists"))
    strict = Rule(id="R1", name="R1", severity="error", condition=Predicate("encryption", "exists"))
    ruleset = Ruleset(merge_sources([{"R1": lenient}, {"R1": strict}]))

    summary = ExecutionEngine().run([_security_group("web", "10.0.0.0/8")], ruleset)

    assert len(summary.results) == 1
    assert summary.results[0].passed is False


def test_type_filter_counts_as_skipped() -> None:
    bucket = Resource(address="aws_s3_bucket.logs", type="aws_s3_bucket", name="logs")

    summary = ExecutionEngine().run([bucket], Ruleset([NO_PUBLIC_SSH, REQUIRE_ENCRYPTION]))

    assert summary.total == 1
    assert summary.skipped == 1


@pytest.mark.parametrize("workers", [1, 4])
def test_results_are_deterministic(workers: int) -> None:
    resources = [_security_group(f"sg{index}", "0.0.0.0/0") for index in range(10)]
    engine = ExecutionEngine(max_workers=workers)
    ruleset = Ruleset([NO_PUBLIC_SSH, REQUIRE_ENCRYPTION])

    first = engine.run(resources, ruleset)
    second = engine.run(list(reversed(resources)), ruleset)

    assert first == second
    assert [result.resource_address for result in first.results] == sorted(
        resource.address for resource in resources
    )


def test_strict_unknowns_reports_unknown_failures() -> None:
    resource = Resource(
        address="aws_security_group.web",
        type="aws_security_group",
        name="web",
        attributes={"ingress": [{"from_port": 22, "cidr_blocks": UNKNOWN}]},
    )
    private_only = Rule(
        id="private-ingress",
        name="Private ingress only",
        severity=Severity.ERROR,
        condition=Predicate("ingress[*].cidr_blocks[*]", Operator.MATCHES, r"^10\."),
        message="{{.resource_name}} accepts non-private ingress",
    )
    ruleset = Ruleset([private_only])

    lenient = ExecutionEngine().run([resource], ruleset)
    strict = ExecutionEngine(ConditionEvaluator(strict_unknowns=True)).run([resource], ruleset)

    assert lenient.failed == 0
    assert strict.failed == 1
    assert "unknown until apply" in strict.results[0].diagnostics[0]


def test_cancel_event_aborts_run() -> None:
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(EvaluationCancelled):
        ExecutionEngine(max_workers=1).run(
            [_security_group("web", "0.0.0.0/0")], Ruleset([NO_PUBLIC_SSH]), cancel_event=cancel
        )


def test_expired_deadline_aborts_run() -> None:
    resources = [_security_group(f"sg{index}", "0.0.0.0/0") for index in range(3)]

    with pytest.raises(EvaluationCancelled):
        ExecutionEngine(max_workers=2).run(
            resources, Ruleset([NO_PUBLIC_SSH]), deadline=time.monotonic() - 1
        )
