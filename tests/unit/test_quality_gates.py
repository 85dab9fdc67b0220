"""Unit tests for the quality gate validator.

This module tests the individual gates, validation context derivation,
profile selection, report aggregation and per-gate timeouts.
"""

import threading
from types import MappingProxyType

import pytest

from workflow_planner.models import (
    Constraint,
    ConstraintType,
    GateSeverity,
    GeneratedWorkflow,
    IssueSeverity,
    Persona,
    Priority,
    Requirement,
    RequirementCategory,
    RequirementSet,
    RiskLevel,
    Strategy,
)
from workflow_planner.quality_gates import (
    QUALITY_GATES,
    GateOutcome,
    QualityGate,
    QualityGateValidator,
    ValidationConstraint,
    ValidationContext,
    get_profile,
    parse_timeline_days,
    validate_compliance,
    validate_completeness,
    validate_consistency,
    validate_feasibility,
    validate_performance,
    validate_security,
    validate_testability,
    validate_workflow,
)


@pytest.fixture
def make_workflow():
    def factory(phases):
        tasks = [task for phase in phases for task in phase.tasks]
        hours = sum(task.estimated_hours for task in tasks)
        return GeneratedWorkflow(
            id="workflow-1",
            title="Checkout",
            strategy=Strategy.SYSTEMATIC,
            primary_persona=Persona.BACKEND,
            phases=list(phases),
            estimated_duration=f"{hours} hours",
            estimated_hours=hours,
        )

    return factory


@pytest.fixture
def healthy_workflow(make_task, make_phase, make_workflow):
    tasks = [
        make_task("t1", hours=8),
        make_task("t2", hours=8, dependencies=["t1"]),
        make_task("t3", hours=4, persona=Persona.SECURITY, dependencies=["t2"], title="Security review"),
        make_task("t4", hours=4, persona=Persona.QA, dependencies=["t2"], title="Test checkout"),
    ]
    return make_workflow([make_phase("p1", tasks)])


class TestValidationContext:
    """Test cases for deriving constraints from extracted requirements."""

    @pytest.mark.parametrize("text,days", [
        ("within 3 months", 60),
        ("launch in 2 weeks", 10),
        ("deliver in 4 days", 4),
        ("as soon as possible", None),
    ])
    def test_parse_timeline_days(self, text, days):
        assert parse_timeline_days(text) == days

    def test_timeline_constraint(self):
        requirements = RequirementSet(constraints=(
            Constraint("c1", ConstraintType.TIMELINE, "Critical: ship within 2 weeks", RiskLevel.HIGH),
        ))

        context = ValidationContext.from_extraction(requirements)

        timeline = context.constraints_of("timeline")[0]
        assert timeline.value == 10
        assert timeline.mandatory is True

    def test_compliance_from_constraint_is_mandatory(self):
        requirements = RequirementSet(constraints=(
            Constraint("c1", ConstraintType.BUSINESS, "Must satisfy GDPR", RiskLevel.LOW),
        ))

        obligation = ValidationContext.from_extraction(requirements).constraints_of("compliance")[0]

        assert obligation.value == "gdpr"
        assert obligation.mandatory is True

    def test_compliance_from_requirement_follows_priority(self):
        requirements = RequirementSet(functional=(
            Requirement("r1", "Store card data per PCI rules", Priority.MEDIUM, "Payments"),
        ))

        obligation = ValidationContext.from_extraction(requirements).constraints_of("compliance")[0]

        assert obligation.value == "pci"
        assert obligation.mandatory is False

    def test_no_extraction(self):
        context = ValidationContext.from_extraction(None)

        assert context.constraints == []
        assert context.requirements.is_empty()


class TestGates:
    """Test cases for the individual gate validators."""

    def test_completeness_zero_phases(self, make_workflow):
        outcome = validate_completeness(make_workflow([]), ValidationContext())

        assert outcome.score == 50
        assert outcome.issues[0].severity is IssueSeverity.CRITICAL

    def test_completeness_empty_phase_and_description(self, make_task, make_phase, make_workflow):
        workflow = make_workflow([
            make_phase("p1", []),
            make_phase("p2", [make_task("t1", description="")]),
        ])

        outcome = validate_completeness(workflow, ValidationContext())

        severities = sorted(issue.severity.value for issue in outcome.issues)
        assert severities == ["major", "minor"]
        assert outcome.score == 88

    def test_consistency_dangling_dependency(self, make_task, make_phase, make_workflow):
        workflow = make_workflow([make_phase("p1", [make_task("t1", dependencies=["ghost"])])])

        outcome = validate_consistency(workflow, ValidationContext())

        assert outcome.issues[0].id == "dangling-dependency-t1-ghost"
        assert outcome.issues[0].severity is IssueSeverity.MAJOR

    def test_consistency_persona_spread(self, make_task, make_phase, make_workflow):
        personas = [Persona.BACKEND, Persona.FRONTEND, Persona.QA, Persona.DEVOPS]
        tasks = [make_task(f"t{i}", persona=p) for i, p in enumerate(personas)]

        outcome = validate_consistency(make_workflow([make_phase("p1", tasks)]), ValidationContext())

        assert [issue.id for issue in outcome.issues] == ["too-many-personas"]
        assert outcome.score == 95

    def test_feasibility_tiny_timeline(self, make_task, make_phase, make_workflow):
        workflow = make_workflow([make_phase("p1", [make_task("t1", hours=100)])])
        context = ValidationContext(constraints=[ValidationConstraint("timeline", 2, "within 2 days", True)])

        outcome = validate_feasibility(workflow, context)

        issue = outcome.issues[0]
        assert issue.severity is IssueSeverity.CRITICAL
        # available = 2 days * 8h = 16h; ceil((100 - 16) / 8) = 11
        assert issue.impact.timeline == 11
        assert outcome.score == 60

    def test_feasibility_within_tolerance(self, make_task, make_phase, make_workflow):
        workflow = make_workflow([make_phase("p1", [make_task("t1", hours=18)])])
        context = ValidationContext(constraints=[ValidationConstraint("timeline", 2, "within 2 days")])

        assert validate_feasibility(workflow, context).issues == []

    def test_security_missing(self, make_task, make_phase, make_workflow):
        workflow = make_workflow([make_phase("p1", [make_task("t1")])])

        outcome = validate_security(workflow, ValidationContext())

        assert outcome.issues[0].id == "no-security-tasks"
        assert outcome.score == 70

    def test_performance_requirement_without_task(self, healthy_workflow):
        requirements = RequirementSet(non_functional=(
            Requirement("r1", "Pages load in under 2s", Priority.HIGH, "Performance",
                        RequirementCategory.NON_FUNCTIONAL),
        ))

        outcome = validate_performance(healthy_workflow, ValidationContext(requirements=requirements))

        assert outcome.issues[0].id == "no-performance-tasks"

    def test_testability_ratio(self, make_task, make_phase, make_workflow):
        tasks = [make_task(f"t{i}") for i in range(5)]

        outcome = validate_testability(make_workflow([make_phase("p1", tasks)]), ValidationContext())

        assert outcome.metrics["test_task_ratio"] == 0
        assert outcome.issues[0].id == "insufficient-testing"

    def test_compliance_severity(self, healthy_workflow):
        mandatory = ValidationContext(constraints=[ValidationConstraint("compliance", "gdpr", "GDPR", True)])
        optional = ValidationContext(constraints=[ValidationConstraint("compliance", "sox", "SOX", False)])

        assert validate_compliance(healthy_workflow, mandatory).issues[0].severity is IssueSeverity.CRITICAL
        assert validate_compliance(healthy_workflow, optional).issues[0].severity is IssueSeverity.MAJOR


class TestProfiles:
    """Test cases for quality profile lookup."""

    def test_known_profiles(self):
        assert get_profile("strict").gates[-1] == "testability"
        assert "compliance" in get_profile("ENTERPRISE").gates

    def test_unknown_profile_falls_back(self):
        assert get_profile("paranoid").name == "standard"
        assert get_profile(None).name == "standard"


class TestQualityGateValidator:
    """Test cases for running gates and building reports."""

    def test_healthy_workflow_is_acceptable(self, healthy_workflow):
        report = QualityGateValidator().validate(healthy_workflow, ValidationContext(), "standard")

        assert report.acceptable
        assert report.summary.total_gates == 4
        assert report.summary.passed_gates == 4
        assert report.overall_score == 100
        assert [r.gate_id for r in report.gate_results] == ["completeness", "consistency", "feasibility", "security"]

    def test_zero_phases_fails_completeness(self, make_workflow):
        report = validate_workflow(make_workflow([]))

        completeness = report.result_for("completeness")
        assert not completeness.passed
        assert report.summary.critical_issues >= 1
        assert not report.acceptable

    def test_recommendations_follow_issues(self, make_task, make_phase, make_workflow):
        workflow = make_workflow([make_phase("p1", [make_task("t1")])])

        report = QualityGateValidator().validate(workflow)

        recommendation = report.recommendations[0]
        assert recommendation.id == "fix-no-security-tasks"
        assert recommendation.priority is Priority.MEDIUM
        assert "Add security validation tasks" in recommendation.actions

    def test_failing_gate_becomes_critical_issue(self, healthy_workflow):
        def explode(workflow, context):
            raise RuntimeError("boom")

        gates = dict(QUALITY_GATES)
        gates["security"] = QualityGate(
            "security", "Security Coverage", "always fails", "security",
            GateSeverity.BLOCKING, 5.0, explode, QUALITY_GATES["security"].remediation,
        )

        report = QualityGateValidator(gates=MappingProxyType(gates)).validate(healthy_workflow)

        result = report.result_for("security")
        assert result.score == 0
        assert not result.passed
        assert result.issues[0].id == "gate-error-security"
        assert "boom" in result.issues[0].description
        assert report.result_for("completeness").passed

    def test_gate_timeout(self, healthy_workflow):
        release = threading.Event()

        def slow(workflow, context):
            release.wait(5)
            return GateOutcome(score=100)

        gates = dict(QUALITY_GATES)
        gates["feasibility"] = QualityGate(
            "feasibility", "Timeline Feasibility", "hangs", "feasibility",
            GateSeverity.BLOCKING, 1.0, slow, QUALITY_GATES["feasibility"].remediation,
        )

        try:
            report = QualityGateValidator(gates=gates, timeout_scale=0.05).validate(healthy_workflow)
        finally:
            release.set()

        result = report.result_for("feasibility")
        assert result.issues[0].description == "Quality gate timeout: feasibility"
        assert result.score == 0
        assert report.result_for("security").passed

    def test_report_to_dict(self, healthy_workflow):
        data = QualityGateValidator().validate(healthy_workflow, profile="strict").to_dict()

        assert data["profile"] == "strict"
        assert len(data["gate_results"]) == 6
        assert set(data["summary"]) >= {"passed_gates", "critical_issues", "quality_score"}
