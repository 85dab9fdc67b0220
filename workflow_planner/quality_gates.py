"""Quality gates for generated workflows.

Every gate is an independent validator producing a score, issues,
metrics and evidence. ``QualityGateValidator`` runs the gates of a
profile on worker threads, each with its own timeout, and aggregates
the results into a ``QualityReport``.
"""

from __future__ import annotations

import logging
import math
import re
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .models import (
    ConstraintType,
    ExtractionResult,
    GateSeverity,
    GeneratedWorkflow,
    IssueSeverity,
    Persona,
    Priority,
    RequirementSet,
    RiskLevel,
)
from .planner_logging import (
    log_error_with_context,
    log_gate_failure,
    log_performance,
    log_quality_report,
)

logger = logging.getLogger("workflow_planner.quality_gates")


# ------------------------------------------------------------------
# Validation context
# ------------------------------------------------------------------

COMPLIANCE_TERMS = ("gdpr", "hipaa", "pci", "sox", "ccpa", "compliance", "regulatory")
PERFORMANCE_TERMS = ("performance", "latency", "response time", "throughput", "load time", "fps")
_DURATION = re.compile(r"(\d+(?:\.\d+)?)\s*(day|week|month)s?", re.IGNORECASE)
_WORKING_DAYS = {"day": 1, "week": 5, "month": 20}


def parse_timeline_days(text: str) -> Optional[int]:
    """Return the working days named in ``text`` ("within 3 months" -> 60)."""
    match = _DURATION.search(text or "")
    if not match:
        return None
    return math.ceil(float(match.group(1)) * _WORKING_DAYS[match.group(2).lower()])


@dataclass(slots=True)
class ValidationConstraint:
    type: str
    value: Any
    description: str
    mandatory: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "value": self.value,
            "description": self.description,
            "mandatory": self.mandatory,
        }


@dataclass(slots=True)
class ValidationContext:
    """What the gates know about the project besides the workflow itself."""

    requirements: RequirementSet = field(default_factory=RequirementSet)
    constraints: List[ValidationConstraint] = field(default_factory=list)
    analysis: Optional[Any] = None

    @classmethod
    def from_extraction(cls, extraction: Union[ExtractionResult, RequirementSet, None], analysis=None) -> "ValidationContext":
        """Derive timeline and compliance constraints from extracted requirements."""
        if extraction is None:
            return cls(analysis=analysis)
        requirements = extraction.requirements if isinstance(extraction, ExtractionResult) else extraction

        constraints: List[ValidationConstraint] = []
        for constraint in requirements.constraints:
            if constraint.type is ConstraintType.TIMELINE:
                days = parse_timeline_days(constraint.description)
                if days is not None:
                    constraints.append(ValidationConstraint(
                        "timeline", days, constraint.description, constraint.impact is RiskLevel.HIGH,
                    ))
            term = _compliance_term(constraint.description)
            if term:
                constraints.append(ValidationConstraint("compliance", term, constraint.description, True))

        for requirement in requirements.all_requirements():
            term = _compliance_term(requirement.content)
            if term and not any(c.type == "compliance" and c.value == term for c in constraints):
                constraints.append(ValidationConstraint(
                    "compliance", term, requirement.content, requirement.priority is Priority.HIGH,
                ))

        return cls(requirements=requirements, constraints=constraints, analysis=analysis)

    def constraints_of(self, kind: str) -> List[ValidationConstraint]:
        return [c for c in self.constraints if c.type == kind]


def _compliance_term(text: str) -> Optional[str]:
    lowered = (text or "").lower()
    for term in COMPLIANCE_TERMS:
        if re.search(rf"\b{term}\b", lowered):
            return term
    return None


# ------------------------------------------------------------------
# Results
# ------------------------------------------------------------------


@dataclass(slots=True)
class IssueLocation:
    type: str
    id: str
    context: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "id": self.id, "context": self.context}


@dataclass(slots=True)
class ImpactAssessment:
    timeline: int = 0
    quality: float = 0.0
    cost: float = 0.0
    risk: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"timeline": self.timeline, "quality": self.quality, "cost": self.cost, "risk": self.risk}


@dataclass(slots=True)
class QualityIssue:
    id: str
    severity: IssueSeverity
    category: str
    description: str
    location: IssueLocation
    impact: ImpactAssessment = field(default_factory=ImpactAssessment)
    remediation: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity.value,
            "category": self.category,
            "description": self.description,
            "location": self.location.to_dict(),
            "impact": self.impact.to_dict(),
            "remediation": list(self.remediation),
        }


@dataclass(slots=True)
class Recommendation:
    id: str
    type: str
    priority: Priority
    description: str
    actions: List[str] = field(default_factory=list)
    benefits: List[str] = field(default_factory=list)
    effort: str = "medium"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "priority": self.priority.value,
            "description": self.description,
            "actions": list(self.actions),
            "benefits": list(self.benefits),
            "effort": self.effort,
        }


@dataclass(slots=True)
class Evidence:
    type: str
    description: str
    value: Any
    source: str = "workflow analysis"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "description": self.description, "value": self.value, "source": self.source}


@dataclass(slots=True)
class GateOutcome:
    """What a gate validator returns before timing and bookkeeping."""

    score: float
    issues: List[QualityIssue] = field(default_factory=list)
    metrics: Dict[str, float] = field(default_factory=dict)
    evidence: List[Evidence] = field(default_factory=list)


@dataclass(slots=True)
class GateResult:
    gate_id: str
    gate_name: str
    passed: bool
    score: int
    issues: List[QualityIssue] = field(default_factory=list)
    metrics: Dict[str, float] = field(default_factory=dict)
    recommendations: List[Recommendation] = field(default_factory=list)
    evidence: List[Evidence] = field(default_factory=list)
    duration_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gate_id": self.gate_id,
            "gate_name": self.gate_name,
            "passed": self.passed,
            "score": self.score,
            "issues": [i.to_dict() for i in self.issues],
            "metrics": dict(self.metrics),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "evidence": [e.to_dict() for e in self.evidence],
            "duration_ms": round(self.duration_ms, 2),
        }


@dataclass(slots=True)
class QualitySummary:
    passed_gates: int
    total_gates: int
    critical_issues: int
    major_issues: int
    minor_issues: int
    info_issues: int
    quality_score: int
    improvement_areas: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed_gates": self.passed_gates,
            "total_gates": self.total_gates,
            "critical_issues": self.critical_issues,
            "major_issues": self.major_issues,
            "minor_issues": self.minor_issues,
            "info_issues": self.info_issues,
            "quality_score": self.quality_score,
            "improvement_areas": list(self.improvement_areas),
        }


@dataclass(slots=True)
class QualityReport:
    workflow_id: str
    profile: str
    overall_score: int
    gate_results: List[GateResult]
    summary: QualitySummary
    recommendations: List[Recommendation]
    acceptable: bool

    @property
    def issues(self) -> List[QualityIssue]:
        return [issue for result in self.gate_results for issue in result.issues]

    def result_for(self, gate_id: str) -> Optional[GateResult]:
        return next((r for r in self.gate_results if r.gate_id == gate_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workflow_id": self.workflow_id,
            "profile": self.profile,
            "overall_score": self.overall_score,
            "acceptable": self.acceptable,
            "gate_results": [r.to_dict() for r in self.gate_results],
            "summary": self.summary.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


# ------------------------------------------------------------------
# Gate definitions
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RemediationStep:
    description: str
    action: str
    expected_outcome: str
    verification: str


@dataclass(frozen=True, slots=True)
class RemediationGuide:
    steps: Tuple[RemediationStep, ...]
    alternatives: Tuple[str, ...] = ()
    prevention: Tuple[str, ...] = ()
    automated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "automated": self.automated,
            "steps": [
                {
                    "description": s.description,
                    "action": s.action,
                    "expected_outcome": s.expected_outcome,
                    "verification": s.verification,
                }
                for s in self.steps
            ],
            "alternatives": list(self.alternatives),
            "prevention": list(self.prevention),
        }


@dataclass(frozen=True, slots=True)
class TargetMetric:
    name: str
    target: float
    warning: float
    critical: float
    unit: str


GateValidatorFn = Callable[[GeneratedWorkflow, ValidationContext], GateOutcome]


@dataclass(frozen=True, slots=True)
class QualityGate:
    id: str
    name: str
    description: str
    category: str
    severity: GateSeverity
    timeout_seconds: float
    validator: GateValidatorFn
    remediation: RemediationGuide
    target_metrics: Tuple[TargetMetric, ...] = ()


@dataclass(frozen=True, slots=True)
class QualityProfile:
    name: str
    gates: Tuple[str, ...]
    min_score: int
    max_critical: int
    max_major: int


def _issue(issue_id: str, severity: IssueSeverity, category: str, description: str,
           location: Tuple[str, str, str], remediation: Sequence[str], **impact) -> QualityIssue:
    return QualityIssue(
        id=issue_id,
        severity=severity,
        category=category,
        description=description,
        location=IssueLocation(*location),
        impact=ImpactAssessment(**impact),
        remediation=list(remediation),
    )


def validate_completeness(workflow: GeneratedWorkflow, context: ValidationContext) -> GateOutcome:
    score = 100
    issues: List[QualityIssue] = []

    if not workflow.phases:
        issues.append(_issue(
            "no-phases", IssueSeverity.CRITICAL, "completeness", "Workflow has no phases defined",
            ("workflow", workflow.id, "phases"), ["Add workflow phases", "Use phase templates"],
            quality=0.8, risk=0.9,
        ))
        score -= 50

    for phase in workflow.phases:
        if not phase.tasks:
            issues.append(_issue(
                f"no-tasks-{phase.id}", IssueSeverity.MAJOR, "completeness", f'Phase "{phase.name}" has no tasks',
                ("phase", phase.id, "tasks"), ["Add tasks to phase", "Review phase requirements"],
                timeline=1, quality=0.3, risk=0.4,
            ))
            score -= 10
        for task in phase.tasks:
            if not task.description or not task.description.strip():
                issues.append(_issue(
                    f"no-description-{task.id}", IssueSeverity.MINOR, "completeness",
                    f'Task "{task.title}" has no description',
                    ("task", task.id, "description"), ["Add task description", "Clarify task requirements"],
                    quality=0.1, risk=0.1,
                ))
                score -= 2

    tasks = workflow.all_tasks()
    described = sum(1 for task in tasks if task.description and task.description.strip())
    return GateOutcome(
        score=score,
        issues=issues,
        metrics={
            "phase_completion": 100.0 if workflow.phases else 0.0,
            "task_completion": described / len(tasks) * 100 if tasks else 0.0,
        },
        evidence=[Evidence("metric", "Total phases in workflow", len(workflow.phases))],
    )


def validate_consistency(workflow: GeneratedWorkflow, context: ValidationContext) -> GateOutcome:
    score = 100
    issues: List[QualityIssue] = []
    tasks = workflow.all_tasks()

    personas = {task.persona for task in tasks}
    if len(personas) > 3:
        issues.append(_issue(
            "too-many-personas", IssueSeverity.MINOR, "consistency",
            f"{len(personas)} different personas used, which may indicate lack of focus",
            ("workflow", workflow.id, "persona distribution"),
            ["Consolidate similar personas", "Review task assignments"],
            quality=0.1, risk=0.2,
        ))
        score -= 5

    seen: set[str] = set()
    for task in tasks:
        if task.id in seen:
            issues.append(_issue(
                f"duplicate-task-{task.id}", IssueSeverity.MAJOR, "consistency", f"Duplicate task id {task.id}",
                ("task", task.id, "id"), ["Give every task a unique id"],
                quality=0.3, risk=0.5,
            ))
            score -= 10
        seen.add(task.id)

    for task in tasks:
        for dependency in task.dependencies:
            if dependency not in seen:
                issues.append(_issue(
                    f"dangling-dependency-{task.id}-{dependency}", IssueSeverity.MAJOR, "consistency",
                    f'Task "{task.title}" depends on unknown task {dependency}',
                    ("task", task.id, "dependencies"), ["Remove the dependency", "Add the missing task"],
                    timeline=1, quality=0.2, risk=0.5,
                ))
                score -= 10

    return GateOutcome(
        score=score,
        issues=issues,
        metrics={"persona_count": float(len(personas)), "task_count": float(len(tasks))},
        evidence=[Evidence("analysis", "Personas assigned to tasks", sorted(p.value for p in personas))],
    )


def validate_feasibility(workflow: GeneratedWorkflow, context: ValidationContext) -> GateOutcome:
    score = 100
    issues: List[QualityIssue] = []
    total_hours = sum(task.estimated_hours for task in workflow.all_tasks())

    timeline = next((c for c in context.constraints_of("timeline") if c.value), None)
    available = timeline.value * 8 if timeline else None
    if available is not None and total_hours > available * 1.2:
        issues.append(_issue(
            "timeline-infeasible", IssueSeverity.CRITICAL, "feasibility",
            f"Estimated effort ({total_hours}h) exceeds available time ({available}h)",
            ("workflow", workflow.id, "timeline"),
            ["Reduce scope", "Extend timeline", "Add resources", "Optimize tasks"],
            timeline=math.ceil((total_hours - available) / 8), quality=0.2, cost=0.3, risk=0.8,
        ))
        score -= 40

    return GateOutcome(
        score=score,
        issues=issues,
        metrics={"timeline_feasibility": 100.0 if available is None or total_hours <= available else 60.0},
        evidence=[Evidence("calculation", "Total estimated hours", total_hours)],
    )


def validate_security(workflow: GeneratedWorkflow, context: ValidationContext) -> GateOutcome:
    tasks = workflow.all_tasks()
    security_tasks = [
        task for task in tasks
        if task.persona is Persona.SECURITY
        or "security" in task.title.lower()
        or "security" in task.description.lower()
    ]
    score = 100
    issues: List[QualityIssue] = []
    if not security_tasks:
        issues.append(_issue(
            "no-security-tasks", IssueSeverity.MAJOR, "security", "No security-focused tasks identified in workflow",
            ("workflow", workflow.id, "security tasks"),
            ["Add security validation tasks", "Include threat modeling", "Add security testing"],
            timeline=2, quality=0.4, cost=0.1, risk=0.7,
        ))
        score -= 30
    return GateOutcome(
        score=score,
        issues=issues,
        metrics={"security_coverage": len(security_tasks) / max(1, len(tasks)) * 100},
    )


def validate_performance(workflow: GeneratedWorkflow, context: ValidationContext) -> GateOutcome:
    performance_requirements = [
        r for r in context.requirements.non_functional
        if any(term in f"{r.source} {r.content}".lower() for term in PERFORMANCE_TERMS)
    ]
    performance_tasks = [
        task for task in workflow.all_tasks()
        if task.persona is Persona.PERFORMANCE or "performance" in task.title.lower()
    ]
    score = 100
    issues: List[QualityIssue] = []
    if performance_requirements and not performance_tasks:
        issues.append(_issue(
            "no-performance-tasks", IssueSeverity.MAJOR, "performance",
            f"{len(performance_requirements)} performance requirement(s) without a performance task",
            ("workflow", workflow.id, "performance tasks"),
            ["Add load testing", "Define performance budgets", "Add a performance validation task"],
            timeline=1, quality=0.3, risk=0.5,
        ))
        score -= 25
    return GateOutcome(
        score=score,
        issues=issues,
        metrics={
            "performance_requirements": float(len(performance_requirements)),
            "performance_tasks": float(len(performance_tasks)),
        },
    )


def validate_testability(workflow: GeneratedWorkflow, context: ValidationContext) -> GateOutcome:
    tasks = workflow.all_tasks()
    testing_tasks = [task for task in tasks if task.persona is Persona.QA or "test" in task.title.lower()]
    ratio = len(testing_tasks) / max(1, len(tasks))
    score = 100
    issues: List[QualityIssue] = []
    if ratio < 0.2:
        issues.append(_issue(
            "insufficient-testing", IssueSeverity.MAJOR, "testability",
            f"Low testing task ratio: {round(ratio * 100)}% (recommended: >20%)",
            ("workflow", workflow.id, "testing coverage"),
            ["Add unit testing tasks", "Include integration testing", "Add E2E testing"],
            timeline=1, quality=0.3, cost=0.2, risk=0.5,
        ))
        score -= 25
    return GateOutcome(score=score, issues=issues, metrics={"test_task_ratio": ratio})


def validate_compliance(workflow: GeneratedWorkflow, context: ValidationContext) -> GateOutcome:
    obligations = context.constraints_of("compliance")
    audit_tasks = [
        task for task in workflow.all_tasks()
        if "compliance" in task.title.lower() or "audit" in task.title.lower()
    ]
    score = 100
    issues: List[QualityIssue] = []
    if obligations and not audit_tasks:
        mandatory = any(c.mandatory for c in obligations)
        terms = sorted({str(c.value) for c in obligations})
        issues.append(_issue(
            "missing-compliance-audit",
            IssueSeverity.CRITICAL if mandatory else IssueSeverity.MAJOR,
            "compliance",
            f"Compliance obligations ({', '.join(terms)}) have no compliance or audit task",
            ("workflow", workflow.id, "compliance"),
            ["Add a compliance audit task", "Map controls to obligations"],
            timeline=3, quality=0.3, cost=0.3, risk=0.9 if mandatory else 0.6,
        ))
        score -= 40 if mandatory else 20
    return GateOutcome(
        score=score,
        issues=issues,
        metrics={"compliance_obligations": float(len(obligations)), "audit_tasks": float(len(audit_tasks))},
    )


def _guide(action: str, outcome: str, alternatives: Sequence[str], prevention: Sequence[str]) -> RemediationGuide:
    return RemediationGuide(
        steps=(RemediationStep(f"Review {action}", f"Identify {action} gaps", outcome, "Gate passes on rerun"),),
        alternatives=tuple(alternatives),
        prevention=tuple(prevention),
    )


QUALITY_GATES: Mapping[str, QualityGate] = MappingProxyType({
    gate.id: gate for gate in (
        QualityGate(
            "completeness", "Workflow Completeness",
            "Validates that all essential workflow elements are present and complete",
            "completeness", GateSeverity.BLOCKING, 5.0, validate_completeness,
            _guide("missing elements", "Complete element list",
                   ("Manual completion", "Template application"), ("Use workflow templates", "Follow checklists")),
            (TargetMetric("phase_completion", 100, 90, 80, "%"), TargetMetric("task_completion", 100, 95, 85, "%")),
        ),
        QualityGate(
            "consistency", "Workflow Consistency",
            "Ensures consistency across workflow phases, tasks and dependencies",
            "consistency", GateSeverity.WARNING, 5.0, validate_consistency,
            _guide("task references", "Every dependency resolves to a task",
                   ("Regenerate the workflow",), ("Use generated task ids", "Keep personas focused")),
            (TargetMetric("persona_count", 3, 4, 6, "count"),),
        ),
        QualityGate(
            "feasibility", "Timeline Feasibility",
            "Checks estimated effort against timeline constraints",
            "feasibility", GateSeverity.BLOCKING, 10.0, validate_feasibility,
            _guide("effort versus timeline", "Effort fits the timeline",
                   ("Extend timeline", "Reduce scope"), ("Estimate early", "Track velocity")),
            (TargetMetric("timeline_feasibility", 100, 80, 60, "%"),),
        ),
        QualityGate(
            "security", "Security Coverage",
            "Ensures security work is planned",
            "security", GateSeverity.BLOCKING, 15.0, validate_security,
            _guide("security coverage", "Security tasks planned",
                   ("External security review",), ("Threat model every feature", "Include security in definition of done")),
            (TargetMetric("security_coverage", 10, 5, 0, "%"),),
        ),
        QualityGate(
            "performance", "Performance Readiness",
            "Checks that performance requirements have matching validation work",
            "performance", GateSeverity.WARNING, 20.0, validate_performance,
            _guide("performance requirements", "Every performance requirement has a task",
                   ("Post-launch profiling",), ("Set performance budgets", "Load test before release")),
            (TargetMetric("performance_tasks", 1, 1, 0, "count"),),
        ),
        QualityGate(
            "testability", "Testability",
            "Checks the share of testing work in the workflow",
            "testability", GateSeverity.WARNING, 10.0, validate_testability,
            _guide("test coverage", "Testing share above 20%",
                   ("Exploratory testing sessions",), ("Pair every feature with a test task",)),
            (TargetMetric("test_task_ratio", 0.3, 0.2, 0.1, "ratio"),),
        ),
        QualityGate(
            "compliance", "Regulatory Compliance",
            "Checks that compliance obligations have audit work",
            "compliance", GateSeverity.BLOCKING, 30.0, validate_compliance,
            _guide("compliance obligations", "Every obligation has an audit task",
                   ("External compliance audit",), ("Track obligations as constraints",)),
            (TargetMetric("audit_tasks", 1, 1, 0, "count"),),
        ),
    )
})

QUALITY_PROFILES: Mapping[str, QualityProfile] = MappingProxyType({
    "standard": QualityProfile("standard", ("completeness", "consistency", "feasibility", "security"), 75, 0, 3),
    "strict": QualityProfile(
        "strict",
        ("completeness", "consistency", "feasibility", "security", "performance", "testability"),
        85, 0, 1,
    ),
    "enterprise": QualityProfile(
        "enterprise",
        ("completeness", "consistency", "feasibility", "security", "performance", "testability", "compliance"),
        90, 0, 0,
    ),
})

_RECOMMENDATION_PRIORITY = {
    IssueSeverity.CRITICAL: Priority.HIGH,
    IssueSeverity.MAJOR: Priority.MEDIUM,
    IssueSeverity.MINOR: Priority.LOW,
    IssueSeverity.INFO: Priority.LOW,
}


def get_profile(name: Optional[str]) -> QualityProfile:
    profile = QUALITY_PROFILES.get((name or "standard").strip().lower())
    if profile is None:
        logger.warning(f"Unknown quality profile {name!r}, using standard")
        return QUALITY_PROFILES["standard"]
    return profile


# ------------------------------------------------------------------
# Validator
# ------------------------------------------------------------------


class QualityGateValidator:
    """Run the gates of a quality profile against a workflow."""

    def __init__(self, gates: Optional[Mapping[str, QualityGate]] = None, timeout_scale: float = 1.0):
        self.gates = gates if gates is not None else QUALITY_GATES
        self.timeout_scale = timeout_scale if timeout_scale > 0 else 1.0

    @log_performance("validate_workflow")
    def validate(
        self,
        workflow: GeneratedWorkflow,
        context: Optional[ValidationContext] = None,
        profile: str = "standard",
    ) -> QualityReport:
        context = context or ValidationContext()
        quality_profile = get_profile(profile)
        gates = [self.gates[gate_id] for gate_id in quality_profile.gates if gate_id in self.gates]

        try:
            results = self._run_gates(gates, workflow, context)
        except Exception as e:
            log_error_with_context(e, {"operation": "validate_workflow", "workflow_id": workflow.id})
            raise

        report = self._build_report(workflow.id, quality_profile, results)
        log_quality_report(
            workflow.id,
            quality_profile.name,
            report.overall_score,
            report.summary.critical_issues,
            acceptable=report.acceptable,
        )
        logger.info(
            f"Quality report for {workflow.id} ({quality_profile.name}): score {report.overall_score}, "
            f"{report.summary.passed_gates}/{report.summary.total_gates} gates passed"
        )
        return report

    def _run_gates(
        self,
        gates: Sequence[QualityGate],
        workflow: GeneratedWorkflow,
        context: ValidationContext,
    ) -> List[GateResult]:
        if not gates:
            return []

        executor = ThreadPoolExecutor(max_workers=len(gates), thread_name_prefix="quality-gate")
        try:
            started = time.perf_counter()
            futures = [(gate, executor.submit(gate.validator, workflow, context)) for gate in gates]
            results = []
            for gate, future in futures:
                deadline = started + gate.timeout_seconds * self.timeout_scale
                remaining = max(0.0, deadline - time.perf_counter())
                try:
                    outcome = future.result(timeout=remaining)
                except FutureTimeoutError:
                    future.cancel()
                    results.append(self._failed_result(
                        gate, workflow, f"Quality gate timeout: {gate.id}", started,
                    ))
                except Exception as e:
                    results.append(self._failed_result(
                        gate, workflow, f"Quality gate execution failed: {e}", started,
                    ))
                else:
                    results.append(self._gate_result(gate, outcome, started))
            return results
        finally:
            # timed out gates are abandoned, not awaited
            executor.shutdown(wait=False, cancel_futures=True)

    def _gate_result(self, gate: QualityGate, outcome: GateOutcome, started: float) -> GateResult:
        return GateResult(
            gate_id=gate.id,
            gate_name=gate.name,
            passed=not any(i.severity is IssueSeverity.CRITICAL for i in outcome.issues),
            score=int(max(0, min(100, round(outcome.score)))),
            issues=outcome.issues,
            metrics=outcome.metrics,
            recommendations=self._recommendations(gate, outcome.issues),
            evidence=outcome.evidence,
            duration_ms=(time.perf_counter() - started) * 1000,
        )

    def _failed_result(self, gate: QualityGate, workflow: GeneratedWorkflow, reason: str, started: float) -> GateResult:
        logger.error(reason)
        log_gate_failure(gate.id, reason, workflow_id=workflow.id)
        issue = _issue(
            f"gate-error-{gate.id}", IssueSeverity.CRITICAL, gate.category, reason,
            ("workflow", workflow.id, "gate execution"),
            ["Review gate configuration", "Check system status"],
            risk=0.8,
        )
        return GateResult(
            gate_id=gate.id,
            gate_name=gate.name,
            passed=False,
            score=0,
            issues=[issue],
            recommendations=self._recommendations(gate, [issue]),
            duration_ms=(time.perf_counter() - started) * 1000,
        )

    @staticmethod
    def _recommendations(gate: QualityGate, issues: Sequence[QualityIssue]) -> List[Recommendation]:
        recommendations = []
        for issue in issues:
            recommendations.append(Recommendation(
                id=f"fix-{issue.id}",
                type="risk-mitigation" if issue.severity is IssueSeverity.CRITICAL else "improvement",
                priority=_RECOMMENDATION_PRIORITY[issue.severity],
                description=f"{gate.name}: {issue.description}",
                actions=list(issue.remediation) or [step.action for step in gate.remediation.steps],
                benefits=list(gate.remediation.prevention),
                effort="high" if issue.severity is IssueSeverity.CRITICAL else "medium",
            ))
        return recommendations

    @staticmethod
    def _build_report(workflow_id: str, profile: QualityProfile, results: List[GateResult]) -> QualityReport:
        issues = [issue for result in results for issue in result.issues]

        def count(severity: IssueSeverity) -> int:
            return sum(1 for issue in issues if issue.severity is severity)

        overall = round(sum(r.score for r in results) / len(results)) if results else 0
        summary = QualitySummary(
            passed_gates=sum(1 for r in results if r.passed),
            total_gates=len(results),
            critical_issues=count(IssueSeverity.CRITICAL),
            major_issues=count(IssueSeverity.MAJOR),
            minor_issues=count(IssueSeverity.MINOR),
            info_issues=count(IssueSeverity.INFO),
            quality_score=overall,
            improvement_areas=list(dict.fromkeys(issue.category for issue in issues)),
        )

        recommendations: List[Recommendation] = []
        seen: set[str] = set()
        for result in results:
            for recommendation in result.recommendations:
                if recommendation.id not in seen:
                    seen.add(recommendation.id)
                    recommendations.append(recommendation)

        acceptable = (
            summary.critical_issues <= profile.max_critical
            and summary.major_issues <= profile.max_major
            and overall >= profile.min_score
        )
        return QualityReport(
            workflow_id=workflow_id,
            profile=profile.name,
            overall_score=overall,
            gate_results=results,
            summary=summary,
            recommendations=recommendations,
            acceptable=acceptable,
        )


def validate_workflow(
    workflow: GeneratedWorkflow,
    context: Optional[ValidationContext] = None,
    profile: str = "standard",
) -> QualityReport:
    return QualityGateValidator().validate(workflow, context, profile)
