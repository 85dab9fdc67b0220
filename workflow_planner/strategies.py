"""Delivery strategy templates.

A strategy is an ordered list of phase templates. Each phase template
carries its nominal duration, milestone and deliverable labels, the
task categories it accepts from persona templates, and the standard
tasks every workflow gets in that phase.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .models import Complexity, Persona, Strategy, TaskCategory


@dataclass(frozen=True, slots=True)
class TaskBlueprint:
    """A standard task; ``persona`` of ``None`` means the primary persona."""

    key: str
    title: str
    description: str
    category: TaskCategory
    complexity: Complexity
    hours: int
    persona: Optional[Persona] = None
    acceptance_criteria: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PhaseTemplate:
    id: str
    name: str
    description: str
    duration: str
    milestones: Tuple[str, ...]
    deliverables: Tuple[str, ...]
    accepts: Tuple[TaskCategory, ...]
    opening: TaskBlueprint
    closing: TaskBlueprint
    standard_tasks: Tuple[TaskBlueprint, ...] = ()

    @property
    def hosts_requirements(self) -> bool:
        return TaskCategory.IMPLEMENTATION in self.accepts

    @property
    def hosts_validation(self) -> bool:
        return TaskCategory.TESTING in self.accepts


@dataclass(frozen=True, slots=True)
class StrategyTemplate:
    strategy: Strategy
    name: str
    description: str
    phases: Tuple[PhaseTemplate, ...]


def _security_review(hours: int = 8) -> TaskBlueprint:
    return TaskBlueprint(
        "security-review", "Security review and hardening",
        "Review authentication, authorization, input handling and secrets management for security gaps",
        TaskCategory.TESTING, Complexity.MODERATE, hours, Persona.SECURITY,
        ("No open high severity security findings",),
    )


def _test_suite(title: str, hours: int) -> TaskBlueprint:
    return TaskBlueprint(
        "test-suite", title,
        "Automate integration and end-to-end tests covering every acceptance criterion",
        TaskCategory.TESTING, Complexity.MODERATE, hours, Persona.QA,
        ("All acceptance criteria covered by automated tests",),
    )


SYSTEMATIC = StrategyTemplate(
    strategy=Strategy.SYSTEMATIC,
    name="Systematic",
    description="Comprehensive, sequential approach with thorough analysis",
    phases=(
        PhaseTemplate(
            id="requirements",
            name="Requirements Analysis",
            description="Deep dive into PRD structure and acceptance criteria",
            duration="1-2 weeks",
            milestones=("Requirements validated", "Acceptance criteria defined"),
            deliverables=("Requirements document", "Acceptance criteria matrix"),
            accepts=(TaskCategory.ANALYSIS,),
            opening=TaskBlueprint(
                "requirements-review", "Requirements review",
                "Walk through every requirement with stakeholders and resolve open questions",
                TaskCategory.ANALYSIS, Complexity.SIMPLE, 8,
            ),
            closing=TaskBlueprint(
                "requirements-signoff", "Requirements sign-off",
                "Confirm scope, priorities and the acceptance criteria matrix with stakeholders",
                TaskCategory.ANALYSIS, Complexity.SIMPLE, 4,
                acceptance_criteria=("Stakeholders approved the requirements document",),
            ),
        ),
        PhaseTemplate(
            id="architecture",
            name="Architecture Planning",
            description="System design and component architecture",
            duration="1-2 weeks",
            milestones=("Architecture approved", "Technology stack selected"),
            deliverables=("Architecture document", "Technology selection rationale"),
            accepts=(TaskCategory.DESIGN,),
            opening=TaskBlueprint(
                "architecture-outline", "Architecture outline",
                "Draft the component map, data flow and integration boundaries",
                TaskCategory.DESIGN, Complexity.MODERATE, 8,
            ),
            closing=TaskBlueprint(
                "architecture-review", "Architecture review",
                "Review the design against quality attributes and record decisions",
                TaskCategory.DESIGN, Complexity.SIMPLE, 4,
                acceptance_criteria=("Architecture decisions recorded",),
            ),
        ),
        PhaseTemplate(
            id="implementation",
            name="Implementation Phases",
            description="Sequential development with clear deliverables",
            duration="4-8 weeks",
            milestones=("Core functionality complete", "Integration testing passed"),
            deliverables=("Working software", "Test suite"),
            accepts=(TaskCategory.IMPLEMENTATION,),
            opening=TaskBlueprint(
                "project-setup", "Project setup",
                "Create repositories, environments and the build pipeline skeleton",
                TaskCategory.IMPLEMENTATION, Complexity.SIMPLE, 6,
            ),
            closing=TaskBlueprint(
                "integration", "Component integration",
                "Integrate implemented components and verify end-to-end flows",
                TaskCategory.IMPLEMENTATION, Complexity.MODERATE, 8,
                acceptance_criteria=("Integration tests pass",),
            ),
        ),
        PhaseTemplate(
            id="validation",
            name="Testing & Deployment",
            description="Comprehensive testing and production rollout",
            duration="1-2 weeks",
            milestones=("All tests passed", "Production deployment successful"),
            deliverables=("Test reports", "Deployment documentation"),
            accepts=(TaskCategory.TESTING, TaskCategory.DEPLOYMENT),
            opening=_test_suite("Comprehensive test suite", 12),
            closing=TaskBlueprint(
                "production-deployment", "Production deployment",
                "Deploy to production with monitoring and a rollback plan",
                TaskCategory.DEPLOYMENT, Complexity.MODERATE, 6,
                acceptance_criteria=("Rollback procedure verified",),
            ),
            standard_tasks=(_security_review(),),
        ),
    ),
)

AGILE = StrategyTemplate(
    strategy=Strategy.AGILE,
    name="Agile",
    description="Iterative development with continuous feedback",
    phases=(
        PhaseTemplate(
            id="epic-breakdown",
            name="Epic Breakdown",
            description="Convert PRD into user stories and epics",
            duration="1 week",
            milestones=("Epics defined", "Sprint backlog created"),
            deliverables=("User stories", "Sprint backlog"),
            accepts=(TaskCategory.ANALYSIS, TaskCategory.DESIGN),
            opening=TaskBlueprint(
                "story-mapping", "Story mapping",
                "Split requirements into epics and estimable user stories",
                TaskCategory.ANALYSIS, Complexity.SIMPLE, 6,
            ),
            closing=TaskBlueprint(
                "backlog-refinement", "Backlog refinement",
                "Prioritize the sprint backlog and agree on the definition of done",
                TaskCategory.ANALYSIS, Complexity.SIMPLE, 4,
                acceptance_criteria=("First sprint backlog is ready",),
            ),
        ),
        PhaseTemplate(
            id="sprint-cycles",
            name="Sprint Development",
            description="Iterative 2-week sprints with regular demos",
            duration="6-12 weeks",
            milestones=("Sprint demos", "Stakeholder feedback incorporated"),
            deliverables=("Working increments", "Demo artifacts"),
            accepts=(TaskCategory.IMPLEMENTATION, TaskCategory.TESTING),
            opening=TaskBlueprint(
                "sprint-setup", "Sprint environment setup",
                "Prepare the repository, CI and environments for the first sprint",
                TaskCategory.IMPLEMENTATION, Complexity.SIMPLE, 6,
            ),
            closing=TaskBlueprint(
                "sprint-demo", "Sprint review and demo",
                "Demo the increment to stakeholders and fold feedback into the backlog",
                TaskCategory.IMPLEMENTATION, Complexity.SIMPLE, 4,
                acceptance_criteria=("Stakeholder feedback captured",),
            ),
            standard_tasks=(_test_suite("Sprint test automation", 10), _security_review(6)),
        ),
        PhaseTemplate(
            id="release",
            name="Release & Retrospective",
            description="Production release with retrospective learning",
            duration="1 week",
            milestones=("Production release", "Retrospective complete"),
            deliverables=("Released product", "Retrospective insights"),
            accepts=(TaskCategory.DEPLOYMENT,),
            opening=TaskBlueprint(
                "release-candidate", "Release candidate verification",
                "Run the regression suite against the release candidate",
                TaskCategory.TESTING, Complexity.SIMPLE, 6, Persona.QA,
            ),
            closing=TaskBlueprint(
                "retrospective", "Release retrospective",
                "Review the delivery and capture improvements for the next cycle",
                TaskCategory.DEPLOYMENT, Complexity.SIMPLE, 3,
            ),
            standard_tasks=(
                TaskBlueprint(
                    "production-release", "Production release",
                    "Release to production with monitoring and a rollback plan",
                    TaskCategory.DEPLOYMENT, Complexity.MODERATE, 6,
                    acceptance_criteria=("Rollback procedure verified",),
                ),
            ),
        ),
    ),
)

MVP = StrategyTemplate(
    strategy=Strategy.MVP,
    name="MVP",
    description="Rapid delivery focusing on core value proposition",
    phases=(
        PhaseTemplate(
            id="core-definition",
            name="MVP Definition",
            description="Identify core features and validation metrics",
            duration="3-5 days",
            milestones=("MVP scope locked", "Success metrics defined"),
            deliverables=("MVP specification", "Success criteria"),
            accepts=(TaskCategory.ANALYSIS, TaskCategory.DESIGN),
            opening=TaskBlueprint(
                "scope-definition", "MVP scope definition",
                "Select the smallest feature set that proves the value proposition",
                TaskCategory.ANALYSIS, Complexity.SIMPLE, 6,
            ),
            closing=TaskBlueprint(
                "success-metrics", "Success metrics definition",
                "Define the metrics and thresholds that validate the MVP",
                TaskCategory.ANALYSIS, Complexity.SIMPLE, 3,
                acceptance_criteria=("Success metrics agreed",),
            ),
        ),
        PhaseTemplate(
            id="rapid-development",
            name="Rapid Development",
            description="Fast implementation with acceptable technical debt",
            duration="2-4 weeks",
            milestones=("Core features complete", "Basic testing passed"),
            deliverables=("MVP product", "Basic documentation"),
            accepts=(TaskCategory.IMPLEMENTATION,),
            opening=TaskBlueprint(
                "scaffold", "Application scaffold",
                "Scaffold the application with the chosen stack",
                TaskCategory.IMPLEMENTATION, Complexity.SIMPLE, 4,
            ),
            closing=TaskBlueprint(
                "mvp-integration", "MVP integration",
                "Wire features together and smoke test the main user journey",
                TaskCategory.IMPLEMENTATION, Complexity.SIMPLE, 6,
                acceptance_criteria=("Main user journey works end to end",),
            ),
        ),
        PhaseTemplate(
            id="validation",
            name="Market Validation",
            description="User testing and feedback collection",
            duration="1-2 weeks",
            milestones=("User feedback collected", "Iteration plan created"),
            deliverables=("User feedback report", "Next iteration roadmap"),
            accepts=(TaskCategory.TESTING, TaskCategory.DEPLOYMENT),
            opening=_test_suite("Essential test coverage", 8),
            closing=TaskBlueprint(
                "iteration-plan", "Iteration plan",
                "Analyze user feedback and plan the next iteration",
                TaskCategory.ANALYSIS, Complexity.SIMPLE, 4,
            ),
            standard_tasks=(
                _security_review(4),
                TaskBlueprint(
                    "user-testing", "User testing sessions",
                    "Run moderated sessions with target users and collect feedback",
                    TaskCategory.TESTING, Complexity.SIMPLE, 8, Persona.QA,
                ),
            ),
        ),
    ),
)

STRATEGY_TEMPLATES: Mapping[Strategy, StrategyTemplate] = MappingProxyType({
    Strategy.SYSTEMATIC: SYSTEMATIC,
    Strategy.AGILE: AGILE,
    Strategy.MVP: MVP,
})


def get_strategy(strategy: Strategy) -> StrategyTemplate:
    return STRATEGY_TEMPLATES[strategy]
