"""Workflow generation.

The orchestrator turns an extracted requirement set into phases and
tasks for a delivery strategy, applies persona templates, runs the
dependency analyzer and attaches the optional dependency map, risks,
parallel work streams and the tool-orchestration plan.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from .dependencies import DependencyAnalysis, DependencyAnalyzer, RiskArea
from .extractor import RequirementExtractor
from .identifiers import IdGenerator, default_id_generator
from .models import (
    Complexity,
    DependencyMap,
    ExternalDependency,
    ExtractionResult,
    GeneratedWorkflow,
    InternalDependency,
    OutputFormat,
    Persona,
    Requirement,
    RequirementSet,
    RiskAssessment,
    RiskLevel,
    RiskType,
    Strategy,
    TaskCategory,
    TeamDependency,
    TechnicalDependency,
    ToolProvider,
    WorkflowPhase,
    WorkflowTask,
    coerce_enum,
)
from .personas import TemplateContext, apply_template, detect_domain, get_template
from .planner_logging import (
    log_error_with_context,
    log_operation,
    log_performance,
    log_workflow_generated,
)
from .strategies import PhaseTemplate, TaskBlueprint, get_strategy
from .text_matching import mentions
from .tool_planner import ToolOrchestrationPlanner, resolve_providers

logger = logging.getLogger("workflow_planner.orchestrator")

RequirementsInput = Union[str, Sequence[Any], ExtractionResult, None]


# ------------------------------------------------------------------
# Options
# ------------------------------------------------------------------


def normalize_strategy(value: Any) -> Strategy:
    strategy = coerce_enum(Strategy, value)
    if strategy is None:
        if value is not None:
            logger.warning(f"Unknown strategy {value!r}, using systematic")
        return Strategy.SYSTEMATIC
    return strategy


def normalize_output_format(value: Any) -> OutputFormat:
    output_format = coerce_enum(OutputFormat, value)
    if output_format is None:
        if value is not None:
            logger.warning(f"Unknown output format {value!r}, using roadmap")
        return OutputFormat.ROADMAP
    return output_format


@dataclass(slots=True)
class GenerationOptions:
    """Options controlling a single workflow generation."""

    strategy: Strategy = Strategy.SYSTEMATIC
    output_format: OutputFormat = OutputFormat.ROADMAP
    include_estimates: bool = True
    include_dependencies: bool = True
    include_risks: bool = True
    identify_parallel: bool = True
    create_milestones: bool = True
    tool_providers: List[ToolProvider] = field(default_factory=list)
    persona: Optional[Persona] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]] = None, **overrides) -> "GenerationOptions":
        """Build options from loose input, substituting defaults for unknown values."""
        values = {**(data or {}), **overrides}

        persona = values.get("persona")
        resolved_persona = coerce_enum(Persona, persona)
        if persona is not None and resolved_persona is None:
            logger.warning(f"Unknown persona override {persona!r}, using the recommended persona")

        def flag(name: str) -> bool:
            value = values.get(name)
            return True if value is None else bool(value)

        return cls(
            strategy=normalize_strategy(values.get("strategy")),
            output_format=normalize_output_format(values.get("output_format")),
            include_estimates=flag("include_estimates"),
            include_dependencies=flag("include_dependencies"),
            include_risks=flag("include_risks"),
            identify_parallel=flag("identify_parallel"),
            create_milestones=flag("create_milestones"),
            tool_providers=resolve_providers(values.get("tool_providers") or []),
            persona=resolved_persona,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "output_format": self.output_format.value,
            "include_estimates": self.include_estimates,
            "include_dependencies": self.include_dependencies,
            "include_risks": self.include_risks,
            "identify_parallel": self.identify_parallel,
            "create_milestones": self.create_milestones,
            "tool_providers": [p.value for p in self.tool_providers],
            "persona": self.persona.value if self.persona else None,
        }


@dataclass(slots=True)
class GenerationResult:
    workflow: GeneratedWorkflow
    analysis: DependencyAnalysis
    extraction: ExtractionResult


def format_duration_text(hours: int) -> str:
    """Describe ``hours`` of work as hours, working days or weeks."""
    if hours < 8:
        return f"{hours} hours" if hours != 1 else "1 hour"
    days = math.ceil(hours / 8)
    if days <= 5:
        return f"{days} days" if days != 1 else "1 day"
    return f"{math.ceil(days / 5)} weeks"


def _risk_level(value: float) -> RiskLevel:
    if value >= 0.6:
        return RiskLevel.HIGH
    if value >= 0.3:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


# ------------------------------------------------------------------
# Vocabulary for derived tasks and dependency maps
# ------------------------------------------------------------------

UI_WORDS = ("ui", "user interface", "interface", "component", "frontend", "dashboard", "screen", "page")
SECURITY_WORDS = ("secur", "auth", "encrypt", "privacy", "threat")
PERFORMANCE_WORDS = ("performance", "scalab", "latency", "load", "throughput", "response time")
COMPLIANCE_WORDS = ("gdpr", "compliance", "hipaa", "pci", "sox", "audit")

# keyword -> (service, type, critical)
EXTERNAL_SERVICES = (
    (("payment gateway", "stripe", "paypal", "payment"), "Payment gateway", "api", True),
    (("oauth", "sso", "identity provider"), "OAuth identity provider", "service", True),
    (("email", "smtp"), "Email delivery service", "service", False),
    (("sms", "push notification"), "Notification service", "service", False),
    (("aws", "azure", "gcp", "cloud"), "Cloud infrastructure", "infrastructure", True),
    (("cdn",), "Content delivery network", "infrastructure", False),
    (("analytics",), "Analytics platform", "service", False),
)

# technology -> rationale
TECHNOLOGIES = (
    ("react", "Component-based user interface"),
    ("vue", "Component-based user interface"),
    ("angular", "Component-based user interface"),
    ("typescript", "Typed application code"),
    ("node.js", "Server runtime"),
    ("python", "Server runtime"),
    ("postgresql", "Relational data storage"),
    ("mysql", "Relational data storage"),
    ("mongodb", "Document data storage"),
    ("redis", "Caching and session storage"),
    ("graphql", "API query layer"),
    ("websocket", "Real-time communication"),
    ("chart.js", "Data visualization"),
    ("jwt", "Token based authentication"),
    ("docker", "Containerized deployment"),
    ("kubernetes", "Container orchestration"),
)


# ------------------------------------------------------------------
# Orchestrator
# ------------------------------------------------------------------


class WorkflowOrchestrator:
    """Build ``GeneratedWorkflow`` objects from requirement documents."""

    MAX_RISKS_PER_PHASE = 5
    BASE_IMPLEMENTATION_HOURS = {Complexity.SIMPLE: 8, Complexity.MODERATE: 16, Complexity.COMPLEX: 24}
    MAX_IMPLEMENTATION_HOURS = 40

    def __init__(
        self,
        id_generator: Optional[IdGenerator] = None,
        extractor: Optional[RequirementExtractor] = None,
        analyzer: Optional[DependencyAnalyzer] = None,
        tool_planner: Optional[ToolOrchestrationPlanner] = None,
    ):
        self.id_generator = id_generator or default_id_generator
        self.extractor = extractor or RequirementExtractor(self.id_generator)
        self.analyzer = analyzer or DependencyAnalyzer()
        self.tool_planner = tool_planner or ToolOrchestrationPlanner()

    def generate(self, requirements: RequirementsInput, options: Optional[GenerationOptions] = None) -> GeneratedWorkflow:
        return self.build(requirements, options).workflow

    @log_performance("generate_workflow")
    def build(self, requirements: RequirementsInput, options: Optional[GenerationOptions] = None) -> GenerationResult:
        """Generate a workflow and keep the extraction and analysis it was built from."""
        options = options or GenerationOptions()
        try:
            extraction = self._extraction(requirements)
            persona = options.persona or extraction.recommended_persona
            strategy = get_strategy(options.strategy)
            workflow_id = self.id_generator("workflow")

            # persona patterns go to the first phase accepting their category
            pattern_homes: Dict[str, str] = {}
            for pattern in get_template(persona).task_patterns:
                home = next((p.id for p in strategy.phases if pattern.category in p.accepts), None)
                if home is not None:
                    pattern_homes[pattern.id] = home

            with log_operation("generate_workflow", strategy=strategy.strategy.value, persona=persona.value):
                phases = [
                    self._build_phase(template, extraction, persona, options, pattern_homes)
                    for template in strategy.phases
                ]
                self._apply_templates(phases, extraction)

                analysis = self.analyzer.analyze(phases)
                total_hours = sum(phase.total_hours for phase in phases)

                workflow = GeneratedWorkflow(
                    id=workflow_id,
                    title=extraction.metadata.title,
                    strategy=strategy.strategy,
                    primary_persona=persona,
                    phases=phases,
                    estimated_duration=format_duration_text(total_hours),
                    estimated_hours=total_hours,
                    complexity=extraction.complexity,
                    effort=extraction.effort,
                )

                if options.include_dependencies:
                    workflow.dependencies = self.build_dependency_map(phases, extraction.requirements, persona)
                if options.include_risks:
                    workflow.risks = self._attach_risks(phases, analysis.risk_areas, persona)
                if options.identify_parallel:
                    workflow.parallel_work_streams = [
                        opportunity.to_work_stream() for opportunity in analysis.parallel_opportunities
                    ]

                workflow.tool_plan = self.tool_planner.plan(
                    phases,
                    extraction.requirements,
                    persona,
                    options.tool_providers,
                    request_id=workflow_id,
                )

            task_count = len(workflow.all_tasks())
            log_workflow_generated(
                workflow.id,
                len(phases),
                task_count,
                strategy=workflow.strategy.value,
                persona=persona.value,
                estimated_hours=total_hours,
            )
            logger.info(
                f"Generated {workflow.strategy.value} workflow {workflow.id} with "
                f"{len(phases)} phases, {task_count} tasks, {workflow.estimated_duration}"
            )
            return GenerationResult(workflow=workflow, analysis=analysis, extraction=extraction)

        except Exception as e:
            log_error_with_context(e, {"operation": "generate_workflow", "strategy": options.strategy.value})
            raise

    def _extraction(self, requirements: RequirementsInput) -> ExtractionResult:
        if isinstance(requirements, ExtractionResult):
            return requirements
        return self.extractor.extract(requirements)

    # ------------------------------------------------------------------
    # Phase construction
    # ------------------------------------------------------------------

    def _task(
        self,
        blueprint: TaskBlueprint,
        phase_id: str,
        persona: Persona,
        dependencies: Optional[List[str]] = None,
    ) -> WorkflowTask:
        return WorkflowTask(
            id=self.id_generator("task"),
            title=blueprint.title,
            description=blueprint.description,
            persona=blueprint.persona or persona,
            complexity=blueprint.complexity,
            estimated_hours=blueprint.hours,
            dependencies=list(dependencies or []),
            acceptance_criteria=list(blueprint.acceptance_criteria),
            phase_id=phase_id,
            category=blueprint.category,
        )

    def _build_phase(
        self,
        template: PhaseTemplate,
        extraction: ExtractionResult,
        persona: Persona,
        options: GenerationOptions,
        pattern_homes: Dict[str, str],
    ) -> WorkflowPhase:
        phase_id = template.id
        opening = self._task(template.opening, phase_id, persona)

        body: List[WorkflowTask] = []
        for pattern in get_template(persona).task_patterns:
            if pattern_homes.get(pattern.id) != template.id:
                continue
            body.append(WorkflowTask(
                id=self.id_generator("task"),
                title=pattern.title,
                description=pattern.description,
                persona=persona,
                complexity=pattern.complexity,
                estimated_hours=pattern.hours,
                dependencies=[opening.id],
                phase_id=phase_id,
                tools=list(pattern.tools),
                category=pattern.category,
            ))

        for blueprint in template.standard_tasks:
            body.append(self._task(blueprint, phase_id, persona, [opening.id]))

        requirements = extraction.requirements
        if template.hosts_requirements:
            body.extend(self._requirement_tasks(requirements, extraction.complexity, phase_id, persona, opening.id))
        if template.hosts_validation:
            body.extend(self._validation_tasks(requirements, phase_id, opening.id))

        closing_dependencies = self._leaf_ids(body) or [opening.id]
        closing = self._task(template.closing, phase_id, persona, closing_dependencies)

        return WorkflowPhase(
            id=phase_id,
            name=template.name,
            description=template.description,
            duration=template.duration,
            tasks=[opening, *body, closing],
            milestones=list(template.milestones) if options.create_milestones else [],
            deliverables=list(template.deliverables),
        )

    @staticmethod
    def _leaf_ids(tasks: Sequence[WorkflowTask]) -> List[str]:
        depended_on = {dependency for task in tasks for dependency in task.dependencies}
        return [task.id for task in tasks if task.id not in depended_on]

    def _requirement_tasks(
        self,
        requirements: RequirementSet,
        complexity: Complexity,
        phase_id: str,
        persona: Persona,
        opening_id: str,
    ) -> List[WorkflowTask]:
        """One implementation task per source section plus a paired test task."""
        groups: Dict[str, List[Requirement]] = {}
        for requirement in [*requirements.functional, *requirements.technical]:
            groups.setdefault(requirement.source or "core functionality", []).append(requirement)

        tasks: List[WorkflowTask] = []
        if not groups:
            groups = {"core functionality": []}

        for source, members in groups.items():
            hours = min(
                self.BASE_IMPLEMENTATION_HOURS[complexity] + 4 * max(0, len(members) - 1),
                self.MAX_IMPLEMENTATION_HOURS,
            )
            criteria: List[str] = []
            for requirement in members:
                for criterion in requirement.acceptance_criteria:
                    if criterion not in criteria:
                        criteria.append(criterion)
            if members:
                description = f"Implement {len(members)} requirement(s) from {source}: {members[0].content[:120]}"
            else:
                description = "Implement the core functionality described by the document"

            implementation = WorkflowTask(
                id=self.id_generator("task"),
                title=f"Implement {source}",
                description=description,
                persona=persona,
                complexity=complexity,
                estimated_hours=hours,
                dependencies=[opening_id],
                acceptance_criteria=criteria or [f"{source} requirements implemented"],
                phase_id=phase_id,
                category=TaskCategory.IMPLEMENTATION,
            )
            test = WorkflowTask(
                id=self.id_generator("task"),
                title=f"Test {source}",
                description=f"Write automated tests for {source}",
                persona=Persona.QA,
                complexity=Complexity.SIMPLE if complexity is Complexity.SIMPLE else Complexity.MODERATE,
                estimated_hours=max(4, hours // 2),
                dependencies=[implementation.id],
                acceptance_criteria=[f"Tests cover every {source} acceptance criterion"],
                phase_id=phase_id,
                category=TaskCategory.TESTING,
            )
            tasks.extend([implementation, test])
        return tasks

    def _validation_tasks(self, requirements: RequirementSet, phase_id: str, opening_id: str) -> List[WorkflowTask]:
        """Validation tasks for non-functional sections and compliance obligations."""
        groups: Dict[str, List[Requirement]] = {}
        for requirement in requirements.non_functional:
            groups.setdefault(requirement.source or "Non-functional requirements", []).append(requirement)

        tasks: List[WorkflowTask] = []
        for source, members in groups.items():
            text = " ".join([source, *(r.content for r in members)]).lower()
            if mentions(text, SECURITY_WORDS):
                persona = Persona.SECURITY
            elif mentions(text, PERFORMANCE_WORDS):
                persona = Persona.PERFORMANCE
            else:
                persona = Persona.QA
            tasks.append(WorkflowTask(
                id=self.id_generator("task"),
                title=f"Validate {source}",
                description=f"Verify {len(members)} non-functional requirement(s): {members[0].content[:120]}",
                persona=persona,
                complexity=Complexity.MODERATE,
                estimated_hours=8,
                dependencies=[opening_id],
                acceptance_criteria=[r.content for r in members[:5]],
                phase_id=phase_id,
                category=TaskCategory.TESTING,
            ))

        obligations = " ".join([
            requirements.combined_text(),
            *(c.description.lower() for c in requirements.constraints),
        ])
        if mentions(obligations, COMPLIANCE_WORDS):
            tasks.append(WorkflowTask(
                id=self.id_generator("task"),
                title="Compliance audit",
                description="Audit data handling and controls against the applicable regulations",
                persona=Persona.SECURITY,
                complexity=Complexity.MODERATE,
                estimated_hours=8,
                dependencies=[opening_id],
                acceptance_criteria=["Compliance checklist signed off"],
                phase_id=phase_id,
                category=TaskCategory.TESTING,
            ))
        return tasks

    def _apply_templates(self, phases: List[WorkflowPhase], extraction: ExtractionResult) -> None:
        for phase in phases:
            adjusted: List[WorkflowTask] = []
            for task in phase.tasks:
                template = get_template(task.persona)
                text = f"{task.title} {task.description}"
                domain = detect_domain(template, text)
                if domain is None and task.category is TaskCategory.IMPLEMENTATION and mentions(text.lower(), UI_WORDS):
                    domain = "ui"
                context = TemplateContext(domain=domain or "general", complexity=extraction.complexity)
                adjusted.extend(apply_template([task], task.persona, context))
            phase.tasks = adjusted

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    def build_dependency_map(
        self,
        phases: Sequence[WorkflowPhase],
        requirements: RequirementSet,
        persona: Persona,
    ) -> DependencyMap:
        dependency_map = DependencyMap()

        for phase in phases:
            for task in phase.tasks:
                for dependency in task.dependencies:
                    dependency_map.internal.append(InternalDependency(dependency, task.id))

        text = " ".join([
            requirements.combined_text(),
            *(c.description.lower() for c in requirements.constraints),
        ])
        for keywords, service, kind, critical in EXTERNAL_SERVICES:
            if mentions(text, keywords):
                dependency_map.external.append(ExternalDependency(service, kind, critical))

        for technology, rationale in TECHNOLOGIES:
            if not mentions(text, (technology,)):
                continue
            match = re.search(rf"{re.escape(technology)}\s*v?(\d+(?:\.\d+)*)", text)
            dependency_map.technical.append(
                TechnicalDependency(technology, match.group(1) if match else None, rationale)
            )

        timelines: Dict[Persona, List[str]] = {}
        for phase in phases:
            for task in phase.tasks:
                names = timelines.setdefault(task.persona, [])
                if phase.name not in names:
                    names.append(phase.name)
        for skill, names in timelines.items():
            timeline = names[0] if len(names) == 1 else f"{names[0]} → {names[-1]}"
            dependency_map.team.append(TeamDependency(skill, skill is persona or len(names) > 1, timeline))

        return dependency_map

    def _attach_risks(
        self,
        phases: Sequence[WorkflowPhase],
        risk_areas: Sequence[RiskArea],
        persona: Persona,
    ) -> List[RiskAssessment]:
        """Fill phase risks and return the de-duplicated workflow risk list."""
        template = get_template(persona)
        workflow_risks: List[RiskAssessment] = []
        seen: set[str] = set()

        for phase in phases:
            task_ids = {task.id for task in phase.tasks}
            risks: List[RiskAssessment] = []
            for area in risk_areas:
                if not task_ids.intersection(area.affected_tasks):
                    continue
                mitigation = area.mitigation_strategies[0] if area.mitigation_strategies else None
                risks.append(RiskAssessment(
                    id=area.id,
                    type=coerce_enum(RiskType, area.type, RiskType.TECHNICAL),
                    probability=_risk_level(area.probability),
                    impact=_risk_level(area.impact),
                    description=area.description,
                    mitigation=mitigation.description if mitigation else "",
                    owner=mitigation.owner if mitigation else persona,
                ))
            if any(task.category is TaskCategory.IMPLEMENTATION for task in phase.tasks):
                for pattern in template.risk_patterns:
                    risks.append(RiskAssessment(
                        id=f"{pattern.id}-{phase.id}",
                        type=pattern.type,
                        probability=pattern.probability,
                        impact=pattern.impact,
                        description=pattern.name,
                        mitigation="; ".join(pattern.mitigations),
                        owner=persona,
                    ))
            phase.risks = risks[:self.MAX_RISKS_PER_PHASE]

            for risk in phase.risks:
                if risk.id not in seen:
                    seen.add(risk.id)
                    workflow_risks.append(risk)

        return workflow_risks


def generate_workflow(
    requirements: RequirementsInput,
    options: Optional[GenerationOptions] = None,
    id_generator: Optional[IdGenerator] = None,
) -> GeneratedWorkflow:
    return WorkflowOrchestrator(id_generator=id_generator).generate(requirements, options)
