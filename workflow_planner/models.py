"""Data models for the workflow planner.

This module contains the core data structures shared by every planning
stage: the extracted requirement set, phases and tasks of a generated
workflow, risks, dependency maps and the planning guide steps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# ------------------------------------------------------------------
# Enumerations
# ------------------------------------------------------------------


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class Persona(str, Enum):
    """Domain specializations a workflow or task can be assigned to."""

    FRONTEND = "frontend"
    BACKEND = "backend"
    SECURITY = "security"
    ARCHITECT = "architect"
    DEVOPS = "devops"
    QA = "qa"
    PERFORMANCE = "performance"
    ANALYZER = "analyzer"
    REFACTORER = "refactorer"
    MENTOR = "mentor"
    SCRIBE = "scribe"


class Strategy(str, Enum):
    SYSTEMATIC = "systematic"
    AGILE = "agile"
    MVP = "mvp"


class OutputFormat(str, Enum):
    ROADMAP = "roadmap"
    TASKS = "tasks"
    DETAILED = "detailed"
    JSON = "json"
    COMBINED = "combined"


class ToolProvider(str, Enum):
    """External capability services a plan can delegate work to."""

    DOCUMENTATION = "documentation"
    REASONING = "reasoning"
    UI_GENERATION = "ui-generation"
    BROWSER_TESTING = "browser-testing"


class RequirementCategory(str, Enum):
    FUNCTIONAL = "functional"
    NON_FUNCTIONAL = "non_functional"
    TECHNICAL = "technical"


class ConstraintType(str, Enum):
    TECHNICAL = "technical"
    BUSINESS = "business"
    TIMELINE = "timeline"
    RESOURCE = "resource"


class RiskType(str, Enum):
    TECHNICAL = "technical"
    TIMELINE = "timeline"
    SECURITY = "security"
    BUSINESS = "business"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class GateSeverity(str, Enum):
    BLOCKING = "blocking"
    WARNING = "warning"
    INFO = "info"


class IssueSeverity(str, Enum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"
    INFO = "info"


class TaskCategory(str, Enum):
    ANALYSIS = "analysis"
    DESIGN = "design"
    IMPLEMENTATION = "implementation"
    TESTING = "testing"
    DEPLOYMENT = "deployment"


def coerce_enum(enum_cls, value: Any, default=None):
    """Return ``value`` as a member of ``enum_cls`` or ``default`` when unknown."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            return default
    return default


# ------------------------------------------------------------------
# Exceptions
# ------------------------------------------------------------------


class PlanningError(Exception):
    """Base error for the workflow planner package."""


class WorkflowNotFoundError(PlanningError, KeyError):
    """Raised when a workflow id is not present in a registry."""

    def __init__(self, workflow_id: str):
        super().__init__(f"Workflow '{workflow_id}' not found")
        self.workflow_id = workflow_id


# ------------------------------------------------------------------
# Requirement set
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Requirement:
    """A single requirement extracted from a document section."""

    id: str
    content: str
    priority: Priority
    source: str
    category: RequirementCategory = RequirementCategory.FUNCTIONAL
    acceptance_criteria: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "content": self.content,
            "priority": self.priority.value,
            "source": self.source,
            "category": self.category.value,
            "acceptance_criteria": list(self.acceptance_criteria),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Requirement":
        """Create from dictionary representation."""
        return cls(
            id=data["id"],
            content=data["content"],
            priority=coerce_enum(Priority, data.get("priority"), Priority.MEDIUM),
            source=data.get("source", ""),
            category=coerce_enum(RequirementCategory, data.get("category"), RequirementCategory.FUNCTIONAL),
            acceptance_criteria=tuple(data.get("acceptance_criteria", [])),
        )


@dataclass(frozen=True, slots=True)
class Constraint:
    id: str
    type: ConstraintType
    description: str
    impact: RiskLevel

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "description": self.description,
            "impact": self.impact.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Constraint":
        return cls(
            id=data["id"],
            type=coerce_enum(ConstraintType, data.get("type"), ConstraintType.BUSINESS),
            description=data.get("description", ""),
            impact=coerce_enum(RiskLevel, data.get("impact"), RiskLevel.LOW),
        )


@dataclass(frozen=True, slots=True)
class Assumption:
    id: str
    description: str
    validation_required: bool
    owner: Persona

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "validation_required": self.validation_required,
            "owner": self.owner.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Assumption":
        return cls(
            id=data["id"],
            description=data.get("description", ""),
            validation_required=bool(data.get("validation_required", False)),
            owner=coerce_enum(Persona, data.get("owner"), Persona.ARCHITECT),
        )


@dataclass(frozen=True, slots=True)
class RequirementSet:
    """Immutable, ordered result of requirement extraction."""

    functional: Tuple[Requirement, ...] = ()
    non_functional: Tuple[Requirement, ...] = ()
    technical: Tuple[Requirement, ...] = ()
    constraints: Tuple[Constraint, ...] = ()
    assumptions: Tuple[Assumption, ...] = ()

    def all_requirements(self) -> List[Requirement]:
        """Return every requirement in category order."""
        return [*self.functional, *self.non_functional, *self.technical]

    @property
    def requirement_count(self) -> int:
        return len(self.functional) + len(self.non_functional) + len(self.technical)

    def is_empty(self) -> bool:
        return self.requirement_count == 0 and not self.constraints and not self.assumptions

    def combined_text(self) -> str:
        """Lowercased text of every requirement and acceptance criterion."""
        parts: List[str] = []
        for requirement in self.all_requirements():
            parts.append(requirement.content)
            parts.extend(requirement.acceptance_criteria)
        return " ".join(parts).lower()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "functional": [r.to_dict() for r in self.functional],
            "non_functional": [r.to_dict() for r in self.non_functional],
            "technical": [r.to_dict() for r in self.technical],
            "constraints": [c.to_dict() for c in self.constraints],
            "assumptions": [a.to_dict() for a in self.assumptions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RequirementSet":
        """Create from dictionary representation."""
        return cls(
            functional=tuple(Requirement.from_dict(r) for r in data.get("functional", [])),
            non_functional=tuple(Requirement.from_dict(r) for r in data.get("non_functional", [])),
            technical=tuple(Requirement.from_dict(r) for r in data.get("technical", [])),
            constraints=tuple(Constraint.from_dict(c) for c in data.get("constraints", [])),
            assumptions=tuple(Assumption.from_dict(a) for a in data.get("assumptions", [])),
        )


@dataclass(frozen=True, slots=True)
class DocumentSection:
    """A titled block of a source document."""

    title: str
    content: str
    acceptance_criteria: Tuple[str, ...] = ()
    category: RequirementCategory = RequirementCategory.FUNCTIONAL
    priority: Priority = Priority.LOW

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "acceptance_criteria": list(self.acceptance_criteria),
            "category": self.category.value,
            "priority": self.priority.value,
        }


@dataclass(frozen=True, slots=True)
class DocumentMetadata:
    title: str = "Untitled Feature"
    version: str = "1.0"
    author: str = "Unknown"
    date: Optional[str] = None
    stakeholders: Tuple[str, ...] = ()
    business_value: Optional[str] = None
    success_metrics: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "version": self.version,
            "author": self.author,
            "date": self.date,
            "stakeholders": list(self.stakeholders),
            "business_value": self.business_value,
            "success_metrics": list(self.success_metrics),
        }


@dataclass(frozen=True, slots=True)
class EffortEstimate:
    """Document-level effort estimate with a confidence score."""

    hours: int
    confidence: float
    breakdown: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hours": self.hours,
            "confidence": round(self.confidence, 2),
            "breakdown": dict(self.breakdown),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EffortEstimate":
        return cls(
            hours=int(data.get("hours", 0)),
            confidence=float(data.get("confidence", 0.0)),
            breakdown=dict(data.get("breakdown", {})),
        )


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    """Everything the extractor derives from one document."""

    requirements: RequirementSet
    metadata: DocumentMetadata
    complexity: Complexity
    recommended_persona: Persona
    persona_scores: Dict[str, float]
    effort: EffortEstimate
    sections: Tuple[DocumentSection, ...] = ()
    text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "requirements": self.requirements.to_dict(),
            "metadata": self.metadata.to_dict(),
            "complexity": self.complexity.value,
            "recommended_persona": self.recommended_persona.value,
            "persona_scores": dict(self.persona_scores),
            "effort": self.effort.to_dict(),
            "sections": [s.to_dict() for s in self.sections],
        }


# ------------------------------------------------------------------
# Workflow structure
# ------------------------------------------------------------------


@dataclass(slots=True)
class WorkflowTask:
    """A single estimated, dependency-aware unit of work."""

    id: str
    title: str
    description: str
    persona: Persona
    complexity: Complexity
    estimated_hours: int
    dependencies: List[str] = field(default_factory=list)
    acceptance_criteria: List[str] = field(default_factory=list)
    phase_id: Optional[str] = None
    tool_providers: List[ToolProvider] = field(default_factory=list)
    tools: List[str] = field(default_factory=list)
    category: TaskCategory = TaskCategory.IMPLEMENTATION

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "persona": self.persona.value,
            "complexity": self.complexity.value,
            "estimated_hours": self.estimated_hours,
            "dependencies": list(self.dependencies),
            "acceptance_criteria": list(self.acceptance_criteria),
            "phase_id": self.phase_id,
            "tool_providers": [p.value for p in self.tool_providers],
            "tools": list(self.tools),
            "category": self.category.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowTask":
        """Create from dictionary representation."""
        providers = [coerce_enum(ToolProvider, p) for p in data.get("tool_providers", [])]
        return cls(
            id=data["id"],
            title=data["title"],
            description=data.get("description", ""),
            persona=coerce_enum(Persona, data.get("persona"), Persona.ARCHITECT),
            complexity=coerce_enum(Complexity, data.get("complexity"), Complexity.MODERATE),
            estimated_hours=int(data.get("estimated_hours", 0)),
            dependencies=list(data.get("dependencies", [])),
            acceptance_criteria=list(data.get("acceptance_criteria", [])),
            phase_id=data.get("phase_id"),
            tool_providers=[p for p in providers if p is not None],
            tools=list(data.get("tools", [])),
            category=coerce_enum(TaskCategory, data.get("category"), TaskCategory.IMPLEMENTATION),
        )

    def validate(self) -> List[str]:
        """Validate the task and return any issues."""
        issues = []

        if not self.id:
            issues.append("Task ID is required")
        if not self.title:
            issues.append("Task title is required")
        if self.estimated_hours <= 0:
            issues.append("Estimated hours must be positive")
        if self.id in self.dependencies:
            issues.append("Task cannot depend on itself")

        return issues


@dataclass(slots=True)
class RiskAssessment:
    id: str
    type: RiskType
    probability: RiskLevel
    impact: RiskLevel
    description: str
    mitigation: str
    owner: Persona

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "probability": self.probability.value,
            "impact": self.impact.value,
            "description": self.description,
            "mitigation": self.mitigation,
            "owner": self.owner.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RiskAssessment":
        return cls(
            id=data["id"],
            type=coerce_enum(RiskType, data.get("type"), RiskType.TECHNICAL),
            probability=coerce_enum(RiskLevel, data.get("probability"), RiskLevel.MEDIUM),
            impact=coerce_enum(RiskLevel, data.get("impact"), RiskLevel.MEDIUM),
            description=data.get("description", ""),
            mitigation=data.get("mitigation", ""),
            owner=coerce_enum(Persona, data.get("owner"), Persona.ARCHITECT),
        )


@dataclass(slots=True)
class WorkflowPhase:
    """An ordered stage of a workflow holding its tasks."""

    id: str
    name: str
    description: str
    duration: str
    tasks: List[WorkflowTask] = field(default_factory=list)
    milestones: List[str] = field(default_factory=list)
    deliverables: List[str] = field(default_factory=list)
    risks: List[RiskAssessment] = field(default_factory=list)

    @property
    def total_hours(self) -> int:
        return sum(task.estimated_hours for task in self.tasks)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "duration": self.duration,
            "tasks": [t.to_dict() for t in self.tasks],
            "milestones": list(self.milestones),
            "deliverables": list(self.deliverables),
            "risks": [r.to_dict() for r in self.risks],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowPhase":
        """Create from dictionary representation."""
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            duration=data.get("duration", ""),
            tasks=[WorkflowTask.from_dict(t) for t in data.get("tasks", [])],
            milestones=list(data.get("milestones", [])),
            deliverables=list(data.get("deliverables", [])),
            risks=[RiskAssessment.from_dict(r) for r in data.get("risks", [])],
        )


@dataclass(slots=True)
class InternalDependency:
    from_task: str
    to_task: str
    type: str = "blocking"

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.from_task, "to": self.to_task, "type": self.type}


@dataclass(slots=True)
class ExternalDependency:
    service: str
    type: str
    critical: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"service": self.service, "type": self.type, "critical": self.critical}


@dataclass(slots=True)
class TechnicalDependency:
    technology: str
    version: Optional[str]
    rationale: str

    def to_dict(self) -> Dict[str, Any]:
        return {"technology": self.technology, "version": self.version, "rationale": self.rationale}


@dataclass(slots=True)
class TeamDependency:
    skill: Persona
    required: bool
    timeline: str

    def to_dict(self) -> Dict[str, Any]:
        return {"skill": self.skill.value, "required": self.required, "timeline": self.timeline}


@dataclass(slots=True)
class DependencyMap:
    """Internal, external, technical and team dependencies of a workflow."""

    internal: List[InternalDependency] = field(default_factory=list)
    external: List[ExternalDependency] = field(default_factory=list)
    technical: List[TechnicalDependency] = field(default_factory=list)
    team: List[TeamDependency] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "internal": [d.to_dict() for d in self.internal],
            "external": [d.to_dict() for d in self.external],
            "technical": [d.to_dict() for d in self.technical],
            "team": [d.to_dict() for d in self.team],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DependencyMap":
        return cls(
            internal=[
                InternalDependency(d["from"], d["to"], d.get("type", "blocking"))
                for d in data.get("internal", [])
            ],
            external=[
                ExternalDependency(d["service"], d.get("type", "library"), bool(d.get("critical", False)))
                for d in data.get("external", [])
            ],
            technical=[
                TechnicalDependency(d["technology"], d.get("version"), d.get("rationale", ""))
                for d in data.get("technical", [])
            ],
            team=[
                TeamDependency(
                    coerce_enum(Persona, d.get("skill"), Persona.ARCHITECT),
                    bool(d.get("required", True)),
                    d.get("timeline", ""),
                )
                for d in data.get("team", [])
            ],
        )


@dataclass(slots=True)
class ParallelWorkStream:
    """A group of tasks that can run at the same time."""

    id: str
    name: str
    task_ids: List[str]
    estimated_hours: int
    personas: List[Persona] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "task_ids": list(self.task_ids),
            "estimated_hours": self.estimated_hours,
            "personas": [p.value for p in self.personas],
            "conflicts": list(self.conflicts),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParallelWorkStream":
        personas = [coerce_enum(Persona, p) for p in data.get("personas", [])]
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            task_ids=list(data.get("task_ids", [])),
            estimated_hours=int(data.get("estimated_hours", 0)),
            personas=[p for p in personas if p is not None],
            conflicts=list(data.get("conflicts", [])),
        )


@dataclass(slots=True)
class GeneratedWorkflow:
    """Aggregate root of one planning call."""

    id: str
    title: str
    strategy: Strategy
    primary_persona: Persona
    phases: List[WorkflowPhase]
    estimated_duration: str
    estimated_hours: int
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat(timespec="seconds") + "Z")
    complexity: Complexity = Complexity.MODERATE
    dependencies: Optional[DependencyMap] = None
    risks: Optional[List[RiskAssessment]] = None
    parallel_work_streams: Optional[List[ParallelWorkStream]] = None
    tool_plan: Optional[Any] = None
    effort: Optional[EffortEstimate] = None

    def all_tasks(self) -> List[WorkflowTask]:
        return [task for phase in self.phases for task in phase.tasks]

    def find_task(self, task_id: str) -> Optional[WorkflowTask]:
        for task in self.all_tasks():
            if task.id == task_id:
                return task
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "title": self.title,
            "strategy": self.strategy.value,
            "primary_persona": self.primary_persona.value,
            "phases": [p.to_dict() for p in self.phases],
            "estimated_duration": self.estimated_duration,
            "estimated_hours": self.estimated_hours,
            "created_at": self.created_at,
            "complexity": self.complexity.value,
            "dependencies": self.dependencies.to_dict() if self.dependencies else None,
            "risks": [r.to_dict() for r in self.risks] if self.risks is not None else None,
            "parallel_work_streams": (
                [s.to_dict() for s in self.parallel_work_streams]
                if self.parallel_work_streams is not None
                else None
            ),
            "tool_plan": self.tool_plan.to_dict() if self.tool_plan is not None else None,
            "effort": self.effort.to_dict() if self.effort else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedWorkflow":
        """Create from dictionary representation."""
        from .tool_planner import ToolOrchestrationPlan

        risks = data.get("risks")
        streams = data.get("parallel_work_streams")
        return cls(
            id=data["id"],
            title=data.get("title", "Untitled Feature"),
            strategy=coerce_enum(Strategy, data.get("strategy"), Strategy.SYSTEMATIC),
            primary_persona=coerce_enum(Persona, data.get("primary_persona"), Persona.ARCHITECT),
            phases=[WorkflowPhase.from_dict(p) for p in data.get("phases", [])],
            estimated_duration=data.get("estimated_duration", ""),
            estimated_hours=int(data.get("estimated_hours", 0)),
            created_at=data.get("created_at", ""),
            complexity=coerce_enum(Complexity, data.get("complexity"), Complexity.MODERATE),
            dependencies=DependencyMap.from_dict(data["dependencies"]) if data.get("dependencies") else None,
            risks=[RiskAssessment.from_dict(r) for r in risks] if risks is not None else None,
            parallel_work_streams=(
                [ParallelWorkStream.from_dict(s) for s in streams] if streams is not None else None
            ),
            tool_plan=ToolOrchestrationPlan.from_dict(data["tool_plan"]) if data.get("tool_plan") else None,
            effort=EffortEstimate.from_dict(data["effort"]) if data.get("effort") else None,
        )

    def validate(self) -> List[str]:
        """Check structural invariants and return any issues."""
        issues = []
        seen: set[str] = set()
        for task in self.all_tasks():
            if task.id in seen:
                issues.append(f"Duplicate task id: {task.id}")
            seen.add(task.id)
            issues.extend(f"{task.id}: {issue}" for issue in task.validate())
        for task in self.all_tasks():
            for dependency in task.dependencies:
                if dependency not in seen:
                    issues.append(f"{task.id}: unknown dependency {dependency}")
        if self.estimated_hours != sum(t.estimated_hours for t in self.all_tasks()):
            issues.append("Estimated hours do not match the sum of task hours")
        return issues


# ------------------------------------------------------------------
# Planning guide
# ------------------------------------------------------------------


@dataclass(slots=True)
class PlanningStep:
    """Represents a single step in the recommended planning flow."""

    step_number: int
    name: str
    tool_name: str
    description: str
    purpose: str
    prerequisites: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step_number,
            "name": self.name,
            "tool": self.tool_name,
            "description": self.description,
            "purpose": self.purpose,
            "prerequisites": list(self.prerequisites),
        }

    def can_execute(self, completed_steps: List[str]) -> bool:
        """Check if this step can be executed based on prerequisites."""
        return all(prereq in completed_steps for prereq in self.prerequisites)


PLANNING_STEPS = [
    PlanningStep(
        step_number=1,
        name="extract_requirements",
        tool_name="extract_requirements",
        description="Parse the requirements document into a structured requirement set",
        purpose="Review detected sections, complexity and the recommended persona",
    ),
    PlanningStep(
        step_number=2,
        name="generate_workflow",
        tool_name="generate_workflow",
        description="Build phases and tasks for the chosen delivery strategy",
        purpose="Produce an estimated, dependency-aware plan",
    ),
    PlanningStep(
        step_number=3,
        name="analyze_dependencies",
        tool_name="analyze_dependencies",
        description="Compute the critical path, parallel streams and bottlenecks",
        purpose="Understand scheduling pressure before committing",
        prerequisites=["generate_workflow"],
    ),
    PlanningStep(
        step_number=4,
        name="validate_workflow",
        tool_name="validate_workflow",
        description="Run the quality gates for a profile",
        purpose="Find blocking issues before execution starts",
        prerequisites=["generate_workflow"],
    ),
    PlanningStep(
        step_number=5,
        name="format_workflow",
        tool_name="format_workflow",
        description="Render the plan as a roadmap, task list, guide or JSON",
        purpose="Share the plan with the team",
        prerequisites=["generate_workflow"],
    ),
]
