"""Tool-orchestration planning.

Decides which external tool providers a workflow needs, in which phases,
how they coordinate, what happens when they are unavailable and how
their results are cached and monitored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .models import (
    Persona,
    Priority,
    RequirementSet,
    TaskCategory,
    ToolProvider,
    WorkflowPhase,
    WorkflowTask,
    coerce_enum,
)
from .planner_logging import log_operation
from .text_matching import mentions

logger = logging.getLogger("workflow_planner.tool_planner")


PROVIDER_ALIASES: Mapping[str, ToolProvider] = MappingProxyType({
    "context7": ToolProvider.DOCUMENTATION,
    "docs": ToolProvider.DOCUMENTATION,
    "sequential": ToolProvider.REASONING,
    "sequential-thinking": ToolProvider.REASONING,
    "magic": ToolProvider.UI_GENERATION,
    "ui": ToolProvider.UI_GENERATION,
    "playwright": ToolProvider.BROWSER_TESTING,
    "testing": ToolProvider.BROWSER_TESTING,
})


def resolve_provider(value: Any) -> Optional[ToolProvider]:
    """Map a provider name or legacy alias onto ``ToolProvider``."""
    provider = coerce_enum(ToolProvider, value)
    if provider is None and isinstance(value, str):
        provider = PROVIDER_ALIASES.get(value.strip().lower())
    return provider


def resolve_providers(values: Iterable[Any]) -> List[ToolProvider]:
    resolved: List[ToolProvider] = []
    for value in values or ():
        provider = resolve_provider(value)
        if provider is None:
            logger.warning(f"Ignoring unknown tool provider {value!r}")
        elif provider not in resolved:
            resolved.append(provider)
    return resolved


# ------------------------------------------------------------------
# Static provider data
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ProviderCapability:
    name: str
    description: str
    confidence: float
    conditions: Tuple[str, ...]
    alternatives: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "confidence": self.confidence,
            "conditions": list(self.conditions),
            "alternatives": list(self.alternatives),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderCapability":
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            confidence=float(data.get("confidence", 0.0)),
            conditions=tuple(data.get("conditions", ())),
            alternatives=tuple(data.get("alternatives", ())),
        )


PROVIDER_CAPABILITIES: Mapping[ToolProvider, Tuple[ProviderCapability, ...]] = MappingProxyType({
    ToolProvider.DOCUMENTATION: (
        ProviderCapability("framework_documentation", "Official framework and library documentation", 0.95,
                           ("framework_detected",), ("web_search", "native_knowledge")),
        ProviderCapability("best_practices_lookup", "Community best practices and patterns", 0.90,
                           ("implementation_phase",), ("native_knowledge",)),
        ProviderCapability("code_examples", "Working code examples for libraries", 0.85,
                           ("library_usage",), ("web_search",)),
        ProviderCapability("library_integration", "Integration guides between libraries", 0.88,
                           ("multiple_libraries",), ("native_knowledge",)),
    ),
    ToolProvider.REASONING: (
        ProviderCapability("complex_analysis", "Structured analysis of complex problems", 0.92,
                           ("complex_requirements",), ("native_reasoning",)),
        ProviderCapability("multi_step_reasoning", "Step-by-step reasoning chains", 0.90,
                           ("multi_phase_workflow",), ("native_reasoning",)),
        ProviderCapability("systematic_debugging", "Hypothesis-driven debugging", 0.88,
                           ("troubleshooting",), ("manual_debugging",)),
        ProviderCapability("architecture_planning", "Architecture option analysis", 0.87,
                           ("architecture_phase",), ("native_reasoning",)),
    ),
    ToolProvider.UI_GENERATION: (
        ProviderCapability("ui_component_generation", "Generate UI components from descriptions", 0.93,
                           ("frontend_persona",), ("manual_components",)),
        ProviderCapability("design_system_integration", "Align components with a design system", 0.89,
                           ("design_system",), ("manual_components",)),
        ProviderCapability("responsive_layouts", "Responsive layout generation", 0.91,
                           ("responsive_requirements",), ("css_frameworks",)),
        ProviderCapability("accessibility_implementation", "Accessible markup and ARIA patterns", 0.86,
                           ("accessibility_requirements",), ("manual_audit",)),
    ),
    ToolProvider.BROWSER_TESTING: (
        ProviderCapability("e2e_testing", "End-to-end browser automation", 0.94,
                           ("testing_phase",), ("manual_testing",)),
        ProviderCapability("performance_testing", "Browser performance measurements", 0.89,
                           ("performance_requirements",), ("lighthouse_cli",)),
        ProviderCapability("cross_browser_validation", "Cross-browser behaviour checks", 0.92,
                           ("multi_browser_support",), ("manual_testing",)),
        ProviderCapability("visual_regression_testing", "Screenshot comparison testing", 0.87,
                           ("ui_changes",), ("manual_review",)),
    ),
})

PROVIDER_PURPOSES: Mapping[ToolProvider, str] = MappingProxyType({
    ToolProvider.DOCUMENTATION: "Framework documentation and best practices",
    ToolProvider.REASONING: "Complex analysis and systematic reasoning",
    ToolProvider.UI_GENERATION: "UI component generation and design system integration",
    ToolProvider.BROWSER_TESTING: "E2E testing and performance validation",
})

PROVIDER_CATEGORIES: Mapping[ToolProvider, Tuple[TaskCategory, ...]] = MappingProxyType({
    ToolProvider.DOCUMENTATION: (TaskCategory.DESIGN, TaskCategory.IMPLEMENTATION),
    ToolProvider.REASONING: (TaskCategory.ANALYSIS, TaskCategory.DESIGN, TaskCategory.IMPLEMENTATION),
    ToolProvider.UI_GENERATION: (TaskCategory.IMPLEMENTATION,),
    ToolProvider.BROWSER_TESTING: (TaskCategory.TESTING, TaskCategory.DEPLOYMENT),
})

PERSONA_PROVIDER_PREFERENCES: Mapping[Persona, Tuple[ToolProvider, ...]] = MappingProxyType({
    Persona.FRONTEND: (ToolProvider.UI_GENERATION, ToolProvider.BROWSER_TESTING, ToolProvider.DOCUMENTATION),
    Persona.BACKEND: (ToolProvider.DOCUMENTATION, ToolProvider.REASONING),
    Persona.SECURITY: (ToolProvider.REASONING, ToolProvider.DOCUMENTATION),
    Persona.ARCHITECT: (ToolProvider.REASONING, ToolProvider.DOCUMENTATION),
    Persona.QA: (ToolProvider.BROWSER_TESTING, ToolProvider.REASONING),
    Persona.PERFORMANCE: (ToolProvider.BROWSER_TESTING, ToolProvider.REASONING),
    Persona.DEVOPS: (ToolProvider.REASONING, ToolProvider.DOCUMENTATION),
    Persona.ANALYZER: (ToolProvider.REASONING, ToolProvider.DOCUMENTATION),
    Persona.REFACTORER: (ToolProvider.REASONING, ToolProvider.DOCUMENTATION),
    Persona.MENTOR: (ToolProvider.DOCUMENTATION, ToolProvider.REASONING),
    Persona.SCRIBE: (ToolProvider.DOCUMENTATION, ToolProvider.REASONING),
})

# provider -> (alternative kind, capability loss, description)
FALLBACK_ALTERNATIVES: Mapping[ToolProvider, Tuple[str, float, str]] = MappingProxyType({
    ToolProvider.DOCUMENTATION: ("native", 0.3, "Use built-in knowledge and web search"),
    ToolProvider.REASONING: ("native", 0.4, "Use standard analytical approach"),
    ToolProvider.UI_GENERATION: ("manual", 0.6, "Manual component creation"),
    ToolProvider.BROWSER_TESTING: ("manual", 0.7, "Manual testing procedures"),
})

# provider -> (enabled, eviction strategy, max size in MB, shared across steps of one request)
CACHE_SETTINGS: Mapping[ToolProvider, Tuple[bool, str, int, bool]] = MappingProxyType({
    ToolProvider.DOCUMENTATION: (True, "lru", 100, True),
    ToolProvider.REASONING: (True, "ttl", 50, False),
    ToolProvider.UI_GENERATION: (True, "lfu", 200, True),
    ToolProvider.BROWSER_TESTING: (False, "none", 0, False),
})

FRAMEWORK_VOCABULARY = (
    "framework", "library", "react", "vue", "angular", "next.js", "node.js", "express",
    "django", "flask", "graphql", "spring", "rails",
)

_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}

# A need-driven provider is selected only if one of its capabilities
# applies with at least this confidence.
MIN_CAPABILITY_CONFIDENCE = 0.85


# ------------------------------------------------------------------
# Plan data types
# ------------------------------------------------------------------


@dataclass(slots=True)
class NeedsAnalysis:
    documentation: float = 0.0
    analysis: float = 0.0
    ui: float = 0.0
    testing: float = 0.0
    framework: float = 0.0
    performance: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "documentation": round(self.documentation, 2),
            "analysis": round(self.analysis, 2),
            "ui": round(self.ui, 2),
            "testing": round(self.testing, 2),
            "framework": round(self.framework, 2),
            "performance": round(self.performance, 2),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NeedsAnalysis":
        return cls(**{key: float(data.get(key, 0.0)) for key in cls.__slots__})


@dataclass(slots=True)
class ProviderPlan:
    provider: ToolProvider
    purpose: str
    priority: Priority
    phases: List[str] = field(default_factory=list)
    tasks: List[str] = field(default_factory=list)
    requested: bool = False
    capabilities: List[ProviderCapability] = field(default_factory=list)
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.value,
            "purpose": self.purpose,
            "priority": self.priority.value,
            "phases": list(self.phases),
            "tasks": list(self.tasks),
            "requested": self.requested,
            "capabilities": [c.to_dict() for c in self.capabilities],
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderPlan":
        return cls(
            provider=resolve_provider(data["provider"]),
            purpose=data.get("purpose", ""),
            priority=coerce_enum(Priority, data.get("priority"), Priority.MEDIUM),
            phases=list(data.get("phases", [])),
            tasks=list(data.get("tasks", [])),
            requested=bool(data.get("requested", False)),
            capabilities=[ProviderCapability.from_dict(c) for c in data.get("capabilities", [])],
            confidence=float(data.get("confidence", 0.0)),
        )


@dataclass(slots=True)
class OrchestrationStep:
    step: int
    provider: ToolProvider
    phase_id: str
    action: str
    timeout_ms: int = 60000
    dependencies: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "provider": self.provider.value,
            "phase_id": self.phase_id,
            "action": self.action,
            "timeout_ms": self.timeout_ms,
            "dependencies": list(self.dependencies),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrchestrationStep":
        return cls(
            step=int(data["step"]),
            provider=resolve_provider(data["provider"]),
            phase_id=data.get("phase_id", ""),
            action=data.get("action", ""),
            timeout_ms=int(data.get("timeout_ms", 60000)),
            dependencies=[int(d) for d in data.get("dependencies", [])],
        )


@dataclass(slots=True)
class ParallelGroup:
    name: str
    providers: List[ToolProvider]
    coordination: str = "independent"
    merge_strategy: str = "consensus"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "providers": [p.value for p in self.providers],
            "coordination": self.coordination,
            "merge_strategy": self.merge_strategy,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParallelGroup":
        return cls(
            name=data["name"],
            providers=resolve_providers(data.get("providers", [])),
            coordination=data.get("coordination", "independent"),
            merge_strategy=data.get("merge_strategy", "consensus"),
        )


@dataclass(slots=True)
class SyncPoint:
    after_step: int
    timeout_ms: int = 30000
    condition: str = "dependencies_complete"
    fallback: str = "continue_without_sync"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "after_step": self.after_step,
            "timeout_ms": self.timeout_ms,
            "condition": self.condition,
            "fallback": self.fallback,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SyncPoint":
        return cls(
            after_step=int(data["after_step"]),
            timeout_ms=int(data.get("timeout_ms", 30000)),
            condition=data.get("condition", "dependencies_complete"),
            fallback=data.get("fallback", "continue_without_sync"),
        )


@dataclass(slots=True)
class OrchestrationDesign:
    primary: Optional[ToolProvider]
    secondary: List[ToolProvider] = field(default_factory=list)
    steps: List[OrchestrationStep] = field(default_factory=list)
    parallel_groups: List[ParallelGroup] = field(default_factory=list)
    sync_points: List[SyncPoint] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary": self.primary.value if self.primary else None,
            "secondary": [p.value for p in self.secondary],
            "steps": [s.to_dict() for s in self.steps],
            "parallel_groups": [g.to_dict() for g in self.parallel_groups],
            "sync_points": [s.to_dict() for s in self.sync_points],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrchestrationDesign":
        return cls(
            primary=resolve_provider(data.get("primary")),
            secondary=resolve_providers(data.get("secondary", [])),
            steps=[OrchestrationStep.from_dict(s) for s in data.get("steps", [])],
            parallel_groups=[ParallelGroup.from_dict(g) for g in data.get("parallel_groups", [])],
            sync_points=[SyncPoint.from_dict(s) for s in data.get("sync_points", [])],
        )


@dataclass(slots=True)
class FallbackAlternative:
    provider: ToolProvider
    alternative: str
    capability_loss: float
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.value,
            "alternative": self.alternative,
            "capability_loss": self.capability_loss,
            "description": self.description,
        }


@dataclass(slots=True)
class DegradationLevel:
    level: int
    description: str
    disabled_features: List[str]
    remaining_capabilities: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "description": self.description,
            "disabled_features": list(self.disabled_features),
            "remaining_capabilities": list(self.remaining_capabilities),
        }


@dataclass(slots=True)
class FallbackPlan:
    triggers: List[Dict[str, Any]] = field(default_factory=list)
    alternatives: List[FallbackAlternative] = field(default_factory=list)
    degradation_levels: List[DegradationLevel] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "triggers": [dict(t) for t in self.triggers],
            "alternatives": [a.to_dict() for a in self.alternatives],
            "degradation_levels": [d.to_dict() for d in self.degradation_levels],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FallbackPlan":
        return cls(
            triggers=[dict(t) for t in data.get("triggers", [])],
            alternatives=[
                FallbackAlternative(
                    provider=resolve_provider(a["provider"]),
                    alternative=a.get("alternative", "native"),
                    capability_loss=float(a.get("capability_loss", 0.0)),
                    description=a.get("description", ""),
                )
                for a in data.get("alternatives", [])
            ],
            degradation_levels=[
                DegradationLevel(
                    level=int(d["level"]),
                    description=d.get("description", ""),
                    disabled_features=list(d.get("disabled_features", [])),
                    remaining_capabilities=list(d.get("remaining_capabilities", [])),
                )
                for d in data.get("degradation_levels", [])
            ],
        )


@dataclass(slots=True)
class PerformancePlan:
    """Caching, batching, routing and monitoring settings for one request."""

    caching: Dict[str, Any] = field(default_factory=dict)
    batching: Dict[str, Any] = field(default_factory=dict)
    routing: Dict[str, Any] = field(default_factory=dict)
    monitoring: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "caching": self.caching,
            "batching": self.batching,
            "routing": self.routing,
            "monitoring": self.monitoring,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PerformancePlan":
        return cls(
            caching=dict(data.get("caching", {})),
            batching=dict(data.get("batching", {})),
            routing=dict(data.get("routing", {})),
            monitoring=dict(data.get("monitoring", {})),
        )


@dataclass(slots=True)
class ToolOrchestrationPlan:
    request_id: str
    needs: NeedsAnalysis
    servers: List[ProviderPlan]
    orchestration: OrchestrationDesign
    fallback: FallbackPlan
    performance: PerformancePlan

    @property
    def providers(self) -> List[ToolProvider]:
        return [server.provider for server in self.servers]

    def server_for(self, provider: ToolProvider) -> Optional[ProviderPlan]:
        return next((s for s in self.servers if s.provider is provider), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "needs": self.needs.to_dict(),
            "servers": [s.to_dict() for s in self.servers],
            "orchestration": self.orchestration.to_dict(),
            "fallback": self.fallback.to_dict(),
            "performance": self.performance.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolOrchestrationPlan":
        return cls(
            request_id=data.get("request_id", ""),
            needs=NeedsAnalysis.from_dict(data.get("needs", {})),
            servers=[ProviderPlan.from_dict(s) for s in data.get("servers", [])],
            orchestration=OrchestrationDesign.from_dict(data.get("orchestration", {})),
            fallback=FallbackPlan.from_dict(data.get("fallback", {})),
            performance=PerformancePlan.from_dict(data.get("performance", {})),
        )


# ------------------------------------------------------------------
# Planner
# ------------------------------------------------------------------


class ToolOrchestrationPlanner:
    """Select providers and design their coordination for a workflow."""

    def __init__(self, min_confidence: float = MIN_CAPABILITY_CONFIDENCE):
        self.min_confidence = min_confidence

    def plan(
        self,
        phases: Sequence[WorkflowPhase],
        requirements: RequirementSet,
        persona: Persona,
        requested: Iterable[Any] = (),
        request_id: str = "request",
    ) -> ToolOrchestrationPlan:
        with log_operation("plan_tool_orchestration", persona=persona.value, phases=len(phases)):
            needs = self.analyze_needs(requirements, phases)
            servers = self.select_providers(needs, persona, phases, resolve_providers(requested))
            orchestration = self.design_orchestration(servers, phases)
            fallback = self.build_fallback_plan(servers)
            performance = self.build_performance_plan(servers, request_id)

        logger.info(
            f"Planned {len(servers)} tool providers for {persona.value}: "
            f"{[s.provider.value for s in servers]}"
        )
        return ToolOrchestrationPlan(
            request_id=request_id,
            needs=needs,
            servers=servers,
            orchestration=orchestration,
            fallback=fallback,
            performance=performance,
        )

    def analyze_needs(self, requirements: RequirementSet, phases: Sequence[WorkflowPhase]) -> NeedsAnalysis:
        """Accumulate weighted needs from requirement text and task mix."""
        needs = NeedsAnalysis()

        for requirement in requirements.functional:
            text = " ".join([requirement.content, *requirement.acceptance_criteria]).lower()
            if mentions(text, ("ui", "interface")):
                needs.ui += 0.3
            if mentions(text, ("api", "service")):
                needs.framework += 0.2
            if mentions(text, ("test", "validat")):
                needs.testing += 0.25

        for requirement in requirements.technical:
            text = requirement.content.lower()
            if mentions(text, FRAMEWORK_VOCABULARY):
                needs.documentation += 0.4
                needs.framework += 0.3
            if mentions(text, ("performance", "optimi")):
                needs.performance += 0.3
            if mentions(text, ("complex", "architecture")):
                needs.analysis += 0.4

        for requirement in requirements.non_functional:
            text = requirement.content.lower()
            if mentions(text, ("performance", "latency", "load", "fps")):
                needs.performance += 0.3

        for phase in phases:
            for task in phase.tasks:
                if task.complexity.value == "complex":
                    needs.analysis += 0.2
                if task.persona is Persona.FRONTEND:
                    needs.ui += 0.15
                if task.persona is Persona.QA:
                    needs.testing += 0.2

        return needs

    def select_providers(
        self,
        needs: NeedsAnalysis,
        persona: Persona,
        phases: Sequence[WorkflowPhase],
        requested: Sequence[ToolProvider] = (),
    ) -> List[ProviderPlan]:
        preferred = PERSONA_PROVIDER_PREFERENCES.get(persona, ())
        selected: List[Tuple[ToolProvider, Priority]] = []

        if needs.documentation > 0.3 or needs.framework > 0.2:
            selected.append((
                ToolProvider.DOCUMENTATION,
                Priority.HIGH if ToolProvider.DOCUMENTATION in preferred else Priority.MEDIUM,
            ))
        if needs.analysis > 0.3:
            selected.append((ToolProvider.REASONING, Priority.HIGH))
        if needs.ui > 0.2 and persona is Persona.FRONTEND:
            selected.append((ToolProvider.UI_GENERATION, Priority.HIGH))
        if needs.testing > 0.2 or needs.performance > 0.2:
            selected.append((ToolProvider.BROWSER_TESTING, Priority.MEDIUM))

        conditions = self.active_conditions(needs, persona, phases)
        confident: List[Tuple[ToolProvider, Priority]] = []
        for provider, priority in selected:
            confidence = self.capability_confidence(provider, conditions)
            if confidence >= self.min_confidence or provider in requested:
                confident.append((provider, priority))
            else:
                logger.info(
                    f"Skipping {provider.value}: capability confidence {confidence:.2f} "
                    f"below {self.min_confidence:.2f}"
                )
        selected = confident

        chosen = {provider for provider, _ in selected}
        for provider in requested:
            if provider not in chosen:
                selected.append((provider, Priority.LOW))
                chosen.add(provider)

        plans = []
        for provider, priority in selected:
            categories = PROVIDER_CATEGORIES[provider]
            plans.append(ProviderPlan(
                provider=provider,
                purpose=PROVIDER_PURPOSES[provider],
                priority=priority,
                phases=[
                    phase.id for phase in phases
                    if any(task.category in categories for task in phase.tasks)
                ],
                tasks=[
                    task.id for phase in phases for task in phase.tasks
                    if provider in task.tool_providers
                ],
                requested=provider in requested,
                capabilities=list(PROVIDER_CAPABILITIES[provider]),
                confidence=self.capability_confidence(provider, conditions),
            ))
        return plans

    @staticmethod
    def active_conditions(
        needs: NeedsAnalysis,
        persona: Persona,
        phases: Sequence[WorkflowPhase],
    ) -> Set[str]:
        """Return the capability conditions that hold for this workflow."""
        categories = {task.category for phase in phases for task in phase.tasks}
        flags = {
            "framework_detected": needs.framework > 0,
            "implementation_phase": TaskCategory.IMPLEMENTATION in categories,
            "library_usage": needs.documentation > 0,
            "multiple_libraries": needs.documentation > 0.4,
            "complex_requirements": needs.analysis > 0.3,
            "multi_phase_workflow": len(phases) > 1,
            "troubleshooting": persona is Persona.ANALYZER,
            "architecture_phase": TaskCategory.DESIGN in categories,
            "frontend_persona": persona is Persona.FRONTEND,
            "design_system": needs.ui > 0,
            "responsive_requirements": needs.ui > 0.3,
            "accessibility_requirements": needs.ui > 0,
            "testing_phase": TaskCategory.TESTING in categories,
            "performance_requirements": needs.performance > 0,
            "multi_browser_support": needs.ui > 0,
            "ui_changes": needs.ui > 0,
        }
        return {name for name, holds in flags.items() if holds}

    @staticmethod
    def capability_confidence(provider: ToolProvider, conditions: Set[str]) -> float:
        """Best confidence among the provider's capabilities whose conditions hold."""
        return max(
            (
                capability.confidence
                for capability in PROVIDER_CAPABILITIES[provider]
                if all(condition in conditions for condition in capability.conditions)
            ),
            default=0.0,
        )

    def design_orchestration(self, servers: Sequence[ProviderPlan], phases: Sequence[WorkflowPhase]) -> OrchestrationDesign:
        if not servers:
            return OrchestrationDesign(primary=None)

        primary_plan = next((s for s in servers if s.priority is Priority.HIGH), servers[0])
        design = OrchestrationDesign(
            primary=primary_plan.provider,
            secondary=[s.provider for s in servers if s.provider is not primary_plan.provider],
        )

        for phase in phases:
            for server in servers:
                if phase.id not in server.phases:
                    continue
                number = len(design.steps) + 1
                design.steps.append(OrchestrationStep(
                    step=number,
                    provider=server.provider,
                    phase_id=phase.id,
                    action=f"Execute {phase.name} with {server.purpose}",
                    dependencies=[number - 1] if number > 1 else [],
                ))

        providers = {s.provider for s in servers}
        if {ToolProvider.DOCUMENTATION, ToolProvider.REASONING} <= providers:
            design.parallel_groups.append(ParallelGroup(
                name="Documentation and Analysis",
                providers=[ToolProvider.DOCUMENTATION, ToolProvider.REASONING],
            ))

        design.sync_points = [SyncPoint(after_step=step.step) for step in design.steps if step.dependencies]
        return design

    def build_fallback_plan(self, servers: Sequence[ProviderPlan]) -> FallbackPlan:
        plan = FallbackPlan()
        for server in servers:
            kind, loss, description = FALLBACK_ALTERNATIVES[server.provider]
            plan.triggers.append({"condition": "timeout", "threshold_ms": 30000, "provider": server.provider.value})
            plan.alternatives.append(FallbackAlternative(server.provider, kind, loss, description))
        plan.degradation_levels = [
            DegradationLevel(
                1, "Reduced tool-provider functionality",
                ["Advanced coordination", "Parallel processing"],
                ["Sequential processing", "Native tools"],
            ),
            DegradationLevel(
                2, "Minimal tool-provider usage",
                ["All advanced features", "Provider coordination"],
                ["Basic native tools", "Manual processes"],
            ),
        ]
        return plan

    def build_performance_plan(self, servers: Sequence[ProviderPlan], request_id: str) -> PerformancePlan:
        providers = {}
        for server in servers:
            enabled, strategy, max_size, shared = CACHE_SETTINGS[server.provider]
            providers[server.provider.value] = {
                "enabled": enabled,
                "strategy": strategy,
                "max_size_mb": max_size,
                "shared_across_steps": shared,
            }
        return PerformancePlan(
            caching={
                "enabled": True,
                "scope": "request",
                "namespace": request_id,
                "ttl_seconds": 3600,
                "invalidation_triggers": ["workflow_change", "requirements_update"],
                "providers": providers,
            },
            batching={
                "enabled": True,
                "batch_size": 5,
                "timeout_ms": 5000,
                "operations": ["documentation_lookup", "component_generation"],
            },
            routing={
                "load_balancing": True,
                "server_affinity": True,
                "geographic_routing": False,
                "cost_optimization": True,
            },
            monitoring={
                "metrics": ["response_time", "success_rate", "cache_hit_rate", "error_rate"],
                "alerts": [
                    {"metric": "response_time", "threshold": 10000, "action": "switch_to_fallback"},
                    {"metric": "error_rate", "threshold": 0.1, "action": "enable_degraded_mode"},
                ],
                "optimization_triggers": ["high_latency", "low_success_rate", "resource_exhaustion"],
            },
        )

    def route_task(self, task: WorkflowTask, plan: ToolOrchestrationPlan) -> Optional[ToolProvider]:
        """Pick the provider that should handle ``task`` under ``plan``."""
        ranked = sorted(plan.servers, key=lambda s: _PRIORITY_RANK[s.priority])
        for server in ranked:
            if server.provider in task.tool_providers:
                return server.provider
        for server in ranked:
            if task.category in PROVIDER_CATEGORIES[server.provider]:
                return server.provider
        return plan.orchestration.primary
