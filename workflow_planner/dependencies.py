"""Dependency graph construction and critical-path analysis.

The analyzer builds one node per task and finish-to-start edges from the
declared task dependencies, plus a phase-transition edge between the last
task of each phase and the first task of the next. It then runs the
critical-path method, groups tasks into dependency levels and reports
parallel opportunities, bottlenecks and risk areas.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .models import Complexity, ParallelWorkStream, Persona, WorkflowPhase
from .planner_logging import log_operation, log_performance

logger = logging.getLogger("workflow_planner.dependencies")


class EdgeKind(str, Enum):
    FINISH_TO_START = "finish-to-start"
    PHASE_TRANSITION = "phase-transition"


class ImpactLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(slots=True)
class DependencyNode:
    task_id: str
    title: str
    persona: Persona
    complexity: Complexity
    duration: int
    phase_id: Optional[str] = None
    earliest_start: int = 0
    latest_start: int = 0
    slack: int = 0
    critical: bool = False

    @property
    def earliest_finish(self) -> int:
        return self.earliest_start + self.duration

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "title": self.title,
            "persona": self.persona.value,
            "complexity": self.complexity.value,
            "duration": self.duration,
            "phase_id": self.phase_id,
            "earliest_start": self.earliest_start,
            "latest_start": self.latest_start,
            "slack": self.slack,
            "critical": self.critical,
        }


@dataclass(slots=True)
class DependencyEdge:
    from_task: str
    to_task: str
    kind: EdgeKind = EdgeKind.FINISH_TO_START
    lag: int = 0
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_task,
            "to": self.to_task,
            "kind": self.kind.value,
            "lag": self.lag,
            "description": self.description,
        }


class DependencyGraph:
    """Task nodes plus directed edges with adjacency lookups."""

    def __init__(self) -> None:
        self.nodes: Dict[str, DependencyNode] = {}
        self.edges: List[DependencyEdge] = []
        self._incoming: Dict[str, List[DependencyEdge]] = {}
        self._outgoing: Dict[str, List[DependencyEdge]] = {}

    def add_node(self, node: DependencyNode) -> None:
        self.nodes[node.task_id] = node
        self._incoming.setdefault(node.task_id, [])
        self._outgoing.setdefault(node.task_id, [])

    def add_edge(self, edge: DependencyEdge) -> bool:
        """Add ``edge`` if both ends exist; unknown task ids are skipped."""
        if edge.from_task not in self.nodes or edge.to_task not in self.nodes:
            return False
        self.edges.append(edge)
        self._outgoing[edge.from_task].append(edge)
        self._incoming[edge.to_task].append(edge)
        return True

    def incoming(self, task_id: str) -> List[DependencyEdge]:
        return self._incoming.get(task_id, [])

    def outgoing(self, task_id: str) -> List[DependencyEdge]:
        return self._outgoing.get(task_id, [])

    def predecessors(self, task_id: str) -> List[str]:
        return list(dict.fromkeys(edge.from_task for edge in self.incoming(task_id)))

    def successors(self, task_id: str) -> List[str]:
        return list(dict.fromkeys(edge.to_task for edge in self.outgoing(task_id)))

    def __len__(self) -> int:
        return len(self.nodes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes.values()],
            "edges": [edge.to_dict() for edge in self.edges],
        }


@dataclass(slots=True)
class ResourceRequirement:
    persona: Persona
    skill: str
    availability: str = "limited"

    def to_dict(self) -> Dict[str, Any]:
        return {"persona": self.persona.value, "skill": self.skill, "availability": self.availability}


@dataclass(slots=True)
class ParallelOpportunity:
    id: str
    name: str
    task_ids: List[str]
    estimated_duration: int
    required_resources: List[ResourceRequirement] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)

    def to_work_stream(self) -> ParallelWorkStream:
        return ParallelWorkStream(
            id=self.id,
            name=self.name,
            task_ids=list(self.task_ids),
            estimated_hours=self.estimated_duration,
            personas=list(dict.fromkeys(r.persona for r in self.required_resources)),
            conflicts=list(self.conflicts),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "task_ids": list(self.task_ids),
            "estimated_duration": self.estimated_duration,
            "required_resources": [r.to_dict() for r in self.required_resources],
            "conflicts": list(self.conflicts),
        }


@dataclass(slots=True)
class Bottleneck:
    id: str
    type: str
    description: str
    affected_tasks: List[str]
    impact: ImpactLevel
    mitigations: List[str]
    estimated_delay: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "description": self.description,
            "affected_tasks": list(self.affected_tasks),
            "impact": self.impact.value,
            "mitigations": list(self.mitigations),
            "estimated_delay": self.estimated_delay,
        }


@dataclass(slots=True)
class MitigationStrategy:
    strategy: str
    description: str
    effort: str
    effectiveness: float
    owner: Persona

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy,
            "description": self.description,
            "effort": self.effort,
            "effectiveness": self.effectiveness,
            "owner": self.owner.value,
        }


@dataclass(slots=True)
class ContingencyPlan:
    trigger: str
    actions: List[str]
    escalation: List[Persona]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trigger": self.trigger,
            "actions": list(self.actions),
            "escalation": [p.value for p in self.escalation],
        }


@dataclass(slots=True)
class RiskArea:
    id: str
    type: str
    description: str
    probability: float
    impact: float
    affected_tasks: List[str]
    indicators: List[str]
    mitigation_strategies: List[MitigationStrategy]
    contingency_plans: List[ContingencyPlan]

    @property
    def risk_score(self) -> float:
        return round(self.probability * self.impact, 4)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "description": self.description,
            "probability": self.probability,
            "impact": self.impact,
            "risk_score": self.risk_score,
            "affected_tasks": list(self.affected_tasks),
            "indicators": list(self.indicators),
            "mitigation_strategies": [m.to_dict() for m in self.mitigation_strategies],
            "contingency_plans": [c.to_dict() for c in self.contingency_plans],
        }


@dataclass(slots=True)
class DependencyAnalysis:
    graph: DependencyGraph
    critical_path: List[str]
    parallel_opportunities: List[ParallelOpportunity]
    bottlenecks: List[Bottleneck]
    risk_areas: List[RiskArea]
    levels: List[List[str]] = field(default_factory=list)
    unleveled: List[str] = field(default_factory=list)
    project_duration: int = 0

    @property
    def has_cycles(self) -> bool:
        return bool(self.unleveled)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "graph": self.graph.to_dict(),
            "critical_path": list(self.critical_path),
            "parallel_opportunities": [p.to_dict() for p in self.parallel_opportunities],
            "bottlenecks": [b.to_dict() for b in self.bottlenecks],
            "risk_areas": [r.to_dict() for r in self.risk_areas],
            "levels": [list(level) for level in self.levels],
            "unleveled": list(self.unleveled),
            "project_duration": self.project_duration,
        }


class DependencyAnalyzer:
    """Critical-path scheduling over a phase/task structure."""

    SKILL_BOTTLENECK_MITIGATIONS = (
        "Cross-train team members",
        "Hire additional specialist",
        "Reschedule tasks sequentially",
    )
    DEPENDENCY_BOTTLENECK_MITIGATIONS = (
        "Break down complex task",
        "Reduce dependencies",
        "Create parallel paths",
    )
    MAX_EDGES_PER_DIRECTION = 3

    @log_performance("analyze_dependencies")
    def analyze(self, phases: Sequence[WorkflowPhase]) -> DependencyAnalysis:
        """Build the graph and compute every scheduling metric."""
        with log_operation("analyze_dependencies", phases=len(phases)):
            graph = self.build_graph(phases)
            order, unleveled_nodes = self._topological_order(graph)
            project_duration = self._schedule(graph, order, unleveled_nodes)
            levels, unleveled = self.compute_levels(graph)
            critical_path = self.find_critical_path(graph)
            opportunities = self.find_parallel_opportunities(graph, levels)
            bottlenecks = self.find_bottlenecks(graph)
            risk_areas = self.assess_risks(graph)

        if unleveled:
            logger.warning(f"Cyclic dependencies left {len(unleveled)} tasks unleveled: {unleveled}")
        logger.info(
            f"Analyzed {len(graph)} tasks: critical path {len(critical_path)}, "
            f"{len(opportunities)} parallel opportunities, {len(bottlenecks)} bottlenecks"
        )

        return DependencyAnalysis(
            graph=graph,
            critical_path=critical_path,
            parallel_opportunities=opportunities,
            bottlenecks=bottlenecks,
            risk_areas=risk_areas,
            levels=levels,
            unleveled=unleveled,
            project_duration=project_duration,
        )

    # ------------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------------

    def build_graph(self, phases: Sequence[WorkflowPhase]) -> DependencyGraph:
        graph = DependencyGraph()
        for phase in phases:
            for task in phase.tasks:
                graph.add_node(DependencyNode(
                    task_id=task.id,
                    title=task.title,
                    persona=task.persona,
                    complexity=task.complexity,
                    duration=max(0, int(task.estimated_hours)),
                    phase_id=task.phase_id or phase.id,
                ))

        for phase in phases:
            for task in phase.tasks:
                for dependency in task.dependencies:
                    added = graph.add_edge(DependencyEdge(
                        from_task=dependency,
                        to_task=task.id,
                        description=f"{task.title} depends on completion of {dependency}",
                    ))
                    if not added:
                        logger.warning(f"Skipping dependency {dependency} -> {task.id}: unknown task id")

        for previous, current in zip(phases, phases[1:]):
            if previous.tasks and current.tasks:
                graph.add_edge(DependencyEdge(
                    from_task=previous.tasks[-1].id,
                    to_task=current.tasks[0].id,
                    kind=EdgeKind.PHASE_TRANSITION,
                    description=f"Phase transition: {previous.name} → {current.name}",
                ))
        return graph

    # ------------------------------------------------------------------
    # Critical path method
    # ------------------------------------------------------------------

    def _topological_order(self, graph: DependencyGraph):
        in_degree = {task_id: len(graph.incoming(task_id)) for task_id in graph.nodes}
        queue = deque(task_id for task_id, degree in in_degree.items() if degree == 0)
        order: List[str] = []
        while queue:
            task_id = queue.popleft()
            order.append(task_id)
            for edge in graph.outgoing(task_id):
                in_degree[edge.to_task] -= 1
                if in_degree[edge.to_task] == 0:
                    queue.append(edge.to_task)
        placed = set(order)
        remaining = [task_id for task_id in graph.nodes if task_id not in placed]
        return order, remaining

    def _schedule(self, graph: DependencyGraph, order: List[str], remaining: List[str]) -> int:
        nodes = graph.nodes

        # Forward pass. Nodes on or behind a cycle use whatever their
        # predecessors hold at the time they are visited.
        for task_id in [*order, *remaining]:
            node = nodes[task_id]
            node.earliest_start = max(
                (nodes[e.from_task].earliest_start + nodes[e.from_task].duration + e.lag
                 for e in graph.incoming(task_id)),
                default=0,
            )

        project_finish = max((node.earliest_finish for node in nodes.values()), default=0)

        for node in nodes.values():
            node.latest_start = project_finish - node.duration

        for task_id in [*reversed(remaining), *reversed(order)]:
            node = nodes[task_id]
            outgoing = graph.outgoing(task_id)
            if outgoing:
                node.latest_start = min(
                    nodes[e.to_task].latest_start - node.duration - e.lag for e in outgoing
                )

        for node in nodes.values():
            node.slack = node.latest_start - node.earliest_start
            node.critical = node.slack == 0

        return project_finish

    def compute_levels(self, graph: DependencyGraph):
        """Group nodes into dependency levels; cycle members stay unleveled."""
        processed: set[str] = set()
        levels: List[List[str]] = []
        while len(processed) < len(graph.nodes):
            level = [
                task_id for task_id in graph.nodes
                if task_id not in processed
                and all(p in processed for p in graph.predecessors(task_id))
            ]
            if not level:
                break
            levels.append(level)
            processed.update(level)
        unleveled = [task_id for task_id in graph.nodes if task_id not in processed]
        return levels, unleveled

    def find_critical_path(self, graph: DependencyGraph) -> List[str]:
        nodes = graph.nodes
        start = next(
            (task_id for task_id, node in nodes.items() if node.critical and not graph.incoming(task_id)),
            None,
        )
        if start is None:
            return []

        path = [start]
        visited = {start}
        current = start
        while True:
            node = nodes[current]
            candidates = [
                e.to_task for e in graph.outgoing(current)
                if nodes[e.to_task].critical and e.to_task not in visited
            ]
            tight = [
                t for t in candidates
                if nodes[t].earliest_start == node.earliest_finish
            ]
            following = (tight or candidates)
            if not following:
                break
            current = following[0]
            visited.add(current)
            path.append(current)
        return path

    # ------------------------------------------------------------------
    # Parallelism and bottlenecks
    # ------------------------------------------------------------------

    def find_parallel_opportunities(self, graph: DependencyGraph, levels: List[List[str]]) -> List[ParallelOpportunity]:
        opportunities: List[ParallelOpportunity] = []
        for index, level in enumerate(levels):
            if len(level) <= 1:
                continue
            nodes = [graph.nodes[task_id] for task_id in level]
            personas = [node.persona for node in nodes]
            conflicts = []
            if len(set(personas)) < len(personas):
                conflicts.append("Multiple tasks require same persona")
            opportunities.append(ParallelOpportunity(
                id=f"parallel-{index}",
                name=f"Parallel Stream {index + 1}",
                task_ids=list(level),
                estimated_duration=max(node.duration for node in nodes),
                required_resources=[
                    ResourceRequirement(persona=persona, skill=f"{persona.value} expertise")
                    for persona in dict.fromkeys(personas)
                ],
                conflicts=conflicts,
            ))
        return opportunities

    def find_bottlenecks(self, graph: DependencyGraph) -> List[Bottleneck]:
        return [*self._resource_bottlenecks(graph), *self._dependency_bottlenecks(graph)]

    def _resource_bottlenecks(self, graph: DependencyGraph) -> List[Bottleneck]:
        by_persona: Dict[Persona, List[DependencyNode]] = {}
        for node in graph.nodes.values():
            by_persona.setdefault(node.persona, []).append(node)

        bottlenecks: List[Bottleneck] = []
        for persona, nodes in by_persona.items():
            if len(nodes) < 2:
                continue
            overlapping: List[DependencyNode] = []
            for i, first in enumerate(nodes):
                for second in nodes[i + 1:]:
                    if (first.earliest_start < second.earliest_finish
                            and second.earliest_start < first.earliest_finish):
                        for node in (first, second):
                            if node not in overlapping:
                                overlapping.append(node)
            total_hours = sum(node.duration for node in overlapping)
            if not overlapping or total_hours <= 20:
                continue
            if total_hours > 80:
                impact = ImpactLevel.CRITICAL
            elif total_hours > 40:
                impact = ImpactLevel.HIGH
            else:
                impact = ImpactLevel.MEDIUM
            bottlenecks.append(Bottleneck(
                id=f"skill-bottleneck-{persona.value}",
                type="resource",
                description=f"Multiple tasks require {persona.value} expertise simultaneously",
                affected_tasks=[node.task_id for node in overlapping],
                impact=impact,
                mitigations=list(self.SKILL_BOTTLENECK_MITIGATIONS),
                estimated_delay=max(node.duration for node in overlapping) * 0.5,
            ))
        return bottlenecks

    def _dependency_bottlenecks(self, graph: DependencyGraph) -> List[Bottleneck]:
        bottlenecks: List[Bottleneck] = []
        for task_id, node in graph.nodes.items():
            incoming = len(graph.incoming(task_id))
            outgoing = len(graph.outgoing(task_id))
            if incoming <= self.MAX_EDGES_PER_DIRECTION and outgoing <= self.MAX_EDGES_PER_DIRECTION:
                continue
            bottlenecks.append(Bottleneck(
                id=f"dependency-bottleneck-{task_id}",
                type="dependency",
                description=f"Task {node.title} has high dependency complexity",
                affected_tasks=[task_id, *graph.successors(task_id)],
                impact=ImpactLevel.CRITICAL if node.critical else ImpactLevel.HIGH,
                mitigations=list(self.DEPENDENCY_BOTTLENECK_MITIGATIONS),
                estimated_delay=node.duration * 0.2 if node.critical else 0.0,
            ))
        return bottlenecks

    # ------------------------------------------------------------------
    # Risk areas
    # ------------------------------------------------------------------

    def assess_risks(self, graph: DependencyGraph) -> List[RiskArea]:
        risks: List[RiskArea] = []
        for task_id, node in graph.nodes.items():
            if node.complexity is Complexity.COMPLEX:
                risks.append(RiskArea(
                    id=f"technical-risk-{task_id}",
                    type="technical",
                    description=f"High complexity task: {node.title}",
                    probability=0.4,
                    impact=0.7,
                    affected_tasks=[task_id],
                    indicators=["Complex requirements", "New technology", "Integration challenges"],
                    mitigation_strategies=[MitigationStrategy(
                        strategy="prototype-first",
                        description="Build proof of concept before full implementation",
                        effort="medium",
                        effectiveness=0.7,
                        owner=node.persona,
                    )],
                    contingency_plans=[ContingencyPlan(
                        trigger="Prototype fails validation",
                        actions=["Escalate to senior architect", "Consider alternative approach"],
                        escalation=[Persona.ARCHITECT, Persona.SECURITY, Persona.PERFORMANCE],
                    )],
                ))
            if node.critical:
                risks.append(RiskArea(
                    id=f"timeline-risk-{task_id}",
                    type="timeline",
                    description=f"Critical path task: {node.title}",
                    probability=0.3,
                    impact=0.9,
                    affected_tasks=[task_id],
                    indicators=["On critical path", "No slack time"],
                    mitigation_strategies=[MitigationStrategy(
                        strategy="buffer-time",
                        description="Add time buffer to critical path tasks",
                        effort="low",
                        effectiveness=0.6,
                        owner=Persona.ARCHITECT,
                    )],
                    contingency_plans=[ContingencyPlan(
                        trigger="Task exceeds estimated time by 20%",
                        actions=["Reallocate resources", "Reduce scope"],
                        escalation=[Persona.ARCHITECT, Persona.MENTOR],
                    )],
                ))
        risks.sort(key=lambda risk: risk.risk_score, reverse=True)
        return risks


def analyze_dependencies(phases: Sequence[WorkflowPhase]) -> DependencyAnalysis:
    return DependencyAnalyzer().analyze(phases)
