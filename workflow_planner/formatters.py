"""Render generated workflows as markdown reports or JSON."""

from __future__ import annotations

import json
import logging
import math
import textwrap
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from .dependencies import DependencyAnalysis
from .models import (
    GeneratedWorkflow,
    OutputFormat,
    RiskAssessment,
    RiskLevel,
    RiskType,
    WorkflowPhase,
    WorkflowTask,
    coerce_enum,
)
from .personas import display_name, persona_guidance
from .planner_logging import log_operation

logger = logging.getLogger("workflow_planner.formatters")

RISK_ICONS = {
    RiskType.TECHNICAL: "⚙️",
    RiskType.TIMELINE: "⏰",
    RiskType.SECURITY: "🛡️",
    RiskType.BUSINESS: "💼",
}
_LEVEL_SCORES = {RiskLevel.LOW: 0.2, RiskLevel.MEDIUM: 0.5, RiskLevel.HIGH: 0.8}


@dataclass(slots=True)
class FormattingOptions:
    include_estimates: bool = True
    include_dependencies: bool = True
    include_risks: bool = True
    include_parallel_streams: bool = True
    include_milestones: bool = True
    include_acceptance_criteria: bool = True
    include_persona_guidance: bool = True
    include_tools: bool = True

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]] = None) -> "FormattingOptions":
        data = data or {}
        return cls(**{name: bool(data[name]) for name in cls.__slots__ if data.get(name) is not None})


@dataclass(slots=True)
class FormattedOutput:
    content: str
    format: OutputFormat
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"format": self.format.value, "content": self.content, "metadata": dict(self.metadata)}


def format_duration(hours: float) -> str:
    """Compact duration: hours below a day, then days, then weeks."""
    if hours < 8:
        return f"{hours}h"
    days = math.ceil(hours / 8)
    if days < 5:
        return f"{days}d"
    return f"{math.ceil(days / 5)}w"


def format_risk(risk: RiskAssessment) -> str:
    return f"{RISK_ICONS.get(risk.type, '⚠️')} {risk.description}"


def _bullets(items: Iterable[str], prefix: str = "- ") -> str:
    return "\n".join(f"{prefix}{item}" for item in items)


def _risk_score(risk: RiskAssessment) -> float:
    return _LEVEL_SCORES.get(risk.probability, 0.5) * _LEVEL_SCORES.get(risk.impact, 0.5)


def complexity_bucket(task_count: int, phase_count: int) -> str:
    if task_count < 10 and phase_count < 3:
        return "simple"
    if task_count < 25 and phase_count < 5:
        return "moderate"
    return "complex"


def risk_level(risks: Optional[List[RiskAssessment]]) -> str:
    if not risks:
        return "low"
    average = sum(_risk_score(r) for r in risks) / len(risks)
    if average < 0.2:
        return "low"
    if average < 0.4:
        return "medium"
    if average < 0.7:
        return "high"
    return "critical"


class WorkflowFormatter:
    """Render a workflow in one of the supported output formats.

    Formatting only reads the workflow; the same object can be rendered
    any number of times in any order.
    """

    def __init__(self):
        self._renderers: Dict[OutputFormat, Callable[..., str]] = {
            OutputFormat.ROADMAP: self.render_roadmap,
            OutputFormat.TASKS: self.render_tasks,
            OutputFormat.DETAILED: self.render_detailed,
            OutputFormat.JSON: self.render_json,
            OutputFormat.COMBINED: self.render_combined,
        }

    def format(
        self,
        workflow: GeneratedWorkflow,
        format: Union[OutputFormat, str] = OutputFormat.ROADMAP,
        analysis: Optional[DependencyAnalysis] = None,
        options: Optional[FormattingOptions] = None,
    ) -> FormattedOutput:
        output_format = coerce_enum(OutputFormat, format)
        if output_format is None:
            logger.warning(f"Unknown output format {format!r}, using roadmap")
            output_format = OutputFormat.ROADMAP
        options = options or FormattingOptions()

        with log_operation("format_workflow", workflow_id=workflow.id, format=output_format.value):
            content = self._renderers[output_format](workflow, options, analysis)

        return FormattedOutput(
            content=content,
            format=output_format,
            metadata=self.build_metadata(workflow, output_format),
        )

    def format_multiple(
        self,
        workflow: GeneratedWorkflow,
        formats: Iterable[Union[OutputFormat, str]],
        analysis: Optional[DependencyAnalysis] = None,
        options: Optional[FormattingOptions] = None,
    ) -> List[FormattedOutput]:
        return [self.format(workflow, fmt, analysis, options) for fmt in formats]

    def build_metadata(self, workflow: GeneratedWorkflow, output_format: OutputFormat) -> Dict[str, Any]:
        tasks = workflow.all_tasks()
        return {
            "generated_at": datetime.utcnow().isoformat(timespec="seconds") + "Z",
            "workflow_id": workflow.id,
            "format": output_format.value,
            "total_phases": len(workflow.phases),
            "total_tasks": len(tasks),
            "total_hours": sum(task.estimated_hours for task in tasks),
            "estimated_duration": workflow.estimated_duration,
            "primary_persona": workflow.primary_persona.value,
            "complexity": complexity_bucket(len(tasks), len(workflow.phases)),
            "risk_level": risk_level(workflow.risks),
        }

    # ------------------------------------------------------------------
    # Roadmap
    # ------------------------------------------------------------------

    def render_roadmap(self, workflow: GeneratedWorkflow, options: FormattingOptions,
                       analysis: Optional[DependencyAnalysis] = None) -> str:
        header = textwrap.dedent(f"""\
            # {workflow.title} - Implementation Roadmap

            **Strategy**: {workflow.strategy.value.upper()}
            **Primary Persona**: {display_name(workflow.primary_persona)}
            **Estimated Duration**: {workflow.estimated_duration}
            **Total Phases**: {len(workflow.phases)}
            """)
        blocks = [header]

        if options.include_dependencies and analysis is not None and analysis.critical_path:
            blocks.append(
                "## 🎯 Critical Path\n"
                f"**Tasks**: {len(analysis.critical_path)} critical tasks\n"
                "**Impact**: Any delay in these tasks will delay the entire project\n"
            )

        streams = workflow.parallel_work_streams or []
        if options.include_parallel_streams and streams:
            lines = [
                f"**{s.name}**: {len(s.task_ids)} tasks ({format_duration(s.estimated_hours)})" for s in streams
            ]
            blocks.append(f"## ⚡ Parallel Work Opportunities\n{_bullets(lines)}\n")

        for index, phase in enumerate(workflow.phases, start=1):
            blocks.append(self._roadmap_phase(index, phase, options))

        if options.include_risks and workflow.risks:
            critical = [r for r in workflow.risks if r.impact is RiskLevel.HIGH]
            if critical:
                entries = [
                    f"### {format_risk(r)}\n"
                    f"**Probability**: {r.probability.value} | **Impact**: {r.impact.value}\n"
                    f"**Mitigation**: {r.mitigation}\n"
                    for r in critical
                ]
                blocks.append("## 🚨 Critical Risks to Monitor\n\n" + "\n".join(entries))

        return "\n".join(blocks)

    def _roadmap_phase(self, index: int, phase: WorkflowPhase, options: FormattingOptions) -> str:
        lines = [
            f"## Phase {index}: {phase.name}",
            f"**Duration**: {phase.duration}",
            f"**Tasks**: {len(phase.tasks)}",
        ]
        if options.include_estimates:
            lines.append(f"**Effort**: {format_duration(phase.total_hours)}")
        lines.append(f"**Description**: {phase.description}\n")

        if phase.deliverables:
            lines.append(f"### 📦 Key Deliverables\n{_bullets(phase.deliverables)}\n")
        if options.include_milestones and phase.milestones:
            lines.append(f"### 🎯 Milestones\n{_bullets(phase.milestones, '- [ ] ')}\n")
        if options.include_risks:
            high = [r for r in phase.risks if RiskLevel.HIGH in (r.impact, r.probability)]
            if high:
                lines.append(f"### ⚠️ Key Risks\n{_bullets(format_risk(r) for r in high)}\n")

        lines.append("---\n")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Task breakdown
    # ------------------------------------------------------------------

    def render_tasks(self, workflow: GeneratedWorkflow, options: FormattingOptions,
                     analysis: Optional[DependencyAnalysis] = None) -> str:
        titles = {task.id: task.title for task in workflow.all_tasks()}
        critical = set(analysis.critical_path) if analysis is not None else set()

        blocks = [f"# {workflow.title} - Task Breakdown\n"]
        for phase in workflow.phases:
            blocks.append(f"## {phase.name}\n")
            for task in phase.tasks:
                blocks.append(self._task_block(task, options, titles, task.id in critical))
        return "\n".join(blocks)

    def _task_block(self, task: WorkflowTask, options: FormattingOptions,
                    titles: Dict[str, str], critical: bool) -> str:
        lines = [f"### {task.title}{' 🎯' if critical else ''}"]
        lines.append(f"**Persona**: {display_name(task.persona)}")
        if options.include_estimates:
            lines.append(f"**Estimated Time**: {format_duration(task.estimated_hours)}")
        lines.append(f"**Complexity**: {task.complexity.value}")
        lines.append(f"**Description**: {task.description}\n")

        if options.include_dependencies and task.dependencies:
            lines.append(f"**Dependencies**:\n{_bullets(titles.get(d, d) for d in task.dependencies)}\n")
        if options.include_acceptance_criteria and task.acceptance_criteria:
            lines.append(f"**Acceptance Criteria**:\n{_bullets(task.acceptance_criteria, '- [ ] ')}\n")
        if options.include_tools and task.tool_providers:
            lines.append(f"**Tool Providers**: {', '.join(p.value for p in task.tool_providers)}\n")

        lines.append("---\n")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Detailed guide
    # ------------------------------------------------------------------

    def render_detailed(self, workflow: GeneratedWorkflow, options: FormattingOptions,
                        analysis: Optional[DependencyAnalysis] = None) -> str:
        tasks = workflow.all_tasks()
        total_hours = sum(task.estimated_hours for task in tasks)
        blocks = [textwrap.dedent(f"""\
            # {workflow.title} - Detailed Implementation Guide

            ## 📋 Executive Summary

            **Project Strategy**: {workflow.strategy.value}
            **Primary Persona**: {display_name(workflow.primary_persona)}
            **Estimated Duration**: {workflow.estimated_duration}
            **Total Tasks**: {len(tasks)}
            **Total Effort**: {format_duration(total_hours)}
            """)]

        if options.include_dependencies and analysis is not None:
            blocks.append(self._analysis_block(analysis))

        for phase_index, phase in enumerate(workflow.phases, start=1):
            blocks.append(
                f"## Phase {phase_index}: {phase.name}\n\n"
                f"**Duration**: {phase.duration}\n"
                f"**Description**: {phase.description}\n"
            )
            if options.include_risks and phase.risks:
                entries = [
                    f"- **{format_risk(r)}**\n"
                    f"  - Probability: {r.probability.value}, Impact: {r.impact.value}\n"
                    f"  - Mitigation: {r.mitigation}"
                    for r in phase.risks
                ]
                blocks.append("### ⚠️ Phase Risks\n" + "\n".join(entries) + "\n")
            for task_index, task in enumerate(phase.tasks, start=1):
                blocks.append(self._detailed_task(f"{phase_index}.{task_index}", task, phase, options))

        if options.include_tools and workflow.tool_plan is not None and workflow.tool_plan.servers:
            entries = [
                f"### {server.provider.value.upper()}\n"
                f"**Purpose**: {server.purpose}\n"
                f"**Priority**: {server.priority.value}\n"
                f"**Phases**: {', '.join(server.phases) or 'None'}\n"
                for server in workflow.tool_plan.servers
            ]
            blocks.append("## 🤖 Tool Integration Plan\n\n" + "\n".join(entries))

        return "\n".join(blocks)

    def _analysis_block(self, analysis: DependencyAnalysis) -> str:
        lines = ["## 🔗 Dependency Analysis\n"]
        if analysis.critical_path:
            lines.append(
                f"### Critical Path ({len(analysis.critical_path)} tasks)\n"
                "Tasks on the critical path will directly impact project timeline if delayed.\n"
            )
        if analysis.bottlenecks:
            lines.append("### 🚧 Identified Bottlenecks")
            for bottleneck in analysis.bottlenecks:
                mitigation = bottleneck.mitigations[0] if bottleneck.mitigations else "None specified"
                lines.append(
                    f"- **{bottleneck.description}**\n"
                    f"  - Impact: {bottleneck.impact.value}\n"
                    f"  - Affected tasks: {len(bottleneck.affected_tasks)}\n"
                    f"  - Mitigation: {mitigation}"
                )
            lines.append("")
        if analysis.has_cycles:
            lines.append(f"⚠️ Cyclic dependencies detected for {len(analysis.unleveled)} tasks\n")
        return "\n".join(lines)

    def _detailed_task(self, number: str, task: WorkflowTask, phase: WorkflowPhase,
                       options: FormattingOptions) -> str:
        rows = [
            "| Attribute | Value |",
            "|-----------|-------|",
            f"| **Persona** | {display_name(task.persona)} |",
            f"| **Complexity** | {task.complexity.value} |",
        ]
        if options.include_estimates:
            rows.append(f"| **Estimated Time** | {format_duration(task.estimated_hours)} |")
        rows.append(f"| **Phase** | {phase.name} |")
        rows.append(f"| **Tool Providers** | {', '.join(p.value for p in task.tool_providers) or 'None'} |")

        lines = [f"### Task {number}: {task.title}\n", "\n".join(rows), "", f"**Description**: {task.description}\n"]

        if options.include_persona_guidance:
            lines.append(
                "**Implementation Approach**:\n"
                f"As a {task.persona.value} specialist, focus on:\n"
                f"{_bullets(persona_guidance(task.persona))}\n"
            )
        if options.include_dependencies and task.dependencies:
            lines.append(f"**Dependencies**:\n{_bullets(task.dependencies)}\n")
        if options.include_acceptance_criteria and task.acceptance_criteria:
            numbered = "\n".join(f"{i}. [ ] {c}" for i, c in enumerate(task.acceptance_criteria, start=1))
            lines.append(f"**Acceptance Criteria**:\n{numbered}\n")
        if options.include_tools and task.tools:
            lines.append(f"**Recommended Tools**: {', '.join(task.tools)}\n")

        lines.append("---\n")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # JSON and combined
    # ------------------------------------------------------------------

    def render_json(self, workflow: GeneratedWorkflow, options: FormattingOptions,
                    analysis: Optional[DependencyAnalysis] = None) -> str:
        data = workflow.to_dict()
        if options.include_dependencies and analysis is not None:
            data["analysis"] = analysis.to_dict()
        return json.dumps(data, indent=2, ensure_ascii=False)

    def render_combined(self, workflow: GeneratedWorkflow, options: FormattingOptions,
                        analysis: Optional[DependencyAnalysis] = None) -> str:
        parts = [
            self.render_roadmap(workflow, options, analysis),
            self.render_tasks(workflow, options, analysis),
            self.render_detailed(workflow, options, analysis),
            "## Machine-Readable Workflow\n\n```json\n"
            + self.render_json(workflow, options, analysis)
            + "\n```",
        ]
        return "\n\n".join(part.rstrip() for part in parts) + "\n"


def parse_workflow_json(content: str) -> GeneratedWorkflow:
    """Rebuild a workflow from the JSON format."""
    data = json.loads(content)
    if "workflow" in data and "phases" not in data:
        data = data["workflow"]
    return GeneratedWorkflow.from_dict(data)
