"""Workflow management for the workflow planner.

This module provides the host-facing facade. It runs the planning
stages, keeps generated workflows in an in-process registry and
returns JSON-friendly dictionaries with hints about the next step.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .config import PlannerSettings
from .dependencies import DependencyAnalysis, DependencyAnalyzer
from .extractor import DocumentInput, RequirementExtractor
from .formatters import FormattingOptions, WorkflowFormatter, parse_workflow_json
from .identifiers import IdGenerator, SequentialIdGenerator, default_id_generator
from .models import (
    PLANNING_STEPS,
    ExtractionResult,
    GeneratedWorkflow,
    Persona,
    WorkflowNotFoundError,
)
from .orchestrator import GenerationOptions, WorkflowOrchestrator
from .personas import PERSONA_TEMPLATES, persona_guidance
from .planner_logging import (
    log_error_with_context,
    log_operation,
    log_performance,
    observability_hooks,
)
from .quality_gates import QUALITY_PROFILES, QualityGateValidator, QualityReport, ValidationContext
from .strategies import STRATEGY_TEMPLATES

logger = logging.getLogger("workflow_planner.workflow")


@dataclass(slots=True)
class WorkflowRecord:
    """A generated workflow together with the data it was built from."""

    workflow: GeneratedWorkflow
    analysis: DependencyAnalysis
    extraction: Optional[ExtractionResult] = None
    options: Optional[GenerationOptions] = None
    report: Optional[QualityReport] = None

    def summary(self) -> Dict[str, Any]:
        workflow = self.workflow
        return {
            "workflow_id": workflow.id,
            "title": workflow.title,
            "strategy": workflow.strategy.value,
            "primary_persona": workflow.primary_persona.value,
            "phases": len(workflow.phases),
            "tasks": len(workflow.all_tasks()),
            "estimated_hours": workflow.estimated_hours,
            "estimated_duration": workflow.estimated_duration,
            "created_at": workflow.created_at,
            "quality_score": self.report.overall_score if self.report else None,
        }


class WorkflowManager:
    """Manages the planning flow for MCP hosts."""

    def __init__(self, settings: Optional[PlannerSettings] = None, id_generator: Optional[IdGenerator] = None):
        """Initialize the manager and its planning components."""
        self.settings = settings or PlannerSettings()
        if id_generator is None:
            id_generator = SequentialIdGenerator() if self.settings.deterministic_ids else default_id_generator
        self.id_generator = id_generator

        self.extractor = RequirementExtractor(id_generator)
        self.analyzer = DependencyAnalyzer()
        self.orchestrator = WorkflowOrchestrator(
            id_generator=id_generator,
            extractor=self.extractor,
            analyzer=self.analyzer,
        )
        self.validator = QualityGateValidator(timeout_scale=self.settings.gate_timeout_scale)
        self.formatter = WorkflowFormatter()

        self._records: OrderedDict[str, WorkflowRecord] = OrderedDict()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def _store(self, record: WorkflowRecord) -> None:
        """Register ``record``, evicting least recently used workflows past the limit."""
        limit = self.settings.max_workflows
        with self._lock:
            self._records[record.workflow.id] = record
            self._records.move_to_end(record.workflow.id)
            evicted = []
            while limit and len(self._records) > limit:
                workflow_id, _ = self._records.popitem(last=False)
                evicted.append(workflow_id)
        for workflow_id in evicted:
            logger.info(f"Evicted workflow {workflow_id} from the registry (limit {limit})")

    def _lookup(self, workflow_id: str) -> WorkflowRecord:
        with self._lock:
            record = self._records.get(workflow_id)
            if record is not None:
                self._records.move_to_end(workflow_id)
        if record is None:
            raise WorkflowNotFoundError(workflow_id)
        return record

    def _not_found(self, workflow_id: str, operation: str) -> Dict[str, Any]:
        return {
            "error": f"Workflow '{workflow_id}' not found",
            "suggestion": "Call list_workflows to see the registered workflow ids",
            "next_suggested_step": "generate_workflow",
            "workflow_tip": "Generate a workflow first, then pass its workflow_id",
            "message": f"Error: unknown workflow for {operation}",
        }

    # ------------------------------------------------------------------
    # Requirements
    # ------------------------------------------------------------------

    @log_performance("manager_extract_requirements")
    def extract_requirements(self, document: DocumentInput) -> Dict[str, Any]:
        """Extract a requirement set from a document."""
        try:
            extraction = self.extractor.extract(document)
            requirements = extraction.requirements
            return {
                "extraction": extraction.to_dict(),
                "requirement_count": requirements.requirement_count,
                "recommended_persona": extraction.recommended_persona.value,
                "complexity": extraction.complexity.value,
                "next_suggested_step": "generate_workflow",
                "workflow_tip": "Next: Generate a workflow from the same document with generate_workflow",
                "message": (
                    f"Extracted {requirements.requirement_count} requirements, "
                    f"{len(requirements.constraints)} constraints and "
                    f"{len(requirements.assumptions)} assumptions."
                ),
            }
        except Exception as e:
            log_error_with_context(e, {"operation": "extract_requirements"})
            return {
                "error": f"Failed to extract requirements: {e}",
                "suggestion": "Pass the document as plain text or as (title, content) sections",
                "next_suggested_step": "extract_requirements",
                "message": f"Error: {e}",
            }

    # ------------------------------------------------------------------
    # Workflow generation
    # ------------------------------------------------------------------

    def build_options(self, options: Optional[Dict[str, Any]] = None, **overrides) -> GenerationOptions:
        """Merge settings defaults, an options mapping and keyword overrides."""
        values: Dict[str, Any] = {
            "strategy": self.settings.strategy,
            "output_format": self.settings.output_format,
        }
        values.update(options or {})
        values.update({key: value for key, value in overrides.items() if value is not None})
        return GenerationOptions.from_dict(values)

    @log_performance("manager_generate_workflow")
    def generate_workflow(
        self,
        document: DocumentInput,
        strategy: Optional[str] = None,
        persona: Optional[str] = None,
        output_format: Optional[str] = None,
        tool_providers: Optional[Sequence[str]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Generate a workflow and register it for the follow-up steps."""
        try:
            generation_options = self.build_options(
                options,
                strategy=strategy,
                persona=persona,
                output_format=output_format,
                tool_providers=list(tool_providers) if tool_providers else None,
            )
            result = self.orchestrator.build(document, generation_options)
            record = WorkflowRecord(
                workflow=result.workflow,
                analysis=result.analysis,
                extraction=result.extraction,
                options=generation_options,
            )
            self._store(record)

            output = self.formatter.format(
                result.workflow,
                generation_options.output_format,
                result.analysis,
                FormattingOptions(include_estimates=generation_options.include_estimates),
            )
            workflow = result.workflow
            return {
                "workflow_id": workflow.id,
                "workflow": workflow.to_dict(),
                "summary": record.summary(),
                "content": output.content,
                "format": output.format.value,
                "next_suggested_step": "validate_workflow",
                "workflow_tip": f"Next: Run the quality gates with validate_workflow for '{workflow.id}'",
                "message": (
                    f"Generated {workflow.strategy.value} workflow with {len(workflow.phases)} phases "
                    f"and {len(workflow.all_tasks())} tasks ({workflow.estimated_duration})."
                ),
            }
        except Exception as e:
            log_error_with_context(e, {"operation": "generate_workflow", "strategy": strategy})
            return {
                "error": f"Failed to generate workflow: {e}",
                "suggestion": "Check the document and the strategy, persona and format options",
                "next_suggested_step": "generate_workflow",
                "workflow_id": None,
                "message": f"Error: {e}",
            }

    def import_workflow(self, content: str) -> Dict[str, Any]:
        """Register a workflow previously rendered in the JSON format."""
        try:
            workflow = parse_workflow_json(content)
            analysis = self.analyzer.analyze(workflow.phases)
            record = WorkflowRecord(workflow=workflow, analysis=analysis)
            self._store(record)
            logger.info(f"Imported workflow {workflow.id} with {len(workflow.all_tasks())} tasks")
            return {
                "workflow_id": workflow.id,
                "summary": record.summary(),
                "next_suggested_step": "analyze_dependencies",
                "workflow_tip": "Imported workflows can be analyzed, validated and formatted",
                "message": f"Imported workflow '{workflow.title}'.",
            }
        except Exception as e:
            log_error_with_context(e, {"operation": "import_workflow", "content_length": len(content or "")})
            return {
                "error": f"Failed to import workflow: {e}",
                "suggestion": "Pass the output of format_workflow with output_format='json'",
                "next_suggested_step": "format_workflow",
                "message": f"Error: {e}",
            }

    def get_workflow(self, workflow_id: str) -> Dict[str, Any]:
        """Return a registered workflow."""
        try:
            record = self._lookup(workflow_id)
        except WorkflowNotFoundError:
            return self._not_found(workflow_id, "get_workflow")

        return {
            "workflow": record.workflow.to_dict(),
            "summary": record.summary(),
            "options": record.options.to_dict() if record.options else None,
            "quality_report": record.report.to_dict() if record.report else None,
        }

    def list_workflows(self) -> Dict[str, Any]:
        """Enumerate registered workflows, least recently used first."""
        with self._lock:
            records = list(self._records.values())
        return {
            "workflows": [record.summary() for record in records],
            "count": len(records),
            "limit": self.settings.max_workflows or None,
        }

    def remove_workflow(self, workflow_id: str) -> Dict[str, Any]:
        """Drop a workflow from the registry."""
        with self._lock:
            record = self._records.pop(workflow_id, None)
        if record is None:
            return self._not_found(workflow_id, "remove_workflow")

        logger.info(f"Removed workflow {workflow_id}")
        return {
            "workflow_id": workflow_id,
            "removed": True,
            "next_suggested_step": "list_workflows",
            "workflow_tip": "Export with format_workflow(output_format='json') before removing to keep a copy",
            "message": f"Removed workflow '{record.workflow.title}'.",
        }

    # ------------------------------------------------------------------
    # Analysis and validation
    # ------------------------------------------------------------------

    def analyze_dependencies(self, workflow_id: str) -> Dict[str, Any]:
        """Return the critical path, parallel opportunities, bottlenecks and risk areas."""
        try:
            record = self._lookup(workflow_id)
        except WorkflowNotFoundError:
            return self._not_found(workflow_id, "analyze_dependencies")

        analysis = record.analysis
        critical_hours = sum(
            analysis.graph.nodes[task_id].duration for task_id in analysis.critical_path
        )
        return {
            "workflow_id": workflow_id,
            "analysis": analysis.to_dict(),
            "critical_path_hours": critical_hours,
            "has_cycles": analysis.has_cycles,
            "next_suggested_step": "validate_workflow",
            "workflow_tip": "Parallel opportunities show which tasks can be staffed at the same time",
            "message": (
                f"Critical path has {len(analysis.critical_path)} tasks ({critical_hours}h); "
                f"{len(analysis.parallel_opportunities)} parallel opportunities, "
                f"{len(analysis.bottlenecks)} bottlenecks."
            ),
        }

    @log_performance("manager_validate_workflow")
    def validate_workflow(self, workflow_id: str, profile: Optional[str] = None) -> Dict[str, Any]:
        """Run the quality gates of ``profile`` against a registered workflow."""
        profile = profile or self.settings.quality_profile
        try:
            record = self._lookup(workflow_id)
        except WorkflowNotFoundError:
            return self._not_found(workflow_id, "validate_workflow")

        try:
            with log_operation("manager_validate_workflow", workflow_id=workflow_id, profile=profile):
                if record.extraction is not None:
                    context = ValidationContext.from_extraction(record.extraction, record.analysis)
                else:
                    context = ValidationContext(analysis=record.analysis)
                report = self.validator.validate(record.workflow, context, profile)
                record.report = report

            if report.acceptable:
                next_step, tip = "format_workflow", "Next: Render the plan for the team with format_workflow"
            else:
                next_step, tip = "generate_workflow", "Address the critical issues and regenerate the workflow"
            return {
                "workflow_id": workflow_id,
                "quality_report": report.to_dict(),
                "acceptable": report.acceptable,
                "next_suggested_step": next_step,
                "workflow_tip": tip,
                "message": (
                    f"Quality score {report.overall_score} with "
                    f"{report.summary.passed_gates}/{report.summary.total_gates} gates passed."
                ),
            }
        except Exception as e:
            log_error_with_context(e, {"operation": "validate_workflow", "workflow_id": workflow_id, "profile": profile})
            return {
                "error": f"Failed to validate workflow: {e}",
                "suggestion": "Use one of the standard, strict or enterprise profiles",
                "next_suggested_step": "validate_workflow",
                "message": f"Error: {e}",
            }

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------

    def format_workflow(
        self,
        workflow_id: str,
        output_format: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Render a registered workflow."""
        try:
            record = self._lookup(workflow_id)
        except WorkflowNotFoundError:
            return self._not_found(workflow_id, "format_workflow")

        try:
            output = self.formatter.format(
                record.workflow,
                output_format or self.settings.output_format,
                record.analysis,
                FormattingOptions.from_dict(options),
            )
            return {
                **output.to_dict(),
                "next_suggested_step": "get_planning_guide",
                "workflow_tip": "Use output_format='json' to export the plan for later import",
                "message": f"Rendered workflow as {output.format.value}.",
            }
        except Exception as e:
            log_error_with_context(e, {"operation": "format_workflow", "workflow_id": workflow_id})
            return {
                "error": f"Failed to format workflow: {e}",
                "suggestion": "Use one of roadmap, tasks, detailed, json or combined",
                "next_suggested_step": "format_workflow",
                "message": f"Error: {e}",
            }

    # ------------------------------------------------------------------
    # Guidance
    # ------------------------------------------------------------------

    def list_personas(self) -> Dict[str, Any]:
        personas: List[Dict[str, Any]] = []
        for persona in Persona:
            template = PERSONA_TEMPLATES[persona]
            personas.append({**template.to_dict(), "guidance": list(persona_guidance(persona))})
        return {"personas": personas, "count": len(personas)}

    def get_planning_guide(self) -> Dict[str, Any]:
        """Get guidance on the recommended planning flow."""
        observability_hooks.log_planning_event("planning_guide_requested")
        return {
            "workflow_overview": "Requirements-to-plan flow in recommended order",
            "steps": [step.to_dict() for step in PLANNING_STEPS],
            "strategies": {
                template.strategy.value: template.description for template in STRATEGY_TEMPLATES.values()
            },
            "quality_profiles": sorted(QUALITY_PROFILES),
            "tips": [
                "Review the recommended persona before generating; pass persona to override it",
                "Validate with the strict profile before committing to dates",
                "Export with the json format to keep a copy of the plan",
            ],
        }
