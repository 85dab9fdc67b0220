"""End-to-end planning: extract, generate, analyze, validate and format."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .dependencies import DependencyAnalysis
from .formatters import FormattedOutput, FormattingOptions, WorkflowFormatter
from .identifiers import IdGenerator
from .models import ExtractionResult, GeneratedWorkflow
from .orchestrator import GenerationOptions, RequirementsInput, WorkflowOrchestrator
from .planner_logging import log_operation, log_performance
from .quality_gates import QualityGateValidator, QualityReport, ValidationContext

logger = logging.getLogger("workflow_planner.pipeline")


@dataclass(slots=True)
class PipelineResult:
    extraction: ExtractionResult
    workflow: GeneratedWorkflow
    analysis: DependencyAnalysis
    report: QualityReport
    output: FormattedOutput

    def to_dict(self) -> Dict[str, Any]:
        return {
            "extraction": self.extraction.to_dict(),
            "workflow": self.workflow.to_dict(),
            "analysis": self.analysis.to_dict(),
            "quality_report": self.report.to_dict(),
            "output": self.output.to_dict(),
        }


class PlanningPipeline:
    """Run every planning stage for one document."""

    def __init__(
        self,
        orchestrator: Optional[WorkflowOrchestrator] = None,
        validator: Optional[QualityGateValidator] = None,
        formatter: Optional[WorkflowFormatter] = None,
        id_generator: Optional[IdGenerator] = None,
    ):
        self.orchestrator = orchestrator or WorkflowOrchestrator(id_generator=id_generator)
        self.validator = validator or QualityGateValidator()
        self.formatter = formatter or WorkflowFormatter()

    @log_performance("planning_pipeline")
    def run(
        self,
        document: RequirementsInput,
        options: Optional[GenerationOptions] = None,
        profile: str = "standard",
        formatting: Optional[FormattingOptions] = None,
    ) -> PipelineResult:
        options = options or GenerationOptions()
        with log_operation("planning_pipeline", strategy=options.strategy.value, profile=profile):
            generated = self.orchestrator.build(document, options)
            context = ValidationContext.from_extraction(generated.extraction, generated.analysis)
            report = self.validator.validate(generated.workflow, context, profile)
            output = self.formatter.format(
                generated.workflow,
                options.output_format,
                generated.analysis,
                formatting or FormattingOptions(include_estimates=options.include_estimates),
            )

        logger.info(
            f"Pipeline finished for {generated.workflow.id}: quality {report.overall_score} "
            f"({'acceptable' if report.acceptable else 'needs work'})"
        )
        return PipelineResult(
            extraction=generated.extraction,
            workflow=generated.workflow,
            analysis=generated.analysis,
            report=report,
            output=output,
        )
