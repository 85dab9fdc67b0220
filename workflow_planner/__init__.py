"""Workflow planner library exports."""

from .config import PlannerSettings
from .dependencies import DependencyAnalysis, DependencyAnalyzer, analyze_dependencies
from .extractor import RequirementExtractor, extract_requirements
from .formatters import FormattedOutput, FormattingOptions, WorkflowFormatter, parse_workflow_json
from .identifiers import RandomIdGenerator, SequentialIdGenerator
from .models import (
    GeneratedWorkflow,
    OutputFormat,
    Persona,
    PlanningError,
    Strategy,
    ToolProvider,
    WorkflowNotFoundError,
)
from .orchestrator import GenerationOptions, WorkflowOrchestrator, generate_workflow
from .pipeline import PipelineResult, PlanningPipeline
from .quality_gates import QualityGateValidator, QualityReport, ValidationContext, validate_workflow
from .tool_planner import ToolOrchestrationPlan, ToolOrchestrationPlanner
from .workflow import WorkflowManager

__all__ = [
    "PlannerSettings",
    "DependencyAnalysis",
    "DependencyAnalyzer",
    "analyze_dependencies",
    "RequirementExtractor",
    "extract_requirements",
    "FormattedOutput",
    "FormattingOptions",
    "WorkflowFormatter",
    "parse_workflow_json",
    "RandomIdGenerator",
    "SequentialIdGenerator",
    "GeneratedWorkflow",
    "OutputFormat",
    "Persona",
    "PlanningError",
    "Strategy",
    "ToolProvider",
    "WorkflowNotFoundError",
    "GenerationOptions",
    "WorkflowOrchestrator",
    "generate_workflow",
    "PipelineResult",
    "PlanningPipeline",
    "QualityGateValidator",
    "QualityReport",
    "ValidationContext",
    "validate_workflow",
    "ToolOrchestrationPlan",
    "ToolOrchestrationPlanner",
    "WorkflowManager",
]
