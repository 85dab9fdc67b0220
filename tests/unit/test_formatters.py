"""Unit tests for workflow formatting.

This module tests every output format, format fallback, formatting
options, metadata and re-import of the JSON format.
"""

import json

import pytest

from workflow_planner.formatters import (
    FormattingOptions,
    WorkflowFormatter,
    complexity_bucket,
    format_duration,
    parse_workflow_json,
    risk_level,
)
from workflow_planner.identifiers import SequentialIdGenerator
from workflow_planner.models import OutputFormat, Persona, RiskAssessment, RiskLevel, RiskType
from workflow_planner.orchestrator import WorkflowOrchestrator


@pytest.fixture
def generated(sample_document):
    return WorkflowOrchestrator(id_generator=SequentialIdGenerator()).build(sample_document)


@pytest.fixture
def formatter():
    return WorkflowFormatter()


def _risk(probability, impact):
    return RiskAssessment("r1", RiskType.TECHNICAL, probability, impact, "Risky", "Be careful", Persona.ARCHITECT)


class TestFormats:
    """Test cases for the individual output formats."""

    def test_roadmap(self, formatter, generated):
        """Test the roadmap layout."""
        output = formatter.format(generated.workflow, "roadmap", generated.analysis)

        assert output.format is OutputFormat.ROADMAP
        assert output.content.startswith("# User Authentication - Implementation Roadmap")
        assert "**Strategy**: SYSTEMATIC" in output.content
        assert "## Phase 1: Requirements Analysis" in output.content
        assert "## 🎯 Critical Path" in output.content

    def test_tasks_mark_critical_path(self, formatter, generated):
        """Test that the task breakdown flags critical tasks."""
        output = formatter.format(generated.workflow, OutputFormat.TASKS, generated.analysis)

        assert output.content.startswith("# User Authentication - Task Breakdown")
        assert " 🎯" in output.content
        assert "**Acceptance Criteria**:" in output.content

    def test_detailed_guide(self, formatter, generated):
        output = formatter.format(generated.workflow, "detailed", generated.analysis)

        assert "## 📋 Executive Summary" in output.content
        assert "## 🔗 Dependency Analysis" in output.content
        assert "### Task 1.1:" in output.content
        assert "**Implementation Approach**:" in output.content

    def test_json(self, formatter, generated):
        output = formatter.format(generated.workflow, "json", generated.analysis)

        data = json.loads(output.content)
        assert data["id"] == generated.workflow.id
        assert data["analysis"]["critical_path"] == generated.analysis.critical_path

    def test_combined_holds_every_view(self, formatter, generated):
        """Test that the combined document ends with a parseable JSON block."""
        content = formatter.format(generated.workflow, "combined", generated.analysis).content

        assert "Implementation Roadmap" in content
        assert "Task Breakdown" in content
        assert "Detailed Implementation Guide" in content
        assert "## Machine-Readable Workflow" in content
        block = content.split("```json\n", 1)[1].rsplit("\n```", 1)[0]
        assert json.loads(block)["id"] == generated.workflow.id
        parsed = parse_workflow_json(block)
        assert len(parsed.all_tasks()) == len(generated.workflow.all_tasks())
        assert parsed.estimated_hours == generated.workflow.estimated_hours

    def test_unknown_format_falls_back_to_roadmap(self, formatter, generated):
        """Test that an unknown format renders the roadmap instead of failing."""
        output = formatter.format(generated.workflow, "pdf")

        assert output.format is OutputFormat.ROADMAP
        assert "Implementation Roadmap" in output.content


class TestOptions:
    """Test cases for formatting options."""

    def test_estimates_can_be_hidden(self, formatter, generated):
        options = FormattingOptions(include_estimates=False)

        content = formatter.format(generated.workflow, "tasks", generated.analysis, options).content

        assert "**Estimated Time**" not in content

    def test_options_from_loose_dict(self):
        options = FormattingOptions.from_dict({"include_risks": False, "include_tools": None})

        assert options.include_risks is False
        assert options.include_tools is True

    def test_format_multiple_keeps_order(self, formatter, generated):
        outputs = formatter.format_multiple(generated.workflow, ["json", "tasks", "roadmap"])

        assert [o.format for o in outputs] == [OutputFormat.JSON, OutputFormat.TASKS, OutputFormat.ROADMAP]

    def test_formatting_does_not_mutate(self, formatter, generated):
        """Test that rendering leaves the workflow untouched."""
        before = generated.workflow.to_dict()

        for output_format in OutputFormat:
            formatter.format(generated.workflow, output_format, generated.analysis)

        assert generated.workflow.to_dict() == before


class TestMetadata:
    """Test cases for output metadata."""

    def test_metadata_totals(self, formatter, generated):
        workflow = generated.workflow

        metadata = formatter.format(workflow, "roadmap").metadata

        assert metadata["workflow_id"] == workflow.id
        assert metadata["total_phases"] == len(workflow.phases)
        assert metadata["total_tasks"] == len(workflow.all_tasks())
        assert metadata["total_hours"] == workflow.estimated_hours
        assert metadata["primary_persona"] == workflow.primary_persona.value

    @pytest.mark.parametrize("tasks,phases,expected", [
        (5, 2, "simple"),
        (20, 4, "moderate"),
        (30, 4, "complex"),
    ])
    def test_complexity_bucket(self, tasks, phases, expected):
        assert complexity_bucket(tasks, phases) == expected

    def test_risk_level(self):
        assert risk_level(None) == "low"
        assert risk_level([_risk(RiskLevel.LOW, RiskLevel.LOW)]) == "low"
        assert risk_level([_risk(RiskLevel.HIGH, RiskLevel.HIGH)]) == "high"

    @pytest.mark.parametrize("hours,expected", [
        (4, "4h"),
        (8, "1d"),
        (32, "4d"),
        (40, "1w"),
        (80, "2w"),
    ])
    def test_format_duration(self, hours, expected):
        assert format_duration(hours) == expected


class TestJsonImport:
    """Test cases for rebuilding workflows from the JSON format."""

    def test_parse_keeps_structure(self, formatter, generated):
        workflow = generated.workflow
        content = formatter.format(workflow, "json", generated.analysis).content

        parsed = parse_workflow_json(content)

        assert parsed.id == workflow.id
        assert len(parsed.phases) == len(workflow.phases)
        assert len(parsed.all_tasks()) == len(workflow.all_tasks())
        assert parsed.estimated_hours == workflow.estimated_hours
        assert parsed.tool_plan.providers == workflow.tool_plan.providers

    def test_parse_wrapped_payload(self, generated):
        content = json.dumps({"workflow": generated.workflow.to_dict()})

        assert parse_workflow_json(content).id == generated.workflow.id

    def test_parse_rejects_garbage(self):
        with pytest.raises(json.JSONDecodeError):
            parse_workflow_json("not json")
