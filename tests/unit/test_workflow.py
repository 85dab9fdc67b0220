"""Unit tests for workflow management.

This module tests the WorkflowManager facade: the planning steps it
exposes, its in-process registry and its error responses.
"""

import json

import pytest
from unittest.mock import patch

from workflow_planner.config import PlannerSettings
from workflow_planner.identifiers import SequentialIdGenerator
from workflow_planner.models import OutputFormat, Strategy
from workflow_planner.workflow import WorkflowManager


@pytest.fixture
def manager():
    return WorkflowManager(PlannerSettings(deterministic_ids=True))


@pytest.fixture
def generated(manager, sample_document):
    return manager.generate_workflow(sample_document)


class TestWorkflowManagerInitialization:
    """Test cases for WorkflowManager initialization."""

    def test_deterministic_ids_setting(self):
        """Test that the deterministic_ids setting selects sequential ids."""
        manager = WorkflowManager(PlannerSettings(deterministic_ids=True))

        assert isinstance(manager.id_generator, SequentialIdGenerator)

    def test_explicit_id_generator(self):
        generator = SequentialIdGenerator()

        manager = WorkflowManager(id_generator=generator)

        assert manager.id_generator is generator
        assert manager.orchestrator.id_generator is generator

    def test_gate_timeout_scale_is_passed_on(self):
        manager = WorkflowManager(PlannerSettings(gate_timeout_scale=0.5))

        assert manager.validator.timeout_scale == 0.5


class TestRequirementExtraction:
    """Test cases for extract_requirements."""

    def test_extract_requirements(self, manager, sample_document):
        """Test extracting requirements from a document."""
        result = manager.extract_requirements(sample_document)

        assert result["requirement_count"] == 7
        assert result["next_suggested_step"] == "generate_workflow"
        assert "Extracted 7 requirements" in result["message"]
        assert result["extraction"]["metadata"]["title"] == "User Authentication"

    def test_extract_requirements_failure(self, manager):
        """Test that extractor failures become error responses."""
        with patch.object(manager.extractor, "extract", side_effect=RuntimeError("parser exploded")):
            result = manager.extract_requirements("# Doc")

        assert "parser exploded" in result["error"]
        assert result["next_suggested_step"] == "extract_requirements"


class TestWorkflowGeneration:
    """Test cases for generate_workflow."""

    def test_generate_workflow(self, generated):
        """Test successful workflow generation."""
        assert generated["workflow_id"] == "workflow-1"
        assert generated["format"] == "roadmap"
        assert generated["content"].startswith("# User Authentication - Implementation Roadmap")
        assert generated["summary"]["phases"] == 4
        assert generated["next_suggested_step"] == "validate_workflow"

    def test_generate_with_overrides(self, manager, sample_document):
        result = manager.generate_workflow(
            sample_document,
            strategy="mvp",
            persona="devops",
            output_format="json",
            tool_providers=["playwright"],
            options={"include_risks": False},
        )

        workflow = result["workflow"]
        assert workflow["strategy"] == "mvp"
        assert workflow["primary_persona"] == "devops"
        assert workflow["risks"] is None
        assert json.loads(result["content"])["id"] == result["workflow_id"]
        servers = workflow["tool_plan"]["servers"]
        assert any(s["provider"] == "browser-testing" and s["requested"] for s in servers)

    def test_unknown_strategy_falls_back(self, manager, sample_document):
        result = manager.generate_workflow(sample_document, strategy="waterfall")

        assert result["workflow"]["strategy"] == "systematic"

    def test_settings_supply_defaults(self, sample_document):
        manager = WorkflowManager(PlannerSettings(
            strategy=Strategy.AGILE, output_format=OutputFormat.TASKS, deterministic_ids=True,
        ))

        result = manager.generate_workflow(sample_document)

        assert result["workflow"]["strategy"] == "agile"
        assert result["format"] == "tasks"

    def test_generate_workflow_failure(self, manager, sample_document):
        """Test that generation failures become error responses."""
        with patch.object(manager.orchestrator, "build", side_effect=ValueError("bad input")):
            result = manager.generate_workflow(sample_document)

        assert result["workflow_id"] is None
        assert "bad input" in result["error"]
        assert manager.list_workflows()["count"] == 0


class TestRegistry:
    """Test cases for the in-process workflow registry."""

    def test_get_and_list(self, manager, generated):
        workflow_id = generated["workflow_id"]

        fetched = manager.get_workflow(workflow_id)
        listing = manager.list_workflows()

        assert fetched["workflow"]["id"] == workflow_id
        assert fetched["options"]["strategy"] == "systematic"
        assert fetched["quality_report"] is None
        assert listing["count"] == 1
        assert listing["workflows"][0]["workflow_id"] == workflow_id

    @pytest.mark.parametrize("operation", [
        "get_workflow",
        "analyze_dependencies",
        "validate_workflow",
        "format_workflow",
        "remove_workflow",
    ])
    def test_unknown_workflow(self, manager, operation):
        """Test that every lookup reports unknown ids the same way."""
        result = getattr(manager, operation)("workflow-404")

        assert result["error"] == "Workflow 'workflow-404' not found"
        assert result["next_suggested_step"] == "generate_workflow"
        assert operation in result["message"]

    def test_remove_workflow(self, manager, generated):
        workflow_id = generated["workflow_id"]

        result = manager.remove_workflow(workflow_id)

        assert result["removed"] is True
        assert result["next_suggested_step"] == "list_workflows"
        assert manager.list_workflows()["count"] == 0
        assert "error" in manager.get_workflow(workflow_id)

    def test_registry_evicts_least_recently_used(self, sample_document):
        """Test that the registry stays within max_workflows, keeping recently used workflows."""
        manager = WorkflowManager(PlannerSettings(deterministic_ids=True, max_workflows=2))
        first = manager.generate_workflow(sample_document)["workflow_id"]
        second = manager.generate_workflow(sample_document)["workflow_id"]

        manager.get_workflow(first)
        third = manager.generate_workflow(sample_document)["workflow_id"]

        listing = manager.list_workflows()
        assert listing["limit"] == 2
        assert [w["workflow_id"] for w in listing["workflows"]] == [first, third]
        assert manager.get_workflow(second)["error"] == f"Workflow '{second}' not found"

    def test_unbounded_registry(self, sample_document):
        manager = WorkflowManager(PlannerSettings(deterministic_ids=True, max_workflows=0))

        for _ in range(3):
            manager.generate_workflow(sample_document)

        assert manager.list_workflows()["count"] == 3
        assert manager.list_workflows()["limit"] is None

    def test_import_round_trip(self, manager, generated):
        content = manager.format_workflow(generated["workflow_id"], "json")["content"]
        other = WorkflowManager(PlannerSettings(deterministic_ids=True))

        result = other.import_workflow(content)

        assert result["workflow_id"] == generated["workflow_id"]
        assert result["summary"]["tasks"] == generated["summary"]["tasks"]
        assert other.analyze_dependencies(result["workflow_id"])["analysis"]["critical_path"]

    def test_import_garbage(self, manager):
        result = manager.import_workflow("{not json")

        assert "Failed to import workflow" in result["error"]
        assert result["next_suggested_step"] == "format_workflow"


class TestAnalysisAndValidation:
    """Test cases for analyze_dependencies and validate_workflow."""

    def test_analyze_dependencies(self, manager, generated):
        result = manager.analyze_dependencies(generated["workflow_id"])

        analysis = result["analysis"]
        assert analysis["critical_path"]
        assert result["critical_path_hours"] == analysis["project_duration"]
        assert result["has_cycles"] is False

    def test_validate_workflow_stores_report(self, manager, generated):
        workflow_id = generated["workflow_id"]

        result = manager.validate_workflow(workflow_id, "strict")

        report = result["quality_report"]
        assert report["profile"] == "strict"
        assert len(report["gate_results"]) == 6
        expected = "format_workflow" if result["acceptable"] else "generate_workflow"
        assert result["next_suggested_step"] == expected
        assert manager.get_workflow(workflow_id)["quality_report"]["profile"] == "strict"
        assert manager.list_workflows()["workflows"][0]["quality_score"] == report["overall_score"]

    def test_validate_uses_settings_profile(self, sample_document):
        manager = WorkflowManager(PlannerSettings(quality_profile="enterprise", deterministic_ids=True))
        workflow_id = manager.generate_workflow(sample_document)["workflow_id"]

        report = manager.validate_workflow(workflow_id)["quality_report"]

        assert report["profile"] == "enterprise"
        assert len(report["gate_results"]) == 7


class TestFormatting:
    """Test cases for format_workflow."""

    def test_format_workflow(self, manager, generated):
        result = manager.format_workflow(generated["workflow_id"], "detailed", {"include_persona_guidance": False})

        assert result["format"] == "detailed"
        assert "Detailed Implementation Guide" in result["content"]
        assert "**Implementation Approach**" not in result["content"]
        assert result["metadata"]["workflow_id"] == generated["workflow_id"]

    def test_format_unknown_falls_back(self, manager, generated):
        result = manager.format_workflow(generated["workflow_id"], "pdf")

        assert result["format"] == "roadmap"


class TestGuidance:
    """Test cases for persona listing and the planning guide."""

    def test_list_personas(self, manager):
        result = manager.list_personas()

        assert result["count"] == 11
        frontend = next(p for p in result["personas"] if p["persona"] == "frontend")
        assert frontend["guidance"]

    def test_get_planning_guide(self, manager):
        """Test getting the planning guide."""
        with patch("workflow_planner.workflow.observability_hooks") as hooks:
            guide = manager.get_planning_guide()

        hooks.log_planning_event.assert_called_once_with("planning_guide_requested")
        assert [step["name"] for step in guide["steps"]][:2] == ["extract_requirements", "generate_workflow"]
        assert set(guide["strategies"]) == {"systematic", "agile", "mvp"}
        assert guide["quality_profiles"] == ["enterprise", "standard", "strict"]
