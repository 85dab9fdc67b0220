"""Unit tests for workflow planner models.

This module tests the core data structures and their validation,
serialization, and helper methods.
"""

import pytest

from workflow_planner.models import (
    PLANNING_STEPS,
    Assumption,
    Complexity,
    Constraint,
    ConstraintType,
    DependencyMap,
    ExternalDependency,
    GeneratedWorkflow,
    InternalDependency,
    Persona,
    PlanningError,
    Priority,
    Requirement,
    RequirementSet,
    RiskLevel,
    Strategy,
    TaskCategory,
    ToolProvider,
    WorkflowNotFoundError,
    WorkflowTask,
    coerce_enum,
)


class TestCoerceEnum:
    """Test cases for loose enum coercion."""

    def test_coerce_enum(self):
        """Test coercion of members, strings and unknown values."""
        assert coerce_enum(Persona, Persona.QA) is Persona.QA
        assert coerce_enum(Persona, " Frontend ") is Persona.FRONTEND
        assert coerce_enum(Strategy, "waterfall") is None
        assert coerce_enum(Strategy, "waterfall", Strategy.SYSTEMATIC) is Strategy.SYSTEMATIC
        assert coerce_enum(Priority, 3, Priority.LOW) is Priority.LOW


class TestRequirementSet:
    """Test cases for the RequirementSet model."""

    def test_requirement_count_and_text(self):
        requirements = RequirementSet(
            functional=(Requirement("r1", "Export CSV", Priority.HIGH, "Reports", acceptance_criteria=("Opens in Excel",)),),
            constraints=(Constraint("c1", ConstraintType.RESOURCE, "Two engineers", RiskLevel.MEDIUM),),
        )

        assert requirements.requirement_count == 1
        assert not requirements.is_empty()
        assert requirements.combined_text() == "export csv opens in excel"

    def test_serialization_round_trip(self):
        """Test to_dict/from_dict on a populated set."""
        requirements = RequirementSet(
            functional=(Requirement("r1", "Export CSV", Priority.HIGH, "Reports"),),
            assumptions=(Assumption("a1", "Users have accounts", True, Persona.BACKEND),),
        )

        restored = RequirementSet.from_dict(requirements.to_dict())

        assert restored == requirements

    def test_from_dict_defaults_unknown_enums(self):
        requirement = Requirement.from_dict({"id": "r1", "content": "x", "priority": "urgent"})

        assert requirement.priority is Priority.MEDIUM
        assert requirement.source == ""


class TestWorkflowTask:
    """Test cases for the WorkflowTask model."""

    def test_task_validation(self):
        """Test task validation catches missing fields and self dependencies."""
        task = WorkflowTask(
            id="task-1",
            title="",
            description="",
            persona=Persona.BACKEND,
            complexity=Complexity.SIMPLE,
            estimated_hours=0,
            dependencies=["task-1"],
        )

        issues = task.validate()

        assert "Task title is required" in issues
        assert "Estimated hours must be positive" in issues
        assert "Task cannot depend on itself" in issues

    def test_task_from_dict_drops_unknown_providers(self):
        task = WorkflowTask.from_dict({
            "id": "task-1",
            "title": "Build",
            "tool_providers": ["documentation", "crystal-ball"],
            "category": "testing",
        })

        assert task.tool_providers == [ToolProvider.DOCUMENTATION]
        assert task.category is TaskCategory.TESTING
        assert task.persona is Persona.ARCHITECT


class TestGeneratedWorkflow:
    """Test cases for the GeneratedWorkflow aggregate."""

    def _workflow(self, phases, hours):
        return GeneratedWorkflow(
            id="workflow-1",
            title="Reports",
            strategy=Strategy.MVP,
            primary_persona=Persona.BACKEND,
            phases=phases,
            estimated_duration="2 days",
            estimated_hours=hours,
        )

    def test_validate_detects_structural_problems(self, make_task, make_phase):
        phases = [make_phase("p1", [make_task("t1"), make_task("t1", dependencies=["ghost"])])]

        issues = self._workflow(phases, 99).validate()

        assert "Duplicate task id: t1" in issues
        assert "t1: unknown dependency ghost" in issues
        assert "Estimated hours do not match the sum of task hours" in issues

    def test_find_task(self, make_task, make_phase):
        workflow = self._workflow([make_phase("p1", [make_task("t1"), make_task("t2")])], 16)

        assert workflow.find_task("t2").id == "t2"
        assert workflow.find_task("t9") is None
        assert workflow.validate() == []

    def test_optional_attachments_serialize_as_none(self, make_task, make_phase):
        data = self._workflow([make_phase("p1", [make_task("t1")])], 8).to_dict()

        assert data["dependencies"] is None
        assert data["risks"] is None
        assert data["parallel_work_streams"] is None
        assert data["tool_plan"] is None

    def test_round_trip_with_dependency_map(self, make_task, make_phase):
        workflow = self._workflow([make_phase("p1", [make_task("t1")])], 8)
        workflow.dependencies = DependencyMap(
            internal=[InternalDependency("t0", "t1")],
            external=[ExternalDependency("Payment gateway", "api", True)],
        )
        workflow.risks = []

        restored = GeneratedWorkflow.from_dict(workflow.to_dict())

        assert restored.to_dict() == workflow.to_dict()
        assert restored.risks == []


class TestErrors:
    """Test cases for planner exceptions."""

    def test_workflow_not_found(self):
        error = WorkflowNotFoundError("workflow-9")

        assert isinstance(error, PlanningError)
        assert isinstance(error, KeyError)
        assert error.workflow_id == "workflow-9"

        with pytest.raises(KeyError):
            raise error


class TestPlanningSteps:
    """Test cases for the planning step definitions."""

    def test_step_order_and_prerequisites(self):
        names = [step.name for step in PLANNING_STEPS]

        assert names[0] == "extract_requirements"
        assert names[1] == "generate_workflow"
        validate = next(step for step in PLANNING_STEPS if step.name == "validate_workflow")
        assert not validate.can_execute([])
        assert validate.can_execute(["generate_workflow"])
        assert validate.to_dict()["tool"] == "validate_workflow"
