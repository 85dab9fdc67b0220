"""Unit tests for workflow generation."""

import pytest

from workflow_planner.identifiers import SequentialIdGenerator
from workflow_planner.models import (
    Complexity,
    OutputFormat,
    Persona,
    Priority,
    Requirement,
    RequirementSet,
    Strategy,
    TaskCategory,
    ToolProvider,
)
from workflow_planner.orchestrator import (
    GenerationOptions,
    WorkflowOrchestrator,
    format_duration_text,
    generate_workflow,
)


@pytest.fixture
def orchestrator():
    return WorkflowOrchestrator(id_generator=SequentialIdGenerator())


class TestGenerationOptions:
    """Test cases for option normalization."""

    def test_defaults(self):
        options = GenerationOptions.from_dict()

        assert options.strategy is Strategy.SYSTEMATIC
        assert options.output_format is OutputFormat.ROADMAP
        assert options.include_risks is True
        assert options.persona is None

    def test_unknown_values_fall_back(self):
        """Test that unknown strategy, format and persona use the defaults."""
        options = GenerationOptions.from_dict({"strategy": "waterfall", "output_format": "pdf", "persona": "wizard"})

        assert options.strategy is Strategy.SYSTEMATIC
        assert options.output_format is OutputFormat.ROADMAP
        assert options.persona is None

    def test_overrides_and_aliases(self):
        options = GenerationOptions.from_dict(
            {"strategy": "agile"}, persona="Security", tool_providers=["magic", "docs"], include_risks=False,
        )

        assert options.strategy is Strategy.AGILE
        assert options.persona is Persona.SECURITY
        assert options.tool_providers == [ToolProvider.UI_GENERATION, ToolProvider.DOCUMENTATION]
        assert options.include_risks is False


class TestStrategies:
    """Test cases for the phase layout of each strategy."""

    @pytest.mark.parametrize("strategy,phase_ids", [
        (Strategy.SYSTEMATIC, ["requirements", "architecture", "implementation", "validation"]),
        (Strategy.AGILE, ["epic-breakdown", "sprint-cycles", "release"]),
        (Strategy.MVP, ["core-definition", "rapid-development", "validation"]),
    ])
    def test_phase_layout(self, orchestrator, sample_document, strategy, phase_ids):
        workflow = orchestrator.generate(sample_document, GenerationOptions(strategy=strategy))

        assert [phase.id for phase in workflow.phases] == phase_ids
        assert workflow.strategy is strategy

    @pytest.mark.parametrize("strategy", list(Strategy))
    def test_structural_invariants(self, orchestrator, sample_document, strategy):
        """Test unique ids, known dependencies and consistent hour totals."""
        workflow = orchestrator.generate(sample_document, GenerationOptions(strategy=strategy))

        assert workflow.validate() == []
        assert workflow.estimated_hours == sum(task.estimated_hours for task in workflow.all_tasks())
        assert all(task.estimated_hours >= 1 for task in workflow.all_tasks())
        for phase in workflow.phases:
            assert all(task.phase_id == phase.id for task in phase.tasks)
            assert len(phase.risks) <= WorkflowOrchestrator.MAX_RISKS_PER_PHASE


class TestGeneration:
    """Test cases for generated content."""

    def test_empty_document_still_produces_a_plan(self, orchestrator):
        workflow = orchestrator.generate("")

        assert len(workflow.phases) >= 1
        assert all(phase.tasks for phase in workflow.phases)
        assert workflow.estimated_duration
        titles = [task.title for task in workflow.all_tasks()]
        assert "Implement core functionality" in titles

    def test_optional_attachments_can_be_disabled(self, orchestrator, sample_document):
        options = GenerationOptions(include_dependencies=False, include_risks=False, identify_parallel=False)

        workflow = orchestrator.generate(sample_document, options)

        assert workflow.dependencies is None
        assert workflow.risks is None
        assert workflow.parallel_work_streams is None
        assert workflow.tool_plan is not None

    def test_attachments_present_by_default(self, orchestrator, sample_document):
        workflow = orchestrator.generate(sample_document)

        assert workflow.dependencies is not None
        assert workflow.risks is not None
        assert workflow.parallel_work_streams is not None

    def test_persona_override(self, orchestrator, sample_document):
        workflow = orchestrator.generate(sample_document, GenerationOptions(persona=Persona.DEVOPS))

        assert workflow.primary_persona is Persona.DEVOPS

    def test_recommended_persona_by_default(self, orchestrator, sample_document):
        result = orchestrator.build(sample_document)

        assert result.workflow.primary_persona is result.extraction.recommended_persona

    def test_compliance_audit_task(self, orchestrator):
        """Test that compliance vocabulary adds an audit task."""
        workflow = orchestrator.generate("# Payments\n- Store card data per PCI rules")

        audit = next(task for task in workflow.all_tasks() if task.title == "Compliance audit")
        assert audit.persona is Persona.SECURITY
        assert audit.phase_id == "validation"

    def test_deterministic_ids(self, sample_document):
        first = WorkflowOrchestrator(id_generator=SequentialIdGenerator()).generate(sample_document)
        second = WorkflowOrchestrator(id_generator=SequentialIdGenerator()).generate(sample_document)

        assert first.id == "workflow-1"
        assert [t.id for t in first.all_tasks()] == [t.id for t in second.all_tasks()]

    def test_module_level_wrapper(self, sample_document):
        workflow = generate_workflow(sample_document, GenerationOptions(strategy=Strategy.MVP))

        assert workflow.strategy is Strategy.MVP
        assert workflow.id.startswith("workflow-")


class TestRequirementTasks:
    """Test cases for implementation and test task sizing."""

    def _requirements(self, count):
        return RequirementSet(functional=tuple(
            Requirement(f"r{i}", f"Requirement {i}", Priority.MEDIUM, "Billing") for i in range(count)
        ))

    def test_hours_grow_with_requirements(self, orchestrator):
        tasks = orchestrator._requirement_tasks(self._requirements(3), Complexity.MODERATE, "impl", Persona.BACKEND, "open")

        implementation, test = tasks
        assert implementation.title == "Implement Billing"
        assert implementation.estimated_hours == 24
        assert test.persona is Persona.QA
        assert test.category is TaskCategory.TESTING
        assert test.estimated_hours == 12
        assert test.dependencies == [implementation.id]

    def test_hours_are_capped(self, orchestrator):
        tasks = orchestrator._requirement_tasks(self._requirements(10), Complexity.COMPLEX, "impl", Persona.BACKEND, "open")

        assert tasks[0].estimated_hours == 40
        assert tasks[1].estimated_hours == 20


class TestDependencyMap:
    """Test cases for external, technical and team dependencies."""

    def test_vocabulary_detection(self, orchestrator):
        requirements = RequirementSet(functional=(
            Requirement("r1", "Integrate Stripe checkout in React 18", Priority.HIGH, "Checkout"),
        ))

        dependency_map = orchestrator.build_dependency_map([], requirements, Persona.FRONTEND)

        assert [(d.service, d.critical) for d in dependency_map.external] == [("Payment gateway", True)]
        assert [(d.technology, d.version) for d in dependency_map.technical] == [("react", "18")]
        assert dependency_map.team == []

    def test_internal_and_team(self, orchestrator, make_task, make_phase):
        phases = [
            make_phase("p1", [make_task("t1"), make_task("t2", dependencies=["t1"])], name="Build"),
            make_phase("p2", [make_task("t3", persona=Persona.QA, dependencies=["t2"])], name="Verify"),
        ]

        dependency_map = orchestrator.build_dependency_map(phases, RequirementSet(), Persona.BACKEND)

        assert [(d.from_task, d.to_task) for d in dependency_map.internal] == [("t1", "t2"), ("t2", "t3")]
        team = {d.skill: d for d in dependency_map.team}
        assert team[Persona.BACKEND].required is True
        assert team[Persona.QA].required is False
        assert team[Persona.QA].timeline == "Verify"


class TestDurationText:
    """Test cases for the human-readable workflow duration."""

    @pytest.mark.parametrize("hours,expected", [
        (1, "1 hour"),
        (4, "4 hours"),
        (8, "1 day"),
        (40, "5 days"),
        (48, "2 weeks"),
    ])
    def test_format_duration_text(self, hours, expected):
        assert format_duration_text(hours) == expected
