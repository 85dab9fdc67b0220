"""
Contract tests for the planning engine.

Each test states a property every generated plan must hold, whatever
the document, strategy or persona: extraction never raises, hours add
up, the critical path is a real chain, quality scores stay in range and
rendering is repeatable.
"""

import json
import random

import pytest

from workflow_planner.dependencies import DependencyAnalyzer
from workflow_planner.extractor import RequirementExtractor
from workflow_planner.formatters import WorkflowFormatter
from workflow_planner.identifiers import SequentialIdGenerator
from workflow_planner.models import Persona, Strategy
from workflow_planner.orchestrator import GenerationOptions, WorkflowOrchestrator
from workflow_planner.personas import recommend_persona
from workflow_planner.quality_gates import QUALITY_PROFILES, QualityGateValidator, ValidationContext


DOCUMENTS = [
    "",
    "just one line of text",
    "# Checkout\n- Users must pay with a card\n- Send a receipt by email\n\n## Performance\n- Pages load within 2s",
    "1. Scope\n- [ ] Export works\nConstraint: Budget of two engineers\nAssumption: Warehouse is online",
    "# Platform\n## Architecture\n- Distributed microservices on Kubernetes\n## Security\n- GDPR compliant storage",
]


@pytest.fixture(params=DOCUMENTS, ids=["empty", "plain", "checkout", "numbered", "platform"])
def document(request):
    return request.param


@pytest.fixture(params=list(Strategy), ids=lambda s: s.value)
def strategy(request):
    return request.param


@pytest.fixture
def build(document, strategy):
    orchestrator = WorkflowOrchestrator(id_generator=SequentialIdGenerator())
    return orchestrator.build(document, GenerationOptions(strategy=strategy))


class TestExtractionContract:
    """Contract tests for requirement extraction."""

    @pytest.mark.parametrize("garbage", [
        "###\n\n---\n***",
        "- \n- \n-",
        "\x00\x01 binary-ish",
        "Constraint:\nAssumption:",
        "[ ] [x] []",
    ])
    def test_malformed_input_never_raises(self, garbage):
        """
        Contract Test: extraction tolerates malformed documents.

        Given: A document with no usable structure
        When: Requirements are extracted
        Then: A result is returned with a persona and an effort estimate
        """
        result = RequirementExtractor(SequentialIdGenerator()).extract(garbage)

        assert isinstance(result.recommended_persona, Persona)
        assert result.effort.hours >= 1

    def test_persona_recommendation_ignores_word_order(self):
        """
        Contract Test: persona scores are order independent.

        Given: The same words in different orders
        When: A persona is recommended for each ordering
        Then: Every ordering gets the same persona
        """
        words = "react component accessibility api database encryption threat deploy docker".split()
        rng = random.Random(7)

        recommendations = set()
        for _ in range(10):
            rng.shuffle(words)
            recommendations.add(recommend_persona(" ".join(words)))

        assert len(recommendations) == 1


class TestWorkflowContract:
    """Contract tests for generated workflows."""

    def test_workflow_is_structurally_valid(self, build):
        """
        Contract Test: generated workflows are internally consistent.

        Given: Any document and strategy
        When: A workflow is generated
        Then: Task ids are unique, dependencies resolve and hours add up
        """
        workflow = build.workflow

        assert workflow.phases
        assert workflow.validate() == []
        assert workflow.estimated_hours == sum(t.estimated_hours for t in workflow.all_tasks())
        assert workflow.estimated_duration

    def test_critical_path_is_a_dependency_chain(self, build):
        """
        Contract Test: the critical path follows real edges.

        Given: A generated workflow and its dependency analysis
        When: The critical path is inspected
        Then: Consecutive tasks are linked, every task on it has zero slack
              and its hours equal the project duration
        """
        analysis = build.analysis
        graph = analysis.graph

        path = analysis.critical_path
        assert path
        for previous, current in zip(path, path[1:]):
            assert previous in graph.predecessors(current)
        assert all(graph.nodes[task_id].slack == 0 for task_id in path)
        assert sum(graph.nodes[task_id].duration for task_id in path) == analysis.project_duration

    def test_slack_is_never_negative(self, build):
        for node in build.analysis.graph.nodes.values():
            assert node.slack >= 0
            assert node.critical == (node.slack == 0)

    def test_analysis_is_repeatable(self, build):
        """
        Contract Test: analysis depends only on the phases.

        Given: A generated workflow
        When: Its phases are analyzed again
        Then: The same critical path and duration come back
        """
        again = DependencyAnalyzer().analyze(build.workflow.phases)

        assert again.critical_path == build.analysis.critical_path
        assert again.project_duration == build.analysis.project_duration


class TestQualityContract:
    """Contract tests for quality reports."""

    @pytest.mark.parametrize("profile", sorted(QUALITY_PROFILES))
    def test_scores_stay_in_range(self, build, profile):
        """
        Contract Test: quality scores are bounded and consistent.

        Given: Any generated workflow and profile
        When: The quality gates run
        Then: Scores lie in 0..100 and acceptance matches the profile thresholds
        """
        context = ValidationContext.from_extraction(build.extraction, build.analysis)

        report = QualityGateValidator().validate(build.workflow, context, profile)

        assert 0 <= report.overall_score <= 100
        assert all(0 <= r.score <= 100 for r in report.gate_results)
        assert len(report.gate_results) == len(QUALITY_PROFILES[profile].gates)
        limits = QUALITY_PROFILES[profile]
        if report.acceptable:
            assert report.summary.critical_issues <= limits.max_critical
            assert report.overall_score >= limits.min_score


class TestFormattingContract:
    """Contract tests for rendering."""

    def test_rendering_is_repeatable(self, build):
        """
        Contract Test: formatting is a pure read.

        Given: A generated workflow
        When: It is rendered twice in every format
        Then: The content is identical and the JSON form parses
        """
        formatter = WorkflowFormatter()

        for output_format in ("roadmap", "tasks", "detailed", "json", "combined"):
            first = formatter.format(build.workflow, output_format, build.analysis)
            second = formatter.format(build.workflow, output_format, build.analysis)
            assert first.content == second.content

        data = json.loads(formatter.format(build.workflow, "json").content)
        assert data["id"] == build.workflow.id
