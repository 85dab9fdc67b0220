"""Unit tests for environment-driven settings and id generation."""

import logging
import threading
from pathlib import Path

from workflow_planner.config import PlannerSettings
from workflow_planner.identifiers import RandomIdGenerator, SequentialIdGenerator
from workflow_planner.models import OutputFormat, Strategy


class TestPlannerSettings:
    """Test cases for PlannerSettings.from_env."""

    def test_defaults(self):
        """Test that an empty environment yields the defaults."""
        settings = PlannerSettings.from_env({})

        assert settings.log_level == "INFO"
        assert settings.log_file is None
        assert settings.strategy is Strategy.SYSTEMATIC
        assert settings.quality_profile == "standard"
        assert settings.output_format is OutputFormat.ROADMAP
        assert settings.gate_timeout_scale == 1.0
        assert settings.deterministic_ids is False
        assert settings.max_workflows == 100

    def test_reads_every_variable(self):
        """Test reading each supported WORKFLOW_PLANNER_ variable."""
        settings = PlannerSettings.from_env({
            "WORKFLOW_PLANNER_LOG_LEVEL": "debug",
            "WORKFLOW_PLANNER_LOG_FILE": "/tmp/planner.log",
            "WORKFLOW_PLANNER_STRATEGY": "Agile",
            "WORKFLOW_PLANNER_QUALITY_PROFILE": "STRICT",
            "WORKFLOW_PLANNER_OUTPUT_FORMAT": "json",
            "WORKFLOW_PLANNER_GATE_TIMEOUT_SCALE": "0.5",
            "WORKFLOW_PLANNER_DETERMINISTIC_IDS": "yes",
            "WORKFLOW_PLANNER_MAX_WORKFLOWS": "25",
        })

        assert settings.log_level == "DEBUG"
        assert settings.log_file == Path("/tmp/planner.log")
        assert settings.strategy is Strategy.AGILE
        assert settings.quality_profile == "strict"
        assert settings.output_format is OutputFormat.JSON
        assert settings.gate_timeout_scale == 0.5
        assert settings.deterministic_ids is True
        assert settings.max_workflows == 25

    def test_invalid_values_fall_back_with_warnings(self, caplog):
        """Test that malformed values keep the defaults and warn."""
        with caplog.at_level(logging.WARNING, logger="workflow_planner.config"):
            settings = PlannerSettings.from_env({
                "WORKFLOW_PLANNER_LOG_LEVEL": "chatty",
                "WORKFLOW_PLANNER_STRATEGY": "waterfall",
                "WORKFLOW_PLANNER_QUALITY_PROFILE": "paranoid",
                "WORKFLOW_PLANNER_GATE_TIMEOUT_SCALE": "-1",
            })

        assert settings.log_level == "INFO"
        assert settings.strategy is Strategy.SYSTEMATIC
        assert settings.quality_profile == "standard"
        assert settings.gate_timeout_scale == 1.0
        assert len(caplog.records) == 4

    def test_max_workflows_validation(self):
        assert PlannerSettings.from_env({"WORKFLOW_PLANNER_MAX_WORKFLOWS": "0"}).max_workflows == 0
        assert PlannerSettings.from_env({"WORKFLOW_PLANNER_MAX_WORKFLOWS": "-3"}).max_workflows == 100
        assert PlannerSettings.from_env({"WORKFLOW_PLANNER_MAX_WORKFLOWS": "many"}).max_workflows == 100

    def test_non_numeric_scale(self):
        settings = PlannerSettings.from_env({"WORKFLOW_PLANNER_GATE_TIMEOUT_SCALE": "fast"})

        assert settings.gate_timeout_scale == 1.0

    def test_blank_values_are_ignored(self):
        settings = PlannerSettings.from_env({"WORKFLOW_PLANNER_LOG_LEVEL": "   ", "WORKFLOW_PLANNER_DETERMINISTIC_IDS": "no"})

        assert settings.log_level == "INFO"
        assert settings.deterministic_ids is False
        assert settings.max_workflows == 100


class TestIdGenerators:
    """Test cases for identifier generation."""

    def test_sequential_ids_per_prefix(self):
        generator = SequentialIdGenerator()

        assert [generator("task"), generator("task"), generator("workflow")] == ["task-1", "task-2", "workflow-1"]

    def test_reset(self):
        generator = SequentialIdGenerator()
        generator("task")

        generator.reset()

        assert generator("task") == "task-1"

    def test_sequential_ids_are_unique_across_threads(self):
        generator = SequentialIdGenerator()
        ids = []
        lock = threading.Lock()

        def worker():
            for _ in range(100):
                value = generator("task")
                with lock:
                    ids.append(value)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(set(ids)) == 500

    def test_random_ids(self):
        generator = RandomIdGenerator()

        first, second = generator("workflow"), generator("workflow")

        assert first.startswith("workflow-")
        assert len(first) == len("workflow-") + 9
        assert first != second
