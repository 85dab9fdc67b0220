"""Shared fixtures for the workflow planner tests."""

import pytest

from workflow_planner.identifiers import SequentialIdGenerator
from workflow_planner.models import Complexity, Persona, TaskCategory, WorkflowPhase, WorkflowTask


SAMPLE_DOCUMENT = """# User Authentication
Version: 2.1
Author: Dana Reyes
Stakeholders: Product, Security

## Functional Requirements
- Users must log in with email and password
- Users should reset forgotten passwords
- Display the login history

## Security
- Encrypt stored passwords
- Rate limit login attempts

## Acceptance Criteria
- Login succeeds with valid credentials
- Lockout after five failed attempts

## Constraints
- Must launch within 3 months
- Budget limited to two engineers

## Assumptions
- We assume users have verified email addresses
"""


@pytest.fixture
def sample_document():
    """A small requirements document with every section kind."""
    return SAMPLE_DOCUMENT


@pytest.fixture
def id_generator():
    return SequentialIdGenerator()


@pytest.fixture
def make_task():
    """Factory for workflow tasks with sensible defaults."""

    def factory(task_id, hours=8, persona=Persona.BACKEND, dependencies=(), **overrides):
        values = {
            "id": task_id,
            "title": overrides.pop("title", f"Task {task_id}"),
            "description": overrides.pop("description", f"Work for {task_id}"),
            "persona": persona,
            "complexity": overrides.pop("complexity", Complexity.MODERATE),
            "estimated_hours": hours,
            "dependencies": list(dependencies),
            "category": overrides.pop("category", TaskCategory.IMPLEMENTATION),
        }
        values.update(overrides)
        return WorkflowTask(**values)

    return factory


@pytest.fixture
def make_phase():
    """Factory for workflow phases."""

    def factory(phase_id, tasks, name=None):
        for task in tasks:
            task.phase_id = phase_id
        return WorkflowPhase(
            id=phase_id,
            name=name or f"Phase {phase_id}",
            description=f"Description of {phase_id}",
            duration="1 week",
            tasks=list(tasks),
        )

    return factory
