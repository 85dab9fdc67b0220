"""Unit tests for persona templates and recommendation."""

import pytest

from workflow_planner.models import Complexity, Persona, ToolProvider
from workflow_planner.personas import (
    PERSONA_TEMPLATES,
    TemplateContext,
    adjust_hours,
    apply_template,
    detect_domain,
    display_name,
    get_template,
    persona_guidance,
    recommend_persona,
    round_half_up,
    score_personas,
)


class TestRegistry:
    """Test cases for the persona template registry."""

    def test_every_persona_has_a_template(self):
        assert set(PERSONA_TEMPLATES) == set(Persona)

    def test_registry_is_read_only(self):
        with pytest.raises(TypeError):
            PERSONA_TEMPLATES[Persona.QA] = PERSONA_TEMPLATES[Persona.BACKEND]

    def test_display_name_and_guidance(self):
        assert "Frontend" in display_name(Persona.FRONTEND)
        assert persona_guidance(Persona.FRONTEND)[0] == "Focus on user experience and accessibility"

    def test_blocking_gates(self):
        template = get_template(Persona.FRONTEND)

        assert [gate.id for gate in template.blocking_gates] == ["accessibility-audit", "performance-testing"]


class TestRecommendation:
    """Test cases for persona scoring and recommendation."""

    def test_security_scenario(self):
        text = "OAuth2 login with threat modeling and encryption of stored tokens"

        assert recommend_persona(text) is Persona.SECURITY

    def test_frontend_scenario(self):
        text = "Build React components with accessibility support for the dashboard"

        assert recommend_persona(text) is Persona.FRONTEND

    def test_empty_text_goes_to_architect(self):
        assert recommend_persona("") is Persona.ARCHITECT

    def test_tie_goes_to_architect(self):
        # one frontend keyword and one qa keyword
        assert recommend_persona("mobile bug") is Persona.ARCHITECT

    def test_keywords_match_whole_words_only(self):
        """Test that short keywords do not score inside longer words."""
        text = (
            "Build a ledger service that requires an API endpoint. "
            "The server must store entries in a database. Follow the onboarding guide."
        )

        scores = score_personas(text)

        assert scores[Persona.FRONTEND] == 0
        assert scores[Persona.BACKEND] == 5
        assert scores[Persona.MENTOR] == 1
        assert recommend_persona(text) is Persona.BACKEND

    def test_each_keyword_counts_once(self):
        scores = score_personas("api api api, endpoints and more endpoints")

        assert scores[Persona.BACKEND] == 2

    def test_scores_are_permutation_stable(self):
        words = "encryption api threat endpoint privacy component docker".split()

        forward = score_personas(" ".join(words))
        backward = score_personas(" ".join(reversed(words)))

        assert forward == backward
        assert recommend_persona(" ".join(words)) is recommend_persona(" ".join(reversed(words)))


class TestEstimation:
    """Test cases for hour adjustment."""

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2

    def test_adjust_hours_general_domain(self):
        template = get_template(Persona.FRONTEND)

        # 10 * 1.1 * 1.3 * (1 + 0.2) = 17.16
        assert adjust_hours(10, template, TemplateContext("general", Complexity.MODERATE)) == 17

    def test_adjust_hours_domain_factor(self):
        template = get_template(Persona.FRONTEND)

        # 10 * 1.1 * 1.3 * 1.2 * (1 + 0.2) = 20.592
        assert adjust_hours(10, template, TemplateContext("accessibility", Complexity.MODERATE)) == 21

    def test_adjust_hours_minimum_one(self):
        template = get_template(Persona.SCRIBE)

        assert adjust_hours(0, template, TemplateContext()) == 1


class TestApplyTemplate:
    """Test cases for applying a template to tasks."""

    def test_apply_template_returns_adjusted_copies(self, make_task):
        task = make_task("task-1", hours=10, persona=Persona.BACKEND)

        adjusted = apply_template([task], Persona.FRONTEND, TemplateContext("ui", Complexity.COMPLEX))[0]

        assert adjusted is not task
        assert task.persona is Persona.BACKEND
        assert adjusted.persona is Persona.FRONTEND
        assert ToolProvider.UI_GENERATION in adjusted.tool_providers
        assert ToolProvider.REASONING in adjusted.tool_providers
        assert len(adjusted.tool_providers) == len(set(adjusted.tool_providers))
        assert "Playwright" in adjusted.tools
        assert any(c.startswith("Accessibility Audit") for c in adjusted.acceptance_criteria)

    def test_apply_template_keeps_dependencies(self, make_task):
        task = make_task("task-2", dependencies=["task-1"])

        adjusted = apply_template([task], Persona.QA, TemplateContext())[0]

        assert adjusted.dependencies == ["task-1"]
        assert adjusted.dependencies is not task.dependencies

    def test_detect_domain(self):
        template = get_template(Persona.SECURITY)

        assert detect_domain(template, "Penetration testing of the API") == "penetration-testing"
        assert detect_domain(template, "Nothing relevant here") is None
