"""Persona classification and the static persona template registry.

Each persona template describes how a domain specialist approaches a
workflow: the quality gates it insists on, the task patterns it adds,
the tools it prefers and how it adjusts effort estimates.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import (
    Complexity,
    ConstraintType,
    Persona,
    RequirementSet,
    RiskLevel,
    RiskType,
    TaskCategory,
    ToolProvider,
    WorkflowTask,
)
from .text_matching import count_keywords, has_keyword, mentions


# ------------------------------------------------------------------
# Template data types
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PersonaQualityGate:
    id: str
    name: str
    description: str
    blocking: bool
    criteria: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class TaskPattern:
    """A task a persona contributes to phases accepting its category."""

    id: str
    title: str
    description: str
    category: TaskCategory
    complexity: Complexity
    hours: int
    tools: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RiskPattern:
    id: str
    name: str
    type: RiskType
    probability: RiskLevel
    impact: RiskLevel
    indicators: Tuple[str, ...]
    mitigations: Tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ToolPreference:
    name: str
    category: str
    provider: Optional[ToolProvider] = None


@dataclass(frozen=True, slots=True)
class EstimationFactors:
    base_multiplier: float
    complexity_factors: Mapping[Complexity, float]
    domain_factors: Mapping[str, float]
    quality_overhead: float


@dataclass(frozen=True, slots=True)
class PersonaTemplate:
    persona: Persona
    name: str
    description: str
    expertise: Tuple[str, ...]
    focus_areas: Tuple[str, ...]
    preferred_providers: Tuple[ToolProvider, ...]
    quality_gates: Tuple[PersonaQualityGate, ...]
    task_patterns: Tuple[TaskPattern, ...]
    risk_patterns: Tuple[RiskPattern, ...]
    tool_preferences: Tuple[ToolPreference, ...]
    estimation: EstimationFactors
    guidance: Tuple[str, ...] = ()

    @property
    def blocking_gates(self) -> List[PersonaQualityGate]:
        return [gate for gate in self.quality_gates if gate.blocking]

    def to_dict(self) -> Dict[str, object]:
        return {
            "persona": self.persona.value,
            "name": self.name,
            "description": self.description,
            "expertise": list(self.expertise),
            "focus_areas": list(self.focus_areas),
            "preferred_providers": [p.value for p in self.preferred_providers],
            "quality_gates": [
                {"id": g.id, "name": g.name, "description": g.description, "blocking": g.blocking}
                for g in self.quality_gates
            ],
            "task_patterns": [p.id for p in self.task_patterns],
            "tool_preferences": [t.name for t in self.tool_preferences],
        }


@dataclass(frozen=True, slots=True)
class TemplateContext:
    """Context used when applying a template to tasks."""

    domain: str = "general"
    complexity: Complexity = Complexity.MODERATE


def _factors(base: float, simple: float, moderate: float, complex_: float,
             domains: Dict[str, float], overhead: float) -> EstimationFactors:
    return EstimationFactors(
        base_multiplier=base,
        complexity_factors=MappingProxyType({
            Complexity.SIMPLE: simple,
            Complexity.MODERATE: moderate,
            Complexity.COMPLEX: complex_,
        }),
        domain_factors=MappingProxyType(dict(domains)),
        quality_overhead=overhead,
    )


DOC = ToolProvider.DOCUMENTATION
REASON = ToolProvider.REASONING
UI = ToolProvider.UI_GENERATION
BROWSER = ToolProvider.BROWSER_TESTING


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------

_TEMPLATES: Tuple[PersonaTemplate, ...] = (
    PersonaTemplate(
        persona=Persona.FRONTEND,
        name="Frontend Specialist",
        description="UX specialist, accessibility advocate, performance-conscious developer",
        expertise=("React", "Vue", "Angular", "CSS", "JavaScript", "TypeScript", "Responsive Design"),
        focus_areas=("User Experience", "Accessibility", "Performance", "Mobile Responsiveness", "Design Systems"),
        preferred_providers=(UI, BROWSER, DOC),
        quality_gates=(
            PersonaQualityGate(
                "accessibility-audit", "Accessibility Audit", "WCAG 2.1 AA compliance validation", True,
                ("Keyboard navigation works", "Screen reader labels present", "Color contrast meets AA"),
            ),
            PersonaQualityGate(
                "performance-testing", "Performance Testing", "Core Web Vitals and loading performance validation", True,
                ("LCP under 2.5s", "CLS under 0.1"),
            ),
            PersonaQualityGate(
                "cross-browser-testing", "Cross-Browser Testing", "Behaviour verified on supported browsers", False,
            ),
        ),
        task_patterns=(
            TaskPattern(
                "design-system-analysis", "Design system analysis",
                "Review design tokens, existing components and interaction patterns",
                TaskCategory.ANALYSIS, Complexity.MODERATE, 8, ("Figma", "Storybook"),
            ),
            TaskPattern(
                "state-architecture", "State management architecture",
                "Define client state, data fetching and caching boundaries",
                TaskCategory.DESIGN, Complexity.COMPLEX, 12,
            ),
            TaskPattern(
                "component-implementation", "Component implementation",
                "Build reusable, accessible UI components with responsive layouts",
                TaskCategory.IMPLEMENTATION, Complexity.MODERATE, 16, ("React", "TypeScript"),
            ),
        ),
        risk_patterns=(
            RiskPattern(
                "design-changes", "Late design changes", RiskType.TIMELINE, RiskLevel.MEDIUM, RiskLevel.HIGH,
                ("unclear requirements", "stakeholder feedback"),
                ("Lock designs before implementation starts", "Build against a component library"),
            ),
            RiskPattern(
                "performance-issues", "Client performance regressions", RiskType.TECHNICAL, RiskLevel.MEDIUM,
                RiskLevel.MEDIUM, ("large bundle", "animation", "real-time"),
                ("Set performance budgets in CI", "Lazy load heavy views"),
            ),
        ),
        tool_preferences=(
            ToolPreference("React/Next.js", "framework", UI),
            ToolPreference("Tailwind CSS", "styling"),
            ToolPreference("Storybook", "documentation"),
            ToolPreference("Playwright", "testing", BROWSER),
        ),
        estimation=_factors(1.1, 1.0, 1.3, 1.8, {"accessibility": 1.2, "animations": 1.4, "responsive": 1.15}, 0.2),
        guidance=(
            "Focus on user experience and accessibility",
            "Implement responsive design patterns",
            "Optimize for performance and Core Web Vitals",
        ),
    ),
    PersonaTemplate(
        persona=Persona.BACKEND,
        name="Backend Engineer",
        description="Reliability engineer, API specialist, data integrity focus",
        expertise=("Node.js", "Python", "SQL", "REST", "GraphQL", "Message Queues"),
        focus_areas=("Reliability", "API Design", "Data Integrity", "Scalability"),
        preferred_providers=(DOC, REASON),
        quality_gates=(
            PersonaQualityGate(
                "api-documentation", "API Documentation", "Every endpoint documented with request and response schemas", True,
            ),
            PersonaQualityGate(
                "security-audit", "Security Audit", "Comprehensive security validation", True,
                ("Input validation on all endpoints", "Secrets kept out of source control"),
            ),
            PersonaQualityGate(
                "load-testing", "Load Testing", "Throughput and latency validated under expected load", False,
            ),
        ),
        task_patterns=(
            TaskPattern(
                "api-specification", "API specification",
                "Define endpoints, payloads, error codes and versioning rules",
                TaskCategory.DESIGN, Complexity.MODERATE, 12, ("OpenAPI",),
            ),
            TaskPattern(
                "database-design", "Database schema design",
                "Model entities, relations, indexes and the migration strategy",
                TaskCategory.DESIGN, Complexity.COMPLEX, 16, ("PostgreSQL",),
            ),
            TaskPattern(
                "service-implementation", "Service layer implementation",
                "Implement business logic, persistence and error handling behind the API",
                TaskCategory.IMPLEMENTATION, Complexity.MODERATE, 16,
            ),
        ),
        risk_patterns=(
            RiskPattern(
                "data-migration", "Data migration failures", RiskType.TECHNICAL, RiskLevel.MEDIUM, RiskLevel.HIGH,
                ("migration", "legacy data", "schema change"),
                ("Rehearse migrations on production-like data", "Keep reversible migration scripts"),
            ),
        ),
        tool_preferences=(
            ToolPreference("Node.js/Express", "framework", DOC),
            ToolPreference("PostgreSQL", "database"),
            ToolPreference("Redis", "cache"),
        ),
        estimation=_factors(1.0, 1.0, 1.2, 1.6, {"authentication": 1.3, "integration": 1.4, "migration": 1.5}, 0.15),
        guidance=(
            "Design robust API endpoints with proper error handling",
            "Implement security best practices",
            "Optimize database queries and caching",
        ),
    ),
    PersonaTemplate(
        persona=Persona.SECURITY,
        name="Security Engineer",
        description="Threat modeler, compliance expert, vulnerability specialist",
        expertise=("Threat Modeling", "OAuth2", "Cryptography", "OWASP", "Compliance"),
        focus_areas=("Threat Modeling", "Vulnerability Management", "Compliance", "Secure Design"),
        preferred_providers=(REASON, DOC),
        quality_gates=(
            PersonaQualityGate("threat-modeling", "Threat Modeling", "Threats identified and mitigations assigned", True),
            PersonaQualityGate("vulnerability-scan", "Vulnerability Scan", "No high or critical findings open", True),
            PersonaQualityGate("compliance-check", "Compliance Check", "Regulatory obligations mapped to controls", True),
        ),
        task_patterns=(
            TaskPattern(
                "threat-assessment", "Threat assessment",
                "Model threats, attack surfaces and trust boundaries",
                TaskCategory.ANALYSIS, Complexity.COMPLEX, 20, ("STRIDE",),
            ),
            TaskPattern(
                "security-controls", "Security controls implementation",
                "Implement authentication, authorization and encryption controls",
                TaskCategory.IMPLEMENTATION, Complexity.COMPLEX, 16,
            ),
        ),
        risk_patterns=(
            RiskPattern(
                "data-breach", "Sensitive data exposure", RiskType.SECURITY, RiskLevel.LOW, RiskLevel.HIGH,
                ("personal data", "payment", "credentials", "encryption"),
                ("Encrypt data in transit and at rest", "Run penetration tests before release"),
            ),
        ),
        tool_preferences=(
            ToolPreference("OWASP ZAP", "scanner"),
            ToolPreference("HashiCorp Vault", "secrets"),
        ),
        estimation=_factors(1.2, 1.1, 1.4, 2.0, {"compliance": 1.5, "cryptography": 1.8, "penetration-testing": 1.6}, 0.3),
        guidance=(
            "Conduct threat modeling and risk assessment",
            "Implement authentication and authorization",
            "Ensure compliance with security standards",
        ),
    ),
    PersonaTemplate(
        persona=Persona.ARCHITECT,
        name="Systems Architect",
        description="Systems architecture specialist, long-term thinking focus, scalability expert",
        expertise=("Distributed Systems", "Domain-Driven Design", "Cloud Architecture", "Integration Patterns"),
        focus_areas=("Scalability", "Maintainability", "Integration", "Technology Selection"),
        preferred_providers=(REASON, DOC),
        quality_gates=(
            PersonaQualityGate(
                "architecture-review", "Architecture Review", "Design reviewed against quality attributes", True,
            ),
        ),
        task_patterns=(
            TaskPattern(
                "system-design", "System design",
                "Define components, boundaries, data flow and integration points",
                TaskCategory.DESIGN, Complexity.COMPLEX, 24, ("C4 diagrams",),
            ),
            TaskPattern(
                "technology-evaluation", "Technology evaluation",
                "Compare candidate technologies and record decisions",
                TaskCategory.ANALYSIS, Complexity.MODERATE, 8, ("Architecture Decision Records",),
            ),
        ),
        risk_patterns=(
            RiskPattern(
                "over-engineering", "Over-engineering", RiskType.BUSINESS, RiskLevel.MEDIUM, RiskLevel.MEDIUM,
                ("enterprise", "microservice", "future-proof"),
                ("Design for current scale with clear extension points", "Review scope against business goals"),
            ),
        ),
        tool_preferences=(
            ToolPreference("C4 Model", "diagramming"),
            ToolPreference("Architecture Decision Records", "documentation"),
        ),
        estimation=_factors(0.9, 1.0, 1.1, 1.4, {"integration": 1.3, "scalability": 1.2}, 0.1),
        guidance=(
            "Design system architecture and component relationships",
            "Ensure scalability and maintainability principles",
            "Define integration patterns and data flow",
        ),
    ),
    PersonaTemplate(
        persona=Persona.DEVOPS,
        name="DevOps Engineer",
        description="Infrastructure automation specialist, deployment pipeline owner, observability champion",
        expertise=("Docker", "Kubernetes", "CI/CD", "Terraform", "Monitoring"),
        focus_areas=("Automation", "Reliability", "Observability", "Release Management"),
        preferred_providers=(REASON, DOC),
        quality_gates=(
            PersonaQualityGate(
                "deployment-readiness", "Deployment Readiness", "Automated, repeatable deployment with rollback", True,
            ),
            PersonaQualityGate(
                "observability-check", "Observability Check", "Dashboards and alerts cover key services", False,
            ),
        ),
        task_patterns=(
            TaskPattern(
                "pipeline-setup", "CI/CD pipeline setup",
                "Automate build, test and deployment stages",
                TaskCategory.IMPLEMENTATION, Complexity.MODERATE, 12, ("GitHub Actions",),
            ),
            TaskPattern(
                "infrastructure-provisioning", "Infrastructure provisioning",
                "Provision environments as code with monitoring in place",
                TaskCategory.DEPLOYMENT, Complexity.MODERATE, 12, ("Terraform",),
            ),
        ),
        risk_patterns=(
            RiskPattern(
                "environment-drift", "Environment drift", RiskType.TECHNICAL, RiskLevel.MEDIUM, RiskLevel.MEDIUM,
                ("manual deployment", "multiple environments"),
                ("Manage every environment as code", "Promote identical artifacts"),
            ),
        ),
        tool_preferences=(
            ToolPreference("Docker", "container"),
            ToolPreference("GitHub Actions", "ci"),
            ToolPreference("Terraform", "infrastructure"),
        ),
        estimation=_factors(1.0, 1.0, 1.2, 1.5, {"kubernetes": 1.3, "monitoring": 1.15}, 0.15),
        guidance=(
            "Automate build and deployment pipelines",
            "Provision infrastructure as code",
            "Set up monitoring and alerting before launch",
        ),
    ),
    PersonaTemplate(
        persona=Persona.QA,
        name="Quality Engineer",
        description="Quality advocate, testing specialist, edge case detective",
        expertise=("Test Automation", "Exploratory Testing", "Playwright", "Jest"),
        focus_areas=("Test Strategy", "Automation", "Edge Cases", "Regression Prevention"),
        preferred_providers=(BROWSER, REASON),
        quality_gates=(
            PersonaQualityGate(
                "test-coverage", "Test Coverage", "Critical paths covered by automated tests (>80%)", True,
            ),
        ),
        task_patterns=(
            TaskPattern(
                "test-plan", "Test plan",
                "Define the test strategy, environments and acceptance test matrix",
                TaskCategory.DESIGN, Complexity.MODERATE, 12,
            ),
            TaskPattern(
                "test-automation", "Test automation",
                "Automate regression and end-to-end test suites",
                TaskCategory.TESTING, Complexity.MODERATE, 16, ("Playwright",),
            ),
        ),
        risk_patterns=(
            RiskPattern(
                "insufficient-testing", "Insufficient testing", RiskType.TECHNICAL, RiskLevel.MEDIUM, RiskLevel.HIGH,
                ("tight deadline", "manual testing"),
                ("Automate critical path tests first", "Track coverage in CI"),
            ),
        ),
        tool_preferences=(
            ToolPreference("Playwright", "testing", BROWSER),
            ToolPreference("Jest", "testing"),
        ),
        estimation=_factors(1.05, 1.0, 1.2, 1.5, {"automation": 1.3, "integration-testing": 1.4}, 0.25),
        guidance=(
            "Develop comprehensive test strategy",
            "Create automated test suites",
            "Validate against acceptance criteria",
        ),
    ),
    PersonaTemplate(
        persona=Persona.PERFORMANCE,
        name="Performance Engineer",
        description="Optimization specialist, bottleneck elimination expert, metrics-driven analyst",
        expertise=("Profiling", "Load Testing", "Caching", "Query Optimization"),
        focus_areas=("Latency", "Throughput", "Resource Efficiency", "Capacity Planning"),
        preferred_providers=(BROWSER, REASON),
        quality_gates=(
            PersonaQualityGate(
                "performance-benchmarks", "Performance Benchmarks", "Benchmarks meet agreed latency and throughput targets", True,
            ),
        ),
        task_patterns=(
            TaskPattern(
                "performance-baseline", "Performance baseline",
                "Measure current latency, throughput and resource usage",
                TaskCategory.ANALYSIS, Complexity.MODERATE, 16, ("k6",),
            ),
            TaskPattern(
                "load-testing", "Load testing",
                "Run load tests against performance targets and tune bottlenecks",
                TaskCategory.TESTING, Complexity.MODERATE, 12, ("k6",),
            ),
        ),
        risk_patterns=(
            RiskPattern(
                "performance-degradation", "Performance degradation", RiskType.TECHNICAL, RiskLevel.MEDIUM,
                RiskLevel.HIGH, ("real-time", "concurrent users", "large data"),
                ("Add performance tests to CI", "Profile before optimizing"),
            ),
        ),
        tool_preferences=(
            ToolPreference("k6", "load-testing", BROWSER),
            ToolPreference("New Relic", "monitoring"),
        ),
        estimation=_factors(1.1, 1.0, 1.3, 1.7, {"optimization": 1.4, "scalability": 1.3}, 0.2),
        guidance=(
            "Establish baselines before optimizing",
            "Profile hot paths and eliminate bottlenecks",
            "Validate targets under realistic load",
        ),
    ),
    PersonaTemplate(
        persona=Persona.ANALYZER,
        name="Systems Analyzer",
        description="Root cause investigator, evidence-driven troubleshooter",
        expertise=("Debugging", "Log Analysis", "Tracing", "Incident Review"),
        focus_areas=("Root Cause Analysis", "Evidence Gathering", "Diagnostics"),
        preferred_providers=(REASON, DOC),
        quality_gates=(
            PersonaQualityGate(
                "root-cause-documented", "Root Cause Documented", "Findings backed by reproducible evidence", True,
            ),
        ),
        task_patterns=(
            TaskPattern(
                "current-state-analysis", "Current state analysis",
                "Investigate the existing system, logs and failure history",
                TaskCategory.ANALYSIS, Complexity.MODERATE, 10,
            ),
        ),
        risk_patterns=(
            RiskPattern(
                "hidden-complexity", "Hidden complexity", RiskType.TECHNICAL, RiskLevel.MEDIUM, RiskLevel.MEDIUM,
                ("legacy", "undocumented"),
                ("Time-box investigation spikes", "Document findings as they emerge"),
            ),
        ),
        tool_preferences=(ToolPreference("OpenTelemetry", "tracing"),),
        estimation=_factors(1.0, 1.0, 1.2, 1.5, {"debugging": 1.3, "legacy": 1.4}, 0.1),
        guidance=(
            "Gather evidence before forming conclusions",
            "Reproduce issues in isolation",
            "Document root causes and contributing factors",
        ),
    ),
    PersonaTemplate(
        persona=Persona.REFACTORER,
        name="Refactoring Specialist",
        description="Code quality specialist, technical debt manager, clean code advocate",
        expertise=("Refactoring", "Static Analysis", "Design Patterns", "Test Harnesses"),
        focus_areas=("Maintainability", "Technical Debt", "Code Quality"),
        preferred_providers=(REASON, DOC),
        quality_gates=(
            PersonaQualityGate(
                "code-quality-review", "Code Quality Review", "Complexity and duplication reduced without behaviour change", True,
            ),
        ),
        task_patterns=(
            TaskPattern(
                "refactoring-plan", "Refactoring plan",
                "Identify debt hot spots and plan safe, incremental changes",
                TaskCategory.DESIGN, Complexity.MODERATE, 8,
            ),
            TaskPattern(
                "incremental-refactoring", "Incremental refactoring",
                "Apply refactorings behind characterization tests",
                TaskCategory.IMPLEMENTATION, Complexity.MODERATE, 16,
            ),
        ),
        risk_patterns=(
            RiskPattern(
                "regression", "Behaviour regressions", RiskType.TECHNICAL, RiskLevel.MEDIUM, RiskLevel.HIGH,
                ("legacy", "low coverage"),
                ("Add characterization tests first", "Refactor in small steps"),
            ),
        ),
        tool_preferences=(ToolPreference("SonarQube", "static-analysis"),),
        estimation=_factors(0.95, 1.0, 1.2, 1.5, {"legacy": 1.4, "technical-debt": 1.3}, 0.15),
        guidance=(
            "Protect behaviour with tests before changing structure",
            "Refactor in small, reviewable steps",
            "Measure complexity before and after",
        ),
    ),
    PersonaTemplate(
        persona=Persona.MENTOR,
        name="Technical Mentor",
        description="Knowledge transfer specialist, educator, documentation advocate",
        expertise=("Technical Writing", "Onboarding", "Workshops"),
        focus_areas=("Knowledge Transfer", "Learning Paths", "Team Enablement"),
        preferred_providers=(DOC, REASON),
        quality_gates=(
            PersonaQualityGate(
                "knowledge-transfer", "Knowledge Transfer", "Team can operate the feature without the original authors", False,
            ),
        ),
        task_patterns=(
            TaskPattern(
                "learning-path", "Learning path",
                "Map the concepts the team needs and the order to learn them",
                TaskCategory.ANALYSIS, Complexity.SIMPLE, 6,
            ),
            TaskPattern(
                "knowledge-transfer-session", "Knowledge transfer session",
                "Walk the team through the delivered system and its runbooks",
                TaskCategory.DEPLOYMENT, Complexity.SIMPLE, 4,
            ),
        ),
        risk_patterns=(
            RiskPattern(
                "knowledge-silo", "Knowledge silo", RiskType.BUSINESS, RiskLevel.MEDIUM, RiskLevel.MEDIUM,
                ("single expert", "handover"),
                ("Pair on critical components", "Record walkthroughs"),
            ),
        ),
        tool_preferences=(ToolPreference("MkDocs", "documentation", DOC),),
        estimation=_factors(0.9, 1.0, 1.1, 1.3, {"onboarding": 1.2}, 0.1),
        guidance=(
            "Explain the reasoning behind decisions",
            "Build learning material alongside the code",
            "Check understanding with hands-on exercises",
        ),
    ),
    PersonaTemplate(
        persona=Persona.SCRIBE,
        name="Technical Writer",
        description="Professional writer, documentation specialist, release communicator",
        expertise=("Technical Writing", "API Reference", "Release Notes"),
        focus_areas=("Documentation Quality", "Consistency", "Audience Fit"),
        preferred_providers=(DOC, REASON),
        quality_gates=(
            PersonaQualityGate(
                "documentation-completeness", "Documentation Completeness", "User and operator documentation published", True,
            ),
        ),
        task_patterns=(
            TaskPattern(
                "documentation-outline", "Documentation outline",
                "Plan the guides, references and changelog structure",
                TaskCategory.DESIGN, Complexity.SIMPLE, 4,
            ),
            TaskPattern(
                "release-notes", "Release notes",
                "Write release notes and update the changelog",
                TaskCategory.DEPLOYMENT, Complexity.SIMPLE, 4,
            ),
        ),
        risk_patterns=(
            RiskPattern(
                "outdated-docs", "Outdated documentation", RiskType.BUSINESS, RiskLevel.HIGH, RiskLevel.LOW,
                ("frequent changes", "multiple audiences"),
                ("Review docs in the definition of done", "Generate references from source"),
            ),
        ),
        tool_preferences=(ToolPreference("MkDocs", "documentation", DOC),),
        estimation=_factors(0.85, 1.0, 1.1, 1.3, {"compliance": 1.3, "api": 1.2}, 0.1),
        guidance=(
            "Write for the intended audience",
            "Keep terminology consistent",
            "Update documentation with every change",
        ),
    ),
)

PERSONA_TEMPLATES: Mapping[Persona, PersonaTemplate] = MappingProxyType({t.persona: t for t in _TEMPLATES})

PERSONA_DISPLAY_NAMES: Mapping[Persona, str] = MappingProxyType({
    Persona.ARCHITECT: "🏗️ Architect",
    Persona.FRONTEND: "🎨 Frontend",
    Persona.BACKEND: "⚙️ Backend",
    Persona.SECURITY: "🛡️ Security",
    Persona.DEVOPS: "🚀 DevOps",
    Persona.QA: "🧪 QA",
    Persona.PERFORMANCE: "⚡ Performance",
    Persona.ANALYZER: "🔍 Analyzer",
    Persona.REFACTORER: "🔧 Refactorer",
    Persona.MENTOR: "👨‍🏫 Mentor",
    Persona.SCRIBE: "📝 Scribe",
})

PERSONA_KEYWORDS: Mapping[Persona, Tuple[str, ...]] = MappingProxyType({
    Persona.FRONTEND: ("ui", "ux", "interface", "component", "responsive", "mobile", "web", "design", "accessibility"),
    Persona.BACKEND: ("api", "server", "database", "service", "endpoint", "authentication", "authorization", "data"),
    Persona.SECURITY: ("security", "auth", "encryption", "privacy", "compliance", "gdpr", "vulnerability", "threat"),
    Persona.ARCHITECT: ("architecture", "system", "design", "pattern", "scalability", "integration", "microservice"),
    Persona.DEVOPS: ("deployment", "ci/cd", "infrastructure", "docker", "kubernetes", "monitoring", "observability"),
    Persona.QA: ("testing", "quality", "validation", "verification", "test", "bug", "defect"),
    Persona.PERFORMANCE: ("performance", "optimization", "speed", "latency", "throughput", "scalability", "load"),
    Persona.ANALYZER: ("analysis", "investigation", "troubleshoot", "debug", "diagnose", "root cause"),
    Persona.REFACTORER: ("refactor", "cleanup", "technical debt", "maintainability", "code quality"),
    Persona.MENTOR: ("documentation", "guide", "tutorial", "learning", "knowledge transfer"),
    Persona.SCRIBE: ("document", "specification", "manual", "wiki", "changelog", "release notes"),
})

DEFAULT_GUIDANCE = ("Apply domain expertise to implementation",)


def get_template(persona: Persona) -> PersonaTemplate:
    """Return the template for ``persona``."""
    return PERSONA_TEMPLATES[persona]


def display_name(persona: Persona) -> str:
    return PERSONA_DISPLAY_NAMES.get(persona, persona.value)


def persona_guidance(persona: Persona) -> Tuple[str, ...]:
    return PERSONA_TEMPLATES[persona].guidance or DEFAULT_GUIDANCE


# ------------------------------------------------------------------
# Classification
# ------------------------------------------------------------------


def score_personas(text: str, requirements: Optional[RequirementSet] = None) -> Dict[Persona, float]:
    """Score every persona by distinct keywords present plus requirement boosts.

    Each keyword counts once, and only as a whole word (or its plural), so
    "ui" does not score inside "build" or "guide" and the result does not
    depend on word order.
    """
    lowered = (text or "").lower()
    scores: Dict[Persona, float] = {}
    for persona, keywords in PERSONA_KEYWORDS.items():
        scores[persona] = float(count_keywords(lowered, keywords))

    if requirements is not None:
        requirement_text = requirements.combined_text()
        if has_keyword(requirement_text, "user interface") or has_keyword(requirement_text, "responsive"):
            scores[Persona.FRONTEND] += 3
        if has_keyword(requirement_text, "api") or has_keyword(requirement_text, "database"):
            scores[Persona.BACKEND] += 3
        if any(
            c.type is ConstraintType.BUSINESS and "compliance" in c.description.lower()
            for c in requirements.constraints
        ):
            scores[Persona.SECURITY] += 4
        if len(requirements.technical) > 5:
            scores[Persona.ARCHITECT] += 2

    return scores


def recommend_persona(text: str, requirements: Optional[RequirementSet] = None) -> Persona:
    """Pick the highest scoring persona; ties and all-zero scores go to the architect."""
    scores = score_personas(text, requirements)
    best = max(scores.values(), default=0.0)
    if best <= 0:
        return Persona.ARCHITECT
    leaders = [persona for persona, score in scores.items() if score == best]
    if len(leaders) > 1:
        return Persona.ARCHITECT
    return leaders[0]


# ------------------------------------------------------------------
# Template application
# ------------------------------------------------------------------


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def adjust_hours(hours: float, template: PersonaTemplate, context: TemplateContext) -> int:
    """Apply the template's estimation factors to a raw hour estimate."""
    factors = template.estimation
    adjusted = (
        hours
        * factors.base_multiplier
        * factors.complexity_factors.get(context.complexity, 1.0)
        * factors.domain_factors.get(context.domain, 1.0)
        * (1 + factors.quality_overhead)
    )
    return max(1, round_half_up(adjusted))


def _unique(items: Iterable) -> List:
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def apply_template(tasks: Sequence[WorkflowTask], persona: Persona, context: TemplateContext) -> List[WorkflowTask]:
    """Return copies of ``tasks`` adjusted by the persona's template.

    Providers become the template defaults plus context driven additions,
    tools gain the template preferences, hours are scaled by the
    estimation factors and blocking gates are appended as acceptance
    criteria.
    """
    template = PERSONA_TEMPLATES[persona]

    providers = list(template.preferred_providers)
    if context.domain == "ui":
        providers.append(ToolProvider.UI_GENERATION)
    if context.complexity is Complexity.COMPLEX:
        providers.append(ToolProvider.REASONING)
    providers = _unique(providers)

    preferred_tools = [pref.name for pref in template.tool_preferences]
    gate_criteria = [f"{gate.name}: {gate.description}" for gate in template.blocking_gates]

    adjusted: List[WorkflowTask] = []
    for task in tasks:
        adjusted.append(replace(
            task,
            persona=persona,
            tool_providers=_unique([*task.tool_providers, *providers]),
            tools=_unique([*task.tools, *preferred_tools]),
            estimated_hours=adjust_hours(task.estimated_hours, template, context),
            acceptance_criteria=_unique([*task.acceptance_criteria, *gate_criteria]),
            dependencies=list(task.dependencies),
        ))
    return adjusted


def detect_domain(template: PersonaTemplate, text: str) -> Optional[str]:
    """Return the first estimation domain of ``template`` mentioned in ``text``."""
    lowered = (text or "").lower()
    for domain in template.estimation.domain_factors:
        if mentions(lowered, (domain.replace('-', ' '), domain)):
            return domain
    return None
