"""Requirement extraction from free-text requirement documents.

The extractor is a set of regex heuristics: it splits a document into
titled sections, classifies each section, and turns list items,
requirement keyword lines and acceptance criteria into requirements.
It never raises on malformed input; an empty document produces an
empty requirement set classified as simple.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .identifiers import IdGenerator, default_id_generator
from .models import (
    Assumption,
    Complexity,
    Constraint,
    ConstraintType,
    DocumentMetadata,
    DocumentSection,
    EffortEstimate,
    ExtractionResult,
    Persona,
    Priority,
    Requirement,
    RequirementCategory,
    RequirementSet,
    RiskLevel,
)
from .personas import recommend_persona, score_personas
from .planner_logging import (
    log_error_with_context,
    log_operation,
    log_performance,
    log_requirements_extracted,
)
from .text_matching import mentions

logger = logging.getLogger("workflow_planner.extractor")

DocumentInput = Union[str, Sequence[Tuple[str, str]], None]


@dataclass(slots=True)
class _SectionBuffer:
    title: str
    header_line: str
    body: List[str] = field(default_factory=list)
    criteria: List[str] = field(default_factory=list)


class RequirementExtractor:
    """Parse requirement documents into a ``RequirementSet`` plus metadata."""

    _HEADER_PATTERNS = (
        re.compile(r"^#{1,6}\s+(.+)$"),
        re.compile(r"^([A-Z][A-Za-z\s]+):?\s*$"),
        re.compile(r"^\d+\.\s+(.+)$"),
        re.compile(r"^([A-Z\s]+)$"),
    )
    _CRITERIA_PATTERNS = (
        re.compile(r"^[-*+]\s*(given|when|then|accept|criteria|scenario)", re.IGNORECASE),
        re.compile(r"^[-*+]\s*\[[ xX]\]\s+"),
        re.compile(r"^ac\d*:?\s+", re.IGNORECASE),
        re.compile(r"^acceptance\s+criteria\s*:\s*\S", re.IGNORECASE),
    )
    _REQUIREMENT_PATTERNS = (
        re.compile(r"^req\d*:?\s*", re.IGNORECASE),
        re.compile(r"^requirement\s*:", re.IGNORECASE),
        re.compile(r"^shall\s+", re.IGNORECASE),
        re.compile(r"^must\s+", re.IGNORECASE),
        re.compile(r"^should\s+", re.IGNORECASE),
    )
    _LIST_ITEM_PATTERN = re.compile(r"^(?:[-*+]|\d+[.)])\s+(?P<item>.+)$")
    _CRITERIA_PREFIX = re.compile(
        r"^(?:[-*+]\s*)?(?:\[[ xX]\]\s*)?(?:ac\d*\s*:?\s*|acceptance\s+criteria\s*:\s*)?"
        r"(?:(?:given|when|then|accept|criteria|scenario)\s*:\s*)?",
        re.IGNORECASE,
    )
    _REQUIREMENT_PREFIX = re.compile(
        r"^(req\d*:?\s*|requirement\s*:?\s*|shall\s+|must\s+|should\s+)", re.IGNORECASE
    )
    _INLINE_CONSTRAINT = re.compile(r"^(?:[-*+]\s*)?(?:constraint|limitation|restriction)\s*:\s*(.+)$", re.IGNORECASE)
    _INLINE_ASSUMPTION = re.compile(r"^(?:[-*+]\s*)?assumption\s*:\s*(.+)$", re.IGNORECASE)
    _VERSION_PATTERN = re.compile(r"^\W*version\s*:?\s*([^\n]+)$", re.IGNORECASE | re.MULTILINE)
    _AUTHOR_PATTERN = re.compile(r"^\W*(?:author|owner)\s*:\s*([^\n]+)$", re.IGNORECASE | re.MULTILINE)
    _DATE_PATTERN = re.compile(r"^\W*date\s*:\s*([^\n]+)$", re.IGNORECASE | re.MULTILINE)
    _STAKEHOLDER_PATTERN = re.compile(r"^\W*stakeholders?\s*:\s*([^\n]+)$", re.IGNORECASE | re.MULTILINE)
    _BUSINESS_VALUE_PATTERN = re.compile(r"^\W*business\s+value\s*:\s*([^\n]+)$", re.IGNORECASE | re.MULTILINE)

    NON_FUNCTIONAL_TITLES = ("performance", "security", "scalability", "usability")
    TECHNICAL_TITLES = ("technical", "architecture", "implementation", "integration")
    TECHNICAL_VOCABULARY = ("api", "database", "server", "framework", "library", "protocol")
    CONSTRAINT_TITLES = ("constraint", "limitation", "restriction")
    ASSUMPTION_TITLES = ("assumption",)
    METRIC_TITLES = ("success metric", "metrics", "kpi")

    SIMPLE_WORDS = ("single", "basic", "simple", "straightforward", "minimal")
    MODERATE_WORDS = ("multiple", "several", "integration", "workflow", "process")
    COMPLEX_WORDS = ("enterprise", "scalable", "distributed", "microservice", "real-time", "machine learning", "ai")

    BASE_HOURS = {Complexity.SIMPLE: 20, Complexity.MODERATE: 80, Complexity.COMPLEX: 200}

    def __init__(self, id_generator: Optional[IdGenerator] = None):
        self.id_generator = id_generator or default_id_generator

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @log_performance("extract_requirements")
    def extract(self, document: DocumentInput) -> ExtractionResult:
        """Extract requirements, metadata, complexity, persona and effort."""
        try:
            text, buffers = self._read_document(document)

            with log_operation("extract_requirements", characters=len(text), sections=len(buffers)):
                sections = tuple(self._finalize_section(buffer) for buffer in buffers)
                requirements = self._build_requirement_set(text, buffers, sections)
                complexity = self.assess_complexity(text, requirements)
                persona = recommend_persona(text, requirements)
                scores = score_personas(text, requirements)
                effort = self.estimate_effort(requirements, complexity)
                metadata = self._extract_metadata(text, buffers)

            result = ExtractionResult(
                requirements=requirements,
                metadata=metadata,
                complexity=complexity,
                recommended_persona=persona,
                persona_scores={p.value: s for p, s in scores.items()},
                effort=effort,
                sections=sections,
                text=text,
            )

            log_requirements_extracted(
                requirements.requirement_count,
                complexity.value,
                persona.value,
                constraints=len(requirements.constraints),
                assumptions=len(requirements.assumptions),
            )
            logger.info(
                f"Extracted {requirements.requirement_count} requirements "
                f"({complexity.value}, persona={persona.value}) from '{metadata.title}'"
            )
            return result

        except Exception as e:
            log_error_with_context(e, {"operation": "extract_requirements"})
            raise

    def parse_sections(self, text: str) -> List[DocumentSection]:
        """Split ``text`` into classified sections."""
        return [self._finalize_section(buffer) for buffer in self._split_sections(text or "")]

    # ------------------------------------------------------------------
    # Section detection
    # ------------------------------------------------------------------

    def _read_document(self, document: DocumentInput) -> Tuple[str, List[_SectionBuffer]]:
        if document is None:
            return "", []
        if isinstance(document, str):
            return document, self._split_sections(document)

        buffers: List[_SectionBuffer] = []
        parts: List[str] = []
        for title, body in document:
            title = (title or "").strip()
            body = body or ""
            parts.append(f"# {title}\n{body}" if title else body)
            buffer = _SectionBuffer(title=title or "Untitled Section", header_line=title)
            for raw in body.splitlines():
                self._add_line(buffer, raw.strip())
            if buffer.body or buffer.criteria:
                buffers.append(buffer)
        return "\n".join(parts), buffers

    def _match_header(self, line: str) -> Optional[str]:
        for pattern in self._HEADER_PATTERNS:
            match = pattern.match(line)
            if match:
                return match.group(1).strip()
        return None

    def _split_sections(self, text: str) -> List[_SectionBuffer]:
        buffers: List[_SectionBuffer] = []
        current: Optional[_SectionBuffer] = None

        for raw in text.splitlines():
            line = raw.strip()
            if not line:
                continue

            title = self._match_header(line)
            if title:
                if current and (current.body or current.criteria):
                    buffers.append(current)
                current = _SectionBuffer(title=title, header_line=line)
                continue

            if current is None:
                continue
            self._add_line(current, line)

        if current and (current.body or current.criteria):
            buffers.append(current)
        return buffers

    def _add_line(self, buffer: _SectionBuffer, line: str) -> None:
        if not line:
            return
        if self._is_criteria_line(line) or (
            "acceptance" in buffer.title.lower() and self._LIST_ITEM_PATTERN.match(line)
        ):
            criterion = self._CRITERIA_PREFIX.sub("", line).strip()
            if criterion:
                buffer.criteria.append(criterion)
            return
        buffer.body.append(line)

    def _is_criteria_line(self, line: str) -> bool:
        return any(pattern.match(line) for pattern in self._CRITERIA_PATTERNS)

    def _finalize_section(self, buffer: _SectionBuffer) -> DocumentSection:
        content = "\n".join(buffer.body)
        return DocumentSection(
            title=buffer.title,
            content=content,
            acceptance_criteria=tuple(buffer.criteria),
            category=self.classify_section(buffer.title, content),
            priority=self.determine_priority(buffer.header_line or buffer.title),
        )

    # ------------------------------------------------------------------
    # Classification helpers
    # ------------------------------------------------------------------

    def classify_section(self, title: str, content: str) -> RequirementCategory:
        """Classify a section as functional, non-functional or technical."""
        lowered_title = title.lower()
        lowered_content = content.lower()
        if any(word in lowered_title for word in self.NON_FUNCTIONAL_TITLES):
            return RequirementCategory.NON_FUNCTIONAL
        if any(word in lowered_title for word in self.TECHNICAL_TITLES):
            return RequirementCategory.TECHNICAL
        if mentions(lowered_content, self.TECHNICAL_VOCABULARY):
            return RequirementCategory.TECHNICAL
        return RequirementCategory.FUNCTIONAL

    @staticmethod
    def determine_priority(text: str) -> Priority:
        lowered = text.lower()
        if any(word in lowered for word in ("critical", "must", "essential")):
            return Priority.HIGH
        if any(word in lowered for word in ("should", "important", "preferred")):
            return Priority.MEDIUM
        return Priority.LOW

    @staticmethod
    def classify_constraint(text: str) -> ConstraintType:
        lowered = text.lower()
        if any(word in lowered for word in ("technical", "technology", "platform")):
            return ConstraintType.TECHNICAL
        if any(word in lowered for word in ("budget", "cost", "resource")):
            return ConstraintType.RESOURCE
        if any(word in lowered for word in ("time", "deadline", "schedule", "launch", "within")):
            return ConstraintType.TIMELINE
        return ConstraintType.BUSINESS

    @staticmethod
    def assess_impact(text: str) -> RiskLevel:
        lowered = text.lower()
        if any(word in lowered for word in ("critical", "blocking", "must not")):
            return RiskLevel.HIGH
        if any(word in lowered for word in ("should not", "preferred", "limited")):
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    @staticmethod
    def assumption_owner(text: str) -> Persona:
        lowered = text.lower()
        if "technical" in lowered or "system" in lowered:
            return Persona.ARCHITECT
        if "user" in lowered or "interface" in lowered:
            return Persona.FRONTEND
        if "data" in lowered or "api" in lowered:
            return Persona.BACKEND
        if "security" in lowered or "compliance" in lowered:
            return Persona.SECURITY
        return Persona.ARCHITECT

    def _title_matches(self, title: str, words: Iterable[str]) -> bool:
        lowered = title.lower()
        return any(word in lowered for word in words)

    # ------------------------------------------------------------------
    # Requirement set construction
    # ------------------------------------------------------------------

    def _build_requirement_set(
        self,
        text: str,
        buffers: Sequence[_SectionBuffer],
        sections: Sequence[DocumentSection],
    ) -> RequirementSet:
        functional: List[Requirement] = []
        non_functional: List[Requirement] = []
        technical: List[Requirement] = []
        constraints: List[Constraint] = []
        assumptions: List[Assumption] = []

        buckets = {
            RequirementCategory.FUNCTIONAL: functional,
            RequirementCategory.NON_FUNCTIONAL: non_functional,
            RequirementCategory.TECHNICAL: technical,
        }

        for buffer, section in zip(buffers, sections):
            if self._title_matches(section.title, self.CONSTRAINT_TITLES):
                constraints.extend(self._constraint(item) for item in self._list_items(buffer.body))
                continue
            if self._title_matches(section.title, self.ASSUMPTION_TITLES):
                assumptions.extend(self._assumption(item) for item in self._list_items(buffer.body))
                continue
            if self._title_matches(section.title, self.METRIC_TITLES):
                continue

            bucket = buckets[section.category]
            for line in buffer.body:
                if self._INLINE_CONSTRAINT.match(line) or self._INLINE_ASSUMPTION.match(line):
                    continue
                content = self._requirement_content(line)
                if content:
                    priority = self.determine_priority(line)
                    if priority is Priority.LOW:
                        priority = section.priority
                    bucket.append(self._requirement(content, priority, section))
            for criterion in section.acceptance_criteria:
                bucket.append(self._requirement(criterion, section.priority, section, criteria=(criterion,)))

        for line in text.splitlines():
            stripped = line.strip()
            constraint_match = self._INLINE_CONSTRAINT.match(stripped)
            if constraint_match:
                constraints.append(self._constraint(constraint_match.group(1)))
                continue
            assumption_match = self._INLINE_ASSUMPTION.match(stripped)
            if assumption_match:
                assumptions.append(self._assumption(assumption_match.group(1)))

        return RequirementSet(
            functional=tuple(functional),
            non_functional=tuple(non_functional),
            technical=tuple(technical),
            constraints=tuple(constraints),
            assumptions=tuple(assumptions),
        )

    def _requirement_content(self, line: str) -> Optional[str]:
        if any(pattern.match(line) for pattern in self._REQUIREMENT_PATTERNS):
            content = self._REQUIREMENT_PREFIX.sub("", line).strip()
            return content or None
        match = self._LIST_ITEM_PATTERN.match(line)
        if match:
            item = match.group("item").strip()
            return self._REQUIREMENT_PREFIX.sub("", item).strip() or None
        return None

    def _list_items(self, lines: Iterable[str]) -> List[str]:
        items = []
        for line in lines:
            match = self._LIST_ITEM_PATTERN.match(line)
            if match:
                items.append(match.group("item").strip())
            elif not (self._INLINE_CONSTRAINT.match(line) or self._INLINE_ASSUMPTION.match(line)):
                items.append(line)
        return [item for item in items if item]

    def _requirement(
        self,
        content: str,
        priority: Priority,
        section: DocumentSection,
        criteria: Tuple[str, ...] = (),
    ) -> Requirement:
        return Requirement(
            id=self.id_generator("req"),
            content=content,
            priority=priority,
            source=section.title,
            category=section.category,
            acceptance_criteria=criteria,
        )

    def _constraint(self, description: str) -> Constraint:
        description = description.strip()
        return Constraint(
            id=self.id_generator("constraint"),
            type=self.classify_constraint(description),
            description=description,
            impact=self.assess_impact(description),
        )

    def _assumption(self, description: str) -> Assumption:
        description = description.strip()
        lowered = description.lower()
        return Assumption(
            id=self.id_generator("assumption"),
            description=description,
            validation_required=any(word in lowered for word in ("assume", "expect", "believe")),
            owner=self.assumption_owner(description),
        )

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def assess_complexity(self, text: str, requirements: RequirementSet) -> Complexity:
        """Map vocabulary and requirement counts onto a complexity tier."""
        lowered = (text or "").lower()
        score = 0.0
        score -= sum(1 for word in self.SIMPLE_WORDS if word in lowered)
        score += sum(2 for word in self.MODERATE_WORDS if word in lowered)
        score += sum(3 for word in self.COMPLEX_WORDS if word in lowered)

        count = requirements.requirement_count
        if count > 20:
            score += 3
        elif count > 10:
            score += 1

        score += len(requirements.constraints) * 0.5
        score += len(requirements.assumptions) * 0.3

        if score <= 0:
            return Complexity.SIMPLE
        if score <= 5:
            return Complexity.MODERATE
        return Complexity.COMPLEX

    def estimate_effort(self, requirements: RequirementSet, complexity: Complexity) -> EffortEstimate:
        """Estimate document-level effort and a confidence score."""
        breakdown = {
            "base": float(self.BASE_HOURS[complexity]),
            "functional": len(requirements.functional) * 8.0,
            "non_functional": len(requirements.non_functional) * 4.0,
            "technical": len(requirements.technical) * 6.0,
            "constraints": len(requirements.constraints) * 2.0,
            "high_priority": sum(
                4.0 for r in requirements.all_requirements() if r.priority is Priority.HIGH
            ),
        }

        confidence = 0.8
        if complexity is Complexity.COMPLEX:
            confidence -= 0.2
        if len(requirements.constraints) > 5:
            confidence -= 0.1
        if len(requirements.assumptions) > 3:
            confidence -= 0.1

        return EffortEstimate(
            hours=int(round(sum(breakdown.values()))),
            confidence=max(0.3, round(confidence, 2)),
            breakdown=breakdown,
        )

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def _extract_metadata(self, text: str, buffers: Sequence[_SectionBuffer]) -> DocumentMetadata:
        title = "Untitled Feature"
        for raw in text.splitlines():
            line = raw.strip()
            if not line:
                continue
            header = self._match_header(line)
            if header:
                title = header.rstrip(":").strip()
                break

        def first(pattern: re.Pattern) -> Optional[str]:
            match = pattern.search(text)
            return match.group(1).strip() if match else None

        stakeholders = first(self._STAKEHOLDER_PATTERN)
        success_metrics: List[str] = []
        for buffer in buffers:
            if self._title_matches(buffer.title, self.METRIC_TITLES):
                success_metrics.extend(self._list_items(buffer.body))

        return DocumentMetadata(
            title=title,
            version=first(self._VERSION_PATTERN) or "1.0",
            author=first(self._AUTHOR_PATTERN) or "Unknown",
            date=first(self._DATE_PATTERN),
            stakeholders=tuple(s.strip() for s in stakeholders.split(",") if s.strip()) if stakeholders else (),
            business_value=first(self._BUSINESS_VALUE_PATTERN),
            success_metrics=tuple(success_metrics),
        )


def extract_requirements(document: DocumentInput, id_generator: Optional[IdGenerator] = None) -> ExtractionResult:
    """Module-level convenience wrapper around ``RequirementExtractor.extract``."""
    return RequirementExtractor(id_generator).extract(document)
