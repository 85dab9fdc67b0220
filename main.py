"""MCP server exposing the workflow planner tools."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.resources import TextResource

from workflow_planner import PlannerSettings, WorkflowManager
from workflow_planner.planner_logging import initialize_default_logging

SETTINGS = PlannerSettings.from_env()
initialize_default_logging(SETTINGS.log_level, SETTINGS.log_file)

mcp = FastMCP("workflow-planner")
manager = WorkflowManager(SETTINGS)

PERSONAS_URI = "workflow-planner://personas"
WORKFLOWS_URI = "workflow-planner://workflows"


@mcp.tool()
def extract_requirements(document: str) -> Dict[str, Any]:
    """STEP 1: Parse a requirements document into a structured requirement set.
    Reports functional, non-functional and technical requirements, constraints,
    assumptions, complexity and the recommended persona."""

    return manager.extract_requirements(document)


@mcp.tool()
def generate_workflow(
    document: str,
    strategy: Optional[str] = None,
    persona: Optional[str] = None,
    output_format: Optional[str] = None,
    tool_providers: Optional[List[str]] = None,
    include_estimates: bool = True,
    include_dependencies: bool = True,
    include_risks: bool = True,
    identify_parallel: bool = True,
    create_milestones: bool = True,
) -> Dict[str, Any]:
    """STEP 2: Generate a phased, estimated workflow from a requirements document.
    Strategy is systematic, agile or mvp. The workflow is registered under the
    returned workflow_id for the following steps."""

    return manager.generate_workflow(
        document,
        strategy=strategy,
        persona=persona,
        output_format=output_format,
        tool_providers=tool_providers,
        options={
            "include_estimates": include_estimates,
            "include_dependencies": include_dependencies,
            "include_risks": include_risks,
            "identify_parallel": identify_parallel,
            "create_milestones": create_milestones,
        },
    )


@mcp.tool()
def analyze_dependencies(workflow_id: str) -> Dict[str, Any]:
    """STEP 3: Critical path, parallel opportunities, bottlenecks and risk areas.
    Prerequisites: a workflow generated via generate_workflow."""

    return manager.analyze_dependencies(workflow_id)


@mcp.tool()
def validate_workflow(workflow_id: str, profile: Optional[str] = None) -> Dict[str, Any]:
    """STEP 4: Run the quality gates of a profile (standard, strict or enterprise).
    Prerequisites: a workflow generated via generate_workflow."""

    return manager.validate_workflow(workflow_id, profile)


@mcp.tool()
def format_workflow(
    workflow_id: str,
    output_format: Optional[str] = None,
    options: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """STEP 5: Render a workflow as roadmap, tasks, detailed, json or combined."""

    return manager.format_workflow(workflow_id, output_format, options)


@mcp.tool()
def import_workflow(content: str) -> Dict[str, Any]:
    """Register a workflow exported with format_workflow(output_format='json')."""

    return manager.import_workflow(content)


@mcp.tool()
def get_workflow(workflow_id: str) -> Dict[str, Any]:
    """Return a registered workflow with its options and last quality report."""

    return manager.get_workflow(workflow_id)


@mcp.tool()
def list_workflows() -> Dict[str, Any]:
    """Enumerate workflows generated in this server session."""

    return manager.list_workflows()


@mcp.tool()
def remove_workflow(workflow_id: str) -> Dict[str, Any]:
    """Drop a workflow from this server session."""

    return manager.remove_workflow(workflow_id)


@mcp.tool()
def list_personas() -> Dict[str, Any]:
    """Describe the personas that can own a workflow or task."""

    return manager.list_personas()


@mcp.tool()
def get_planning_guide() -> Dict[str, Any]:
    """Get guidance on the recommended planning flow."""

    return manager.get_planning_guide()


@mcp.resource(PERSONAS_URI)
def resource_personas():
    """Resource view of the persona registry."""

    lines = ["Workflow Planner Personas"]
    for persona in manager.list_personas()["personas"]:
        lines.append("")
        lines.append(f"- {persona['persona']}: {persona['name']}")
        lines.append(f"  {persona['description']}")
        if persona.get("focus_areas"):
            lines.append(f"  Focus: {', '.join(persona['focus_areas'])}")

    return TextResource(uri=PERSONAS_URI, name="personas", text="\n".join(lines))


@mcp.resource(WORKFLOWS_URI)
def resource_workflows():
    """Resource view exposing generated workflows for discovery."""

    workflows = manager.list_workflows()["workflows"]
    if not workflows:
        return TextResource(uri=WORKFLOWS_URI, name="workflows", text="No workflows have been generated yet.")

    lines = ["Generated Workflows"]
    for summary in workflows:
        lines.append("")
        lines.append(f"- {summary['workflow_id']}: {summary['title']}")
        lines.append(
            f"  {summary['strategy']} / {summary['primary_persona']}: "
            f"{summary['phases']} phases, {summary['tasks']} tasks, {summary['estimated_duration']}"
        )
        if summary.get("quality_score") is not None:
            lines.append(f"  Quality score: {summary['quality_score']}")

    return TextResource(uri=WORKFLOWS_URI, name="workflows", text="\n".join(lines))


if __name__ == "__main__":
    mcp.run(transport="stdio")
