"""Tools registry for managing AI assistant tools."""

from app.models.llm import LLMToolDefinition
from app.services.recruiting import RecruitingDataStore
from app.tools.applications import create_track_application_tool
from app.tools.athlete_profile import create_get_athlete_profile_tool
from app.tools.base import ToolDefinition, ToolName
from app.tools.opportunities import create_analyze_fit_tool, create_search_opportunities_tool
from app.tools.outreach import create_draft_email_tool, create_get_coach_insights_tool


class ToolsRegistry:
    """Registry for managing AI assistant tools.

    The set of tools is closed: every ``ToolName`` must have exactly one
    definition, so adding a name without wiring its tool fails at startup.
    """

    def __init__(self, data_store: RecruitingDataStore, overrides: list[ToolDefinition] | None = None):
        """Initialize tools registry with service dependencies.

        Args:
            data_store: Recruiting data the tools read and write
            overrides: Definitions replacing the default tool of the same name
        """
        self.data_store = data_store
        self._tools: dict[ToolName, ToolDefinition] = {}
        self._register_default_tools()

        for tool in overrides or []:
            self.register_tool(tool)

        missing = [name.value for name in ToolName if name not in self._tools]
        if missing:
            raise ValueError(f"No definition registered for tools: {', '.join(missing)}")

    def _register_default_tools(self) -> None:
        """Register the default set of tools for recruiting assistance."""
        tools = [
            create_get_athlete_profile_tool(self.data_store),
            create_search_opportunities_tool(self.data_store),
            create_analyze_fit_tool(self.data_store),
            create_draft_email_tool(self.data_store),
            create_track_application_tool(self.data_store),
            create_get_coach_insights_tool(self.data_store),
        ]

        for tool in tools:
            self.register_tool(tool)

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a tool, replacing any existing definition with the same name."""
        self._tools[ToolName(tool.name)] = tool

    def lookup(self, name: str) -> ToolDefinition | None:
        """Find the tool registered under ``name``."""
        try:
            return self._tools.get(ToolName(name))
        except ValueError:
            return None

    def get_tool_schemas(self) -> list[LLMToolDefinition]:
        """Get the tool definitions advertised to the model."""
        return [
            LLMToolDefinition(
                name=tool.name.value,
                description=tool.description,
                input_schema=tool.get_json_schema(),
            )
            for tool in self._tools.values()
        ]

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return [name.value for name in self._tools]

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return self.lookup(name) is not None
