"""SuperAgent server: Gemini agent over Composio Google Workspace tools."""
