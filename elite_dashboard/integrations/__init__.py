"""Optional integrations with external tools."""
