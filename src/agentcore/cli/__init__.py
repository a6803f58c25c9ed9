"""Developer CLI for inspecting modes, tools, protocols and parsing."""
