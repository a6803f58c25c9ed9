"""Terminal UI pieces for hosts built on agentcore."""
