"""OAuth 2.0 authorization code flow: providers, state tokens, flow controller, session."""
