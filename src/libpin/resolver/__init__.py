"""Version resolution engine: configuration, discovery, validation, tracing."""
