"""Document services: loading, saving and error types."""
