"""Domain errors raised by the engine and mapped to problem responses."""
