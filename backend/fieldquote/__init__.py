"""Field service quoting engine."""
