"""Public holidays module — stored holiday calendar and third-party import."""
