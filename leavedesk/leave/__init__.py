"""Leave module — day counting, balance ledger, request lifecycle and API."""
