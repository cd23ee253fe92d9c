"""Paid leave module — discretionary day grants (bonus, compensation, award)."""
