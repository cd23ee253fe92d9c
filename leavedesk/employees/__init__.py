"""Employees module — Employee model with leave balances, schemas and services."""

from leavedesk.employees.models import Employee

__all__ = ["Employee"]
