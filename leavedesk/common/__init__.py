"""Shared building blocks: enums, exceptions, audit trail, pagination, filters, rate limiting."""
