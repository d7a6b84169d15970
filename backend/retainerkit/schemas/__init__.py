"""
Pydantic schemas for API request/response validation.

Provides data models for all API endpoints including authentication,
workspace scope, client management, contracts, work logs and invoices.
"""
