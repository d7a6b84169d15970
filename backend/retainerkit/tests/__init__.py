"""
Test package for the RetainerKit backend application.

This package contains test suites for:
- Identity adapter and session cookies
- Workspace and client scope resolution
- Contractor-only role gate
- Client, contract, work log and invoice endpoints
- Invoice generation and the overlap guarantee
"""
