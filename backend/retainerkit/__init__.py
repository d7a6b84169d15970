"""RetainerKit: multi-tenant client billing portal backend."""
