"""
Tenancy - per-request city resolution, module gating and tenant-aware jobs.
"""
