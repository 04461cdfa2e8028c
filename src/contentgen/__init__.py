"""AI content generation job service.

Routes generation requests to provider adapters, tracks job lifecycle and
exposes a polling contract for status and results.
"""
