"""Unit tests for core domain logic.

Covers models, the registry, selection, the aggregator, the dashboard
service and the result cache. Source adapters are replaced with the
in-memory fakes from tests/fakes/.
"""
