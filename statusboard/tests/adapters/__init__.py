"""Integration tests for adapter implementations.

HTTP source adapters run against httpx.MockTransport handlers so that
status codes, pagination and payload parsing are checked without
network access.
"""
