"""Test suite for the Statusboard dashboard.

Organized into three categories:

1. core/: Unit tests for core domain logic
   - Minimal dependencies, fast execution
   - Uses in-memory fakes for ports

2. adapters/: Integration tests for adapter implementations
   - HTTP sources exercised through httpx.MockTransport
   - Validates adapter behavior and error mapping

3. fakes/: Port implementations for testing
   - In-memory source adapters, dashboard port and renderer
   - Used by core unit tests and CLI tests
"""
