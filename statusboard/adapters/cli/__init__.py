"""Command-line interface adapters.

Provides CLI commands for the dashboard:
- show: Fetch and render the selected views once
- refresh: Like show, bypassing any result cache
- watch: Re-render on the configured refresh interval
- views: List the registered views
"""
