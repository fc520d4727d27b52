"""External adapters for the Statusboard dashboard.

This package contains all external dependencies (Jira, GitHub, Slack,
PagerDuty, Sentry, New Relic, stdout) and provides implementations of the
core port interfaces.

Adapter Organization:

- sources/: Source adapters, one per view, built on httpx
- output/: Snapshot renderers (text and JSON on stdout)
- scheduler/: Refresh loop for watch mode
- cli/: Command-line commands mapped onto the dashboard port
"""
