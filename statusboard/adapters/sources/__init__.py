"""Source adapters, one per external service view.

Implementations:
- Jira (jira)
- GitHub pull requests and Actions runs (gh_prs, gh_runs)
- Slack unread conversations (slack_unread)
- PagerDuty on-call and open incidents (oncall, pagerduty_alerts)
- Sentry unresolved issues (sentry_issues)
- New Relic open issues (newrelic_incidents)
"""
