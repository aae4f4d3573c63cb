"""BlocklistHub — Slack-driven IoC blocklist management."""
