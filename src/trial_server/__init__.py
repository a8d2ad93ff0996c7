"""trial_server — local HTTP surface over the trial survey SDK."""
