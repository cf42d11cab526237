"""Bootstrap stages and their orchestration."""
