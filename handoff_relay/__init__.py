"""Bot orchestration relay with fallback and business-hours handoff."""
