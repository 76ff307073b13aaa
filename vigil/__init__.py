"""In-process health monitoring, alerting and SLA validation."""
