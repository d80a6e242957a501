"""GateFlow API - webhook delivery service."""
