"""HTTP API for KSEO Booster."""
