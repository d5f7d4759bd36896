"""HTTP API for JobLink."""
