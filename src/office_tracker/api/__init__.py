"""HTTP API and the service layer shared with the CLI."""
