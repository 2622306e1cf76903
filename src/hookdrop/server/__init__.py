"""HTTP API brokering uploads into S3."""
