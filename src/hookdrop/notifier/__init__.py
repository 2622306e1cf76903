"""Posting uploaded files to webhooks once they land in the bucket."""
