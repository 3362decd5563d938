"""Send upload service: accepts encrypted uploads and stores them in S3."""
