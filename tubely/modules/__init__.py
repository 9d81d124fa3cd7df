"""Application modules.

- auth: JWT bearer verification
- video: Video records, thumbnails, and HTTP endpoints
- ingestion: Upload-to-CDN processing pipeline
"""
