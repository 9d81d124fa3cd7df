"""Tubely Backend Application.

Video hosting API: owners upload MP4s, which are probed for orientation,
remuxed for fast start, and published through object storage and a CDN.

Modules:
    - core: Configuration, database, storage, logging, metrics
    - modules.auth: JWT bearer verification
    - modules.video: Video records, thumbnails, and HTTP endpoints
    - modules.ingestion: Upload-to-CDN processing pipeline
"""

__version__ = "0.1.0"
