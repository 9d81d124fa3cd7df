"""Ingestion module.

Buffers an uploaded MP4, probes its geometry with ffprobe, remuxes it for
fast start with ffmpeg, uploads it to object storage, and records the
public URL on the video.
"""
