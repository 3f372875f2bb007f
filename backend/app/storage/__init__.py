"""
Storage module for S3-compatible object storage (Cloudflare R2).

R2 is the image host for originals, re-hosted AI results and style images.
"""
from app.storage.r2_client import get_r2_client, R2Client
from app.storage.image_host import ImageHost, UPLOAD_KINDS

__all__ = ["get_r2_client", "R2Client", "ImageHost", "UPLOAD_KINDS"]
