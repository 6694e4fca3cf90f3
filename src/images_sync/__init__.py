"""Keep resized image derivatives in an S3 bucket in sync with their sources."""

__version__ = "0.1.0"
