"""Model registry: persistence gateway, artifact uploads and validation schemas."""
