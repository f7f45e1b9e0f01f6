"""Block device, filesystem and Windows image operations."""
