"""Core configuration and dashboard synchronization for classboard."""
