"""Protocol implementations."""
