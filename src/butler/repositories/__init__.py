"""Low-level SQL access, one repository per table."""
