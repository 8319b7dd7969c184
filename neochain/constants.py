"""
Constants used in various modules of neochain.
"""

# Error code constants
CONSTRAINT_VALIDATION_FAILED = "Neo.ClientError.Schema.ConstraintValidationFailed"
UNIQUE_VIOLATION_MARKER = "already exists with label"

# Access mode constants
ACCESS_MODE_WRITE = "WRITE"
ACCESS_MODE_READ = "READ"

# Chain constants
DEFAULT_VAR = "result"
DISTINCT = "distinct"
