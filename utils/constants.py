"""
Application-wide constants.
Centralizes magic numbers and configuration values.
"""

# Validation limits
MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 254
MAX_PHONE_LENGTH = 32
MAX_MESSAGE_LENGTH = 5000

# HTTP
MAX_REQUEST_BODY_SIZE = 1024 * 1024  # 1MB max request body size

# Postgres error code for unique_violation
PG_UNIQUE_VIOLATION = "23505"
