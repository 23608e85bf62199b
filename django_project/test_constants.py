"""
Common test constants shared across all test files.

Centralizing these values keeps test credentials in one place.
"""

# Test user credentials
TEST_PASSWORD = (
    "testpass123"  # noqa: S105  # nosec B105 - Test password, not a security issue
)
TEST_WRONG_PASSWORD = "wrongpassword"  # noqa: S105  # nosec B105 - Test password

# Approach text long enough to pass input validation
TEST_APPROACH_TEXT = "Two pointers from both ends of the sorted array."
