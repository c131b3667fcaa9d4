"""
Security Module
Password hashing and JWT handling
"""

from agentdesk.security.password import (
    hash_password,
    verify_password,
    password_problem,
)

from agentdesk.security.jwt_handler import (
    create_access_token,
    verify_token,
    TokenPayload,
)

__all__ = [
    "hash_password",
    "verify_password",
    "password_problem",
    "create_access_token",
    "verify_token",
    "TokenPayload",
]
