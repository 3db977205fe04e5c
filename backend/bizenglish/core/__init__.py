# bizenglish/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- db: Database configuration and connection management
- errors: Error taxonomy and the API error handler
- security: Authentication, password hashing and JWT handling
"""
