"""User management service: registration, login with JWT issuance, listing and deletion."""

__version__ = "1.0.0"
