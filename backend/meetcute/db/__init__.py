"""Database connection, probing and provisioning."""
